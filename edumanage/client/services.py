"""
Per-resource wrappers over :class:`ApiClient`.

Each wrapper maps one API resource to plain methods that return the decoded
JSON body. Filters left as ``None`` are not sent.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from edumanage.client.api import ApiClient


class _Resource:
    path = ""

    def __init__(self, client: ApiClient):
        self.client = client

    def _path(self, *parts: Any) -> str:
        return "/".join([self.path, *(str(part) for part in parts)])


class _CrudResource(_Resource):
    def list(self, **filters: Any) -> Any:
        return self.client.get(self.path, params=filters)

    def get(self, item_id: str) -> Dict[str, Any]:
        return self.client.get(self._path(item_id))

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(self.path, data)

    def update(self, item_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(self._path(item_id), data)

    def delete(self, item_id: str) -> None:
        self.client.delete(self._path(item_id))


class AuthApi(_Resource):
    path = "/auth"

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and keep the returned tokens on the client."""
        body = self.client.post(self._path("login"), {"email": email, "password": password}, authenticated=False)
        self.client.tokens.save(body["token"], body["refreshToken"], body.get("user"))
        return body

    def register(self, name: str, email: str, password: str, phone: Optional[str] = None) -> Dict[str, Any]:
        data = {"name": name, "email": email, "password": password}
        if phone:
            data["phone"] = phone
        return self.client.post(self._path("register"), data, authenticated=False)

    def logout(self) -> None:
        try:
            self.client.post(self._path("logout"))
        finally:
            self.client.tokens.clear()

    def me(self) -> Dict[str, Any]:
        user = self.client.get(self._path("me"))
        self.client.tokens.user = user
        return user

    def check(self) -> Dict[str, Any]:
        return self.client.get(self._path("check"))

    def update_profile(self, **changes: Any) -> Dict[str, Any]:
        return self.client.put(self._path("profile"), changes)

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        return self.client.post(
            self._path("change-password"),
            {"currentPassword": current_password, "newPassword": new_password},
        )

    def forgot_password(self, email: str) -> Dict[str, Any]:
        return self.client.post(self._path("forgot-password"), {"email": email}, authenticated=False)

    def verify_reset_code(self, email: str, code: str) -> Dict[str, Any]:
        return self.client.post(
            self._path("verify-reset-code"), {"email": email, "code": code}, authenticated=False
        )

    def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        return self.client.post(
            self._path("reset-password"), {"token": token, "password": password}, authenticated=False
        )


class UsersApi(_CrudResource):
    path = "/users"

    def stats(self) -> Dict[str, Any]:
        return self.client.get(self._path("stats"))

    def set_role(self, user_id: str, role: str) -> Dict[str, Any]:
        return self.client.patch(self._path(user_id, "role"), {"role": role})

    def set_status(self, user_id: str, status: str) -> Dict[str, Any]:
        return self.client.patch(self._path(user_id, "status"), {"status": status})

    def permissions(self, user_id: str) -> Dict[str, Any]:
        return self.client.get(self._path(user_id, "permissions"))


class LeadsApi(_CrudResource):
    path = "/leads"

    def stats(self) -> Dict[str, Any]:
        return self.client.get(self._path("stats"))

    def sources(self) -> List[Dict[str, Any]]:
        return self.client.get(self._path("sources"))

    def export_csv(self, **filters: Any) -> str:
        return self.client.get(self._path("export"), params=filters, raw=True)

    def import_csv(self, text: str) -> Dict[str, Any]:
        return self.client.post(
            self._path("import"), data=text.encode("utf-8"), headers={"Content-Type": "text/csv"}
        )

    def update_status(self, lead_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        return self.client.patch(self._path(lead_id, "status"), {"status": status, "notes": notes})

    def assign(self, lead_id: str, user_id: str) -> Dict[str, Any]:
        return self.client.patch(self._path(lead_id, "assign"), {"userId": user_id})

    def convert(self, lead_id: str, details: Dict[str, Any]) -> Dict[str, Any]:
        """Admit the lead; include courseId and batchId to enroll it as well."""
        return self.client.post(self._path(lead_id, "convert"), details)

    def add_note(self, lead_id: str, note: str) -> Dict[str, Any]:
        return self.client.post(self._path(lead_id, "notes"), {"note": note})

    def notes(self, lead_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(lead_id, "notes"))

    def add_communication(self, lead_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(self._path(lead_id, "communications"), data)

    def communications(self, lead_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(lead_id, "communications"))

    def schedule_follow_up(self, lead_id: str, scheduled_for: str, purpose: Optional[str] = None) -> Dict[str, Any]:
        return self.client.post(
            self._path(lead_id, "follow-up"), {"scheduledFor": scheduled_for, "purpose": purpose}
        )

    def follow_ups(self, lead_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(lead_id, "follow-ups"))

    def complete_follow_up(self, lead_id: str, follow_up_id: str, outcome: Optional[str] = None) -> Dict[str, Any]:
        return self.client.patch(self._path(lead_id, "follow-ups", follow_up_id), {"outcome": outcome})


class StudentsApi(_CrudResource):
    path = "/students"

    def stats(self) -> Dict[str, Any]:
        return self.client.get(self._path("stats"))

    def search(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        return self.client.get(self._path("search"), params={"query": query, "limit": limit})

    def export_csv(self, **filters: Any) -> str:
        return self.client.get(self._path("export"), params=filters, raw=True)

    def update_status(self, student_id: str, status: str) -> Dict[str, Any]:
        return self.client.patch(self._path(student_id, "status"), {"status": status})

    def bulk_update(self, student_ids: Iterable[str], update_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(
            self._path("bulk-update"), {"studentIds": list(student_ids), "updateData": update_data}
        )

    def enrollments(self, student_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(student_id, "enrollments"))

    def payments(self, student_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(student_id, "payments"))

    def attendance(self, student_id: str) -> List[Dict[str, Any]]:
        return self.client.get(self._path(student_id, "attendance"))

    def fee_summary(self, student_id: str) -> Dict[str, Any]:
        return self.client.get(self._path(student_id, "fee-summary"))

    def notify(self, student_id: str, subject: str, message: str) -> Dict[str, Any]:
        return self.client.post(self._path(student_id, "notify"), {"subject": subject, "message": message})


class CoursesApi(_CrudResource):
    path = "/courses"

    def batches(self, course_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.client.get(self._path(course_id, "batches"), params={"status": status})

    def create_batch(self, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(self._path(course_id, "batches"), data)

    def get_batch(self, batch_id: str) -> Dict[str, Any]:
        return self.client.get(f"/batches/{batch_id}")

    def update_batch(self, batch_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(f"/batches/{batch_id}", data)

    def delete_batch(self, batch_id: str) -> None:
        self.client.delete(f"/batches/{batch_id}")


class EnrollmentsApi(_CrudResource):
    path = "/enrollments"

    def update_status(self, enrollment_id: str, status: str) -> Dict[str, Any]:
        return self.client.patch(self._path(enrollment_id, "status"), {"status": status})


class PaymentsApi(_CrudResource):
    path = "/payments"

    def stats(self) -> Dict[str, Any]:
        return self.client.get(self._path("stats"))

    def refund(self, payment_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        return self.client.post(self._path(payment_id, "refund"), {"reason": reason})

    def receipt(self, payment_id: str) -> Dict[str, Any]:
        return self.client.get(self._path(payment_id, "receipt"))


class ContentApi(_CrudResource):
    path = "/content"

    def share(self, content_id: str, user_ids: Iterable[str] = (), batch_ids: Iterable[str] = (),
              message: Optional[str] = None) -> Dict[str, Any]:
        return self.client.post(
            self._path(content_id, "share"),
            {"userIds": list(user_ids), "batchIds": list(batch_ids), "message": message},
        )

    def download_url(self, content_id: str) -> str:
        """The URL the download endpoint redirects to."""
        response = self.client.send("GET", self._path(content_id, "download"), allow_redirects=False)
        return response.headers["Location"]


class AttendanceApi(_CrudResource):
    path = "/attendance"

    def stats(self, batch_id: Optional[str] = None, student_id: Optional[str] = None) -> Dict[str, Any]:
        return self.client.get(self._path("stats"), params={"batchId": batch_id, "studentId": student_id})

    def mark_bulk(self, batch_id: str, date: str, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.client.post(self._path("bulk"), {"batchId": batch_id, "date": date, "entries": entries})


class DashboardApi(_Resource):
    path = "/dashboard"

    def stats(self) -> Dict[str, Any]:
        return self.client.get(self._path("stats"))

    def overview(self) -> Dict[str, Any]:
        return self.client.get(self._path("overview"))


class EduManageClient:
    """All resource wrappers over one shared :class:`ApiClient`."""

    def __init__(self, client: Optional[ApiClient] = None, **client_options: Any):
        self.api = client or ApiClient(**client_options)
        self.auth = AuthApi(self.api)
        self.users = UsersApi(self.api)
        self.leads = LeadsApi(self.api)
        self.students = StudentsApi(self.api)
        self.courses = CoursesApi(self.api)
        self.enrollments = EnrollmentsApi(self.api)
        self.payments = PaymentsApi(self.api)
        self.content = ContentApi(self.api)
        self.attendance = AttendanceApi(self.api)
        self.dashboard = DashboardApi(self.api)
