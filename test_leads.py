"""
Lead management API tests.

Covers lead CRUD, filtering, the status pipeline, notes, communications,
follow-ups, conversion into students, stats and CSV import/export.
"""

import csv
import io


# --- CRUD ---
def test_create_lead_defaults(client, admin_headers, make_lead):
    lead = make_lead(email="Asha@Example.com", phone="98765 43210")
    assert lead["status"] == "new"
    assert lead["isAdmitted"] is False
    assert lead["studentId"] is None
    assert lead["email"] == "asha@example.com"
    assert lead["phone"] == "9876543210"
    assert lead["notes"] == [] and lead["followUps"] == []


def test_create_lead_validation(client, admin_headers):
    missing_phone = client.post("/api/leads", json={"name": "No Phone", "email": "np@example.com"},
                                headers=admin_headers)
    assert missing_phone.status_code == 400

    bad_email = client.post("/api/leads", json={"name": "Bad", "email": "bad-email", "phone": "9876543210"},
                            headers=admin_headers)
    assert bad_email.status_code == 400


def test_duplicate_lead_email_conflicts(client, admin_headers, make_lead):
    make_lead(email="dup@example.com")
    response = client.post(
        "/api/leads", json={"name": "Dup", "email": "DUP@example.com", "phone": "9876500000"}, headers=admin_headers
    )
    assert response.status_code == 409


def test_get_update_delete_lead(client, admin_headers, make_lead):
    lead = make_lead()
    fetched = client.get(f"/api/leads/{lead['id']}", headers=admin_headers)
    assert fetched.json()["name"] == lead["name"]

    updated = client.put(
        f"/api/leads/{lead['id']}",
        json={"reply": "Interested", "courseInterest": "Data Science", "name": None},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["reply"] == "Interested"
    assert updated.json()["name"] == lead["name"]

    assert client.delete(f"/api/leads/{lead['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/leads/{lead['id']}", headers=admin_headers).status_code == 404


def test_list_filters_and_search(client, admin_headers, make_lead):
    make_lead(name="Ravi Kumar", source="referral")
    make_lead(name="Meena Iyer", source="walkin")
    make_lead(name="Ravi Shankar", source="walkin")

    page = client.get("/api/leads", headers=admin_headers).json()
    assert page["total"] == 3

    walkins = client.get("/api/leads", params={"source": "walkin"}, headers=admin_headers).json()
    assert walkins["total"] == 2

    ravis = client.get("/api/leads", params={"search": "ravi"}, headers=admin_headers).json()
    assert sorted(item["name"] for item in ravis["items"]) == ["Ravi Kumar", "Ravi Shankar"]


def test_guest_cannot_view_leads_and_instructor_cannot_edit(client, make_user, make_lead):
    _, guest = make_user("guest")
    assert client.get("/api/leads", headers=guest).status_code == 403

    _, instructor = make_user("instructor")
    assert client.get("/api/leads", headers=instructor).status_code == 200
    response = client.post("/api/leads", json={"name": "X", "email": "x@example.com", "phone": "9876500001"},
                           headers=instructor)
    assert response.status_code == 403


# --- PIPELINE ---
def test_status_change_records_note(client, admin_headers, make_lead):
    lead = make_lead()
    response = client.patch(
        f"/api/leads/{lead['id']}/status", json={"status": "lost", "notes": "Chose another institute"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "lost"
    assert response.json()["notes"][-1]["text"] == "Status changed to lost: Chose another institute"


def test_status_cannot_be_set_to_converted(client, admin_headers, make_lead):
    lead = make_lead()
    response = client.patch(f"/api/leads/{lead['id']}/status", json={"status": "converted"}, headers=admin_headers)
    assert response.status_code == 400


def test_assign_lead(client, admin_headers, make_lead, make_user):
    lead = make_lead()
    user, _ = make_user("instructor")
    response = client.patch(f"/api/leads/{lead['id']}/assign", json={"userId": user["id"]}, headers=admin_headers)
    assert response.json()["assignedTo"] == user["id"]

    missing = client.patch(f"/api/leads/{lead['id']}/assign", json={"userId": "nope"}, headers=admin_headers)
    assert missing.status_code == 404

    mine = client.get("/api/leads", params={"assignedTo": user["id"]}, headers=admin_headers).json()
    assert mine["total"] == 1


def test_notes_and_communications(client, admin_headers, make_lead):
    lead = make_lead()
    note = client.post(f"/api/leads/{lead['id']}/notes", json={"note": "Asked about fees"}, headers=admin_headers)
    assert note.status_code == 201
    assert note.json()["text"] == "Asked about fees"
    assert len(client.get(f"/api/leads/{lead['id']}/notes", headers=admin_headers).json()) == 1

    call = client.post(
        f"/api/leads/{lead['id']}/communications",
        json={"type": "call", "summary": "Discussed batches", "outcome": "Will visit"},
        headers=admin_headers,
    )
    assert call.status_code == 201
    assert client.get(f"/api/leads/{lead['id']}", headers=admin_headers).json()["status"] == "contacted"
    assert client.get(f"/api/leads/{lead['id']}/communications", headers=admin_headers).json()[0]["type"] == "call"


def test_follow_up_lifecycle(client, admin_headers, make_lead):
    lead = make_lead()
    scheduled = client.post(
        f"/api/leads/{lead['id']}/follow-up",
        json={"scheduledFor": "2030-02-01T10:00:00+00:00", "purpose": "Demo class"},
        headers=admin_headers,
    )
    assert scheduled.status_code == 201
    follow_up = scheduled.json()
    assert follow_up["completed"] is False

    refreshed = client.get(f"/api/leads/{lead['id']}", headers=admin_headers).json()
    assert refreshed["status"] == "follow_up"
    assert refreshed["remind"] is True
    assert refreshed["followUpDate"] is not None

    done = client.patch(
        f"/api/leads/{lead['id']}/follow-ups/{follow_up['id']}", json={"outcome": "Attended"}, headers=admin_headers
    )
    assert done.status_code == 200
    assert done.json()["completed"] is True
    assert done.json()["outcome"] == "Attended"

    refreshed = client.get(f"/api/leads/{lead['id']}", headers=admin_headers).json()
    assert refreshed["remind"] is False
    assert refreshed["followUpDate"] is None

    again = client.patch(f"/api/leads/{lead['id']}/follow-ups/{follow_up['id']}", json={}, headers=admin_headers)
    assert again.status_code == 409
    unknown = client.patch(f"/api/leads/{lead['id']}/follow-ups/missing", json={}, headers=admin_headers)
    assert unknown.status_code == 404


# --- CONVERSION ---
def test_convert_lead_to_student(client, admin_headers, make_lead):
    lead = make_lead()
    response = client.post(
        f"/api/leads/{lead['id']}/convert", json={"city": "Pune", "gender": "female"}, headers=admin_headers
    )
    assert response.status_code == 201
    student = response.json()
    assert student["id"] == lead["id"]
    assert student["isAdmitted"] is True
    assert student["studentId"].startswith("STU-")
    assert student["studentId"].endswith("-0001")
    assert student["city"] == "Pune"

    hidden = client.get("/api/leads", headers=admin_headers).json()
    assert hidden["total"] == 0
    shown = client.get("/api/leads", params={"includeAdmitted": "true"}, headers=admin_headers).json()
    assert shown["total"] == 1

    twice = client.post(f"/api/leads/{lead['id']}/convert", json={}, headers=admin_headers)
    assert twice.status_code == 409
    locked = client.patch(f"/api/leads/{lead['id']}/status", json={"status": "lost"}, headers=admin_headers)
    assert locked.status_code == 409
    assert client.delete(f"/api/leads/{lead['id']}", headers=admin_headers).status_code == 409


def test_convert_with_enrollment(client, admin_headers, make_lead, make_course, make_batch):
    course = make_course(fee=5000)
    batch = make_batch(course["id"])
    lead = make_lead()

    response = client.post(
        f"/api/leads/{lead['id']}/convert",
        json={"courseId": course["id"], "batchId": batch["id"], "discount": 500},
        headers=admin_headers,
    )
    assert response.status_code == 201

    enrollments = client.get(f"/api/students/{lead['id']}/enrollments", headers=admin_headers).json()
    assert len(enrollments) == 1
    assert enrollments[0]["leadId"] == lead["id"]
    assert enrollments[0]["totalFee"] == 5000
    assert enrollments[0]["finalAmount"] == 4500


def test_convert_into_full_batch_leaves_lead_untouched(client, admin_headers, make_lead, make_course, make_batch):
    course = make_course()
    batch = make_batch(course["id"], maxStudents=1)
    first, second = make_lead(), make_lead()
    ok = client.post(f"/api/leads/{first['id']}/convert",
                     json={"courseId": course["id"], "batchId": batch["id"]}, headers=admin_headers)
    assert ok.status_code == 201

    full = client.post(f"/api/leads/{second['id']}/convert",
                       json={"courseId": course["id"], "batchId": batch["id"]}, headers=admin_headers)
    assert full.status_code == 409
    assert client.get(f"/api/leads/{second['id']}", headers=admin_headers).json()["isAdmitted"] is False


def test_convert_batch_requires_course(client, admin_headers, make_lead, make_course, make_batch):
    batch = make_batch(make_course()["id"])
    lead = make_lead()
    response = client.post(f"/api/leads/{lead['id']}/convert", json={"batchId": batch["id"]}, headers=admin_headers)
    assert response.status_code == 400


# --- STATS, IMPORT AND EXPORT ---
def test_lead_stats_and_sources(client, admin_headers, make_lead):
    make_lead(source="referral", reply="Interested")
    make_lead(source="referral")
    converted = make_lead(source="walkin")
    client.post(f"/api/leads/{converted['id']}/convert", json={}, headers=admin_headers)

    stats = client.get("/api/leads/stats", headers=admin_headers).json()
    assert stats["total"] == 3
    assert stats["bySource"] == {"referral": 2, "walkin": 1}
    assert stats["byStatus"] == {"new": 2, "converted": 1}
    assert stats["interested"] == 1
    assert stats["conversionRate"] == 33.3

    sources = {item["source"]: item["count"] for item in client.get("/api/leads/sources", headers=admin_headers).json()}
    assert sources["referral"] == 2
    assert sources["advertisement"] == 0
    assert len(sources) == 6


def test_import_csv(client, admin_headers):
    body = (
        "\ufeffName,Email,Phone,Source,Remind\n"
        "Kiran Rao,kiran@example.com,98765 11111,Walk-In,yes\n"
        "No Email,,9876522222,website,no\n"
        "Social Lead,social@example.com,9876533333,social media,\n"
    )
    response = client.post(
        "/api/leads/import", content=body.encode("utf-8"), headers={**admin_headers, "Content-Type": "text/csv"}
    )
    assert response.status_code == 200
    result = response.json()
    assert result["created"] == 2
    assert len(result["errors"]) == 1
    assert result["errors"][0]["line"] == 3

    leads = client.get("/api/leads", params={"source": "walkin"}, headers=admin_headers).json()
    assert leads["items"][0]["remind"] is True
    assert client.get("/api/leads", params={"source": "social_media"}, headers=admin_headers).json()["total"] == 1


def test_import_csv_accepts_upper_case_and_camel_case_headers(client, admin_headers):
    body = "NAME,EMAIL,PHONE,SOURCE,CourseInterest\nAsha Menon,asha@example.com,9876544444,REFERRAL,Data Science\n"
    response = client.post(
        "/api/leads/import", content=body.encode("utf-8"), headers={**admin_headers, "Content-Type": "text/csv"}
    )
    assert response.status_code == 200
    assert response.json() == {"created": 1, "errors": []}

    lead = client.get("/api/leads", params={"source": "referral"}, headers=admin_headers).json()["items"][0]
    assert lead["email"] == "asha@example.com"
    assert lead["courseInterest"] == "Data Science"


def test_import_csv_requires_columns(client, admin_headers):
    response = client.post(
        "/api/leads/import", content=b"name,email\nA,a@example.com\n",
        headers={**admin_headers, "Content-Type": "text/csv"},
    )
    assert response.status_code == 400
    assert "phone" in response.json()["detail"]


def test_export_csv(client, admin_headers, make_lead):
    make_lead(name="Export Me", source="referral")
    make_lead(name="Skip Me", source="walkin")
    response = client.get("/api/leads/export", params={"source": "referral"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "leads.csv" in response.headers["content-disposition"]

    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [row["name"] for row in rows] == ["Export Me"]
