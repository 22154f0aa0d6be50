"""
Enrollment and payment API tests.

Payments keep the enrollment's paid amount and the student's payment plan
in step; refunds and deletions reverse them.
"""

from concurrent.futures import ThreadPoolExecutor

from edumanage.storage import Collection, store


def _pay(client, headers, enrolled, amount, **extra):
    body = {
        "studentId": enrolled["student"]["id"],
        "enrollmentId": enrolled["enrollment"]["id"],
        "amount": amount,
        **extra,
    }
    return client.post("/api/payments", json=body, headers=headers)


# --- ENROLLMENTS ---
def test_enrollment_defaults_to_course_fee(client, admin_headers, enrolled):
    enrollment = enrolled["enrollment"]
    assert enrollment["status"] == "active"
    assert enrollment["totalFee"] == 1000
    assert enrollment["finalAmount"] == 1000
    assert enrollment["paidAmount"] == 0
    assert enrollment["enrollmentDate"]


def test_duplicate_enrollment_conflicts(client, admin_headers, enrolled):
    response = client.post(
        "/api/enrollments",
        json={"studentId": enrolled["student"]["id"], "courseId": enrolled["course"]["id"],
              "batchId": enrolled["batch"]["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_enrollment_needs_a_person(client, admin_headers, make_course, make_batch):
    course = make_course()
    batch = make_batch(course["id"])
    response = client.post("/api/enrollments", json={"courseId": course["id"], "batchId": batch["id"]},
                           headers=admin_headers)
    assert response.status_code == 400


def test_enrollment_rejects_mismatched_or_closed_batch(client, admin_headers, make_course, make_batch, make_student):
    course, other = make_course(), make_course()
    batch = make_batch(other["id"])
    student = make_student()
    mismatched = client.post(
        "/api/enrollments", json={"studentId": student["id"], "courseId": course["id"], "batchId": batch["id"]},
        headers=admin_headers,
    )
    assert mismatched.status_code == 400

    closed = make_batch(course["id"], status="completed")
    response = client.post(
        "/api/enrollments", json={"studentId": student["id"], "courseId": course["id"], "batchId": closed["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_enrolling_a_lead_admits_it(client, admin_headers, make_course, make_batch, make_lead):
    course = make_course()
    batch = make_batch(course["id"])
    lead = make_lead()

    unadmitted = client.post(
        "/api/enrollments", json={"studentId": lead["id"], "courseId": course["id"], "batchId": batch["id"]},
        headers=admin_headers,
    )
    assert unadmitted.status_code == 400

    response = client.post(
        "/api/enrollments",
        json={"leadId": lead["id"], "courseId": course["id"], "batchId": batch["id"], "discount": 100},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["leadId"] == lead["id"]
    assert response.json()["finalAmount"] == 900
    assert client.get(f"/api/students/{lead['id']}", headers=admin_headers).json()["isAdmitted"] is True


def test_discount_cannot_exceed_fee(client, admin_headers, make_course, make_batch, make_student):
    course = make_course(fee=100)
    batch = make_batch(course["id"])
    response = client.post(
        "/api/enrollments",
        json={"studentId": make_student()["id"], "courseId": course["id"], "batchId": batch["id"], "discount": 150},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_full_batch_and_reactivation(client, admin_headers, make_course, make_batch, make_student):
    course = make_course()
    batch = make_batch(course["id"], maxStudents=1)
    first, second = make_student(), make_student()

    def enroll(student):
        return client.post(
            "/api/enrollments", json={"studentId": student["id"], "courseId": course["id"], "batchId": batch["id"]},
            headers=admin_headers,
        )

    enrollment = enroll(first).json()
    assert enroll(second).status_code == 409

    client.patch(f"/api/enrollments/{enrollment['id']}/status", json={"status": "dropped"}, headers=admin_headers)
    assert enroll(second).status_code == 201

    reactivate = client.patch(f"/api/enrollments/{enrollment['id']}/status", json={"status": "active"},
                              headers=admin_headers)
    assert reactivate.status_code == 409


def test_list_and_update_enrollments(client, admin_headers, enrolled):
    listed = client.get("/api/enrollments", params={"batchId": enrolled["batch"]["id"]}, headers=admin_headers)
    assert len(listed.json()) == 1

    enrollment_id = enrolled["enrollment"]["id"]
    updated = client.put(f"/api/enrollments/{enrollment_id}", json={"discount": 250}, headers=admin_headers)
    assert updated.json()["finalAmount"] == 750

    _pay(client, admin_headers, enrolled, 700)
    too_low = client.put(f"/api/enrollments/{enrollment_id}", json={"discount": 400}, headers=admin_headers)
    assert too_low.status_code == 400


def test_delete_enrollment_with_payment_conflicts(client, admin_headers, enrolled):
    enrollment_id = enrolled["enrollment"]["id"]
    payment = _pay(client, admin_headers, enrolled, 100).json()
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers).status_code == 409

    client.post(f"/api/payments/{payment['id']}/refund", json={}, headers=admin_headers)
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers).status_code == 204


def test_delete_enrollment_with_pending_payment_conflicts(client, admin_headers, enrolled):
    enrollment_id = enrolled["enrollment"]["id"]
    payment = _pay(client, admin_headers, enrolled, 300, status="pending").json()
    response = client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers)
    assert response.status_code == 409
    assert "pending" in response.json()["detail"]

    client.put(f"/api/payments/{payment['id']}", json={"status": "failed"}, headers=admin_headers)
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers).status_code == 204


def test_completing_payment_of_missing_enrollment_is_404(client, admin_headers, enrolled):
    payment = _pay(client, admin_headers, enrolled, 300, status="pending").json()
    store.delete(Collection.ENROLLMENTS, enrolled["enrollment"]["id"])

    response = client.put(f"/api/payments/{payment['id']}", json={"status": "completed"}, headers=admin_headers)
    assert response.status_code == 404
    assert client.get(f"/api/payments/{payment['id']}", headers=admin_headers).json()["status"] == "pending"


# --- PAYMENTS ---
def test_record_payment_updates_balances(client, admin_headers, enrolled):
    response = _pay(client, admin_headers, enrolled, 400, paymentMethod="upi", referenceNumber="UPI123")
    assert response.status_code == 201
    payment = response.json()
    assert payment["receiptNumber"] == "RCPT-0001"
    assert payment["status"] == "completed"
    assert payment["paymentMethod"] == "upi"

    enrollment = client.get(f"/api/enrollments/{enrolled['enrollment']['id']}", headers=admin_headers).json()
    assert enrollment["paidAmount"] == 400
    student = client.get(f"/api/students/{enrolled['student']['id']}", headers=admin_headers).json()
    assert student["paymentPlan"]["paidAmount"] == 400

    assert _pay(client, admin_headers, enrolled, 50).json()["receiptNumber"] == "RCPT-0002"


def test_concurrent_payments_get_unique_receipts(client, admin_headers, enrolled):
    body = {"studentId": enrolled["student"]["id"], "amount": 1}

    def pay(_):
        response = client.post("/api/payments", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["receiptNumber"]

    with ThreadPoolExecutor(max_workers=16) as pool:
        receipts = list(pool.map(pay, range(40)))
    assert sorted(receipts) == [f"RCPT-{n:04d}" for n in range(1, 41)]


def test_payment_cannot_exceed_balance(client, admin_headers, enrolled):
    assert _pay(client, admin_headers, enrolled, 1000.01).status_code == 400
    assert _pay(client, admin_headers, enrolled, 1000).status_code == 201
    assert _pay(client, admin_headers, enrolled, 1).status_code == 400


def test_pending_payment_does_not_count_until_completed(client, admin_headers, enrolled):
    payment = _pay(client, admin_headers, enrolled, 300, status="pending").json()
    enrollment_url = f"/api/enrollments/{enrolled['enrollment']['id']}"
    assert client.get(enrollment_url, headers=admin_headers).json()["paidAmount"] == 0

    completed = client.put(f"/api/payments/{payment['id']}", json={"status": "completed"}, headers=admin_headers)
    assert completed.status_code == 200
    assert client.get(enrollment_url, headers=admin_headers).json()["paidAmount"] == 300


def test_payment_validation(client, admin_headers, enrolled, make_student, make_lead):
    assert _pay(client, admin_headers, enrolled, 0).status_code == 400
    assert _pay(client, admin_headers, enrolled, 10, status="refunded").status_code == 400

    other = make_student()
    wrong_owner = client.post(
        "/api/payments",
        json={"studentId": other["id"], "enrollmentId": enrolled["enrollment"]["id"], "amount": 10},
        headers=admin_headers,
    )
    assert wrong_owner.status_code == 400

    lead = make_lead()
    not_student = client.post("/api/payments", json={"studentId": lead["id"], "amount": 10}, headers=admin_headers)
    assert not_student.status_code == 404


def test_refund_payment(client, admin_headers, enrolled):
    payment = _pay(client, admin_headers, enrolled, 600).json()
    response = client.post(f"/api/payments/{payment['id']}/refund", json={"reason": "Course change"},
                           headers=admin_headers)
    assert response.status_code == 200
    refunded = response.json()
    assert refunded["status"] == "refunded"
    assert refunded["isRefunded"] is True
    assert refunded["refundReason"] == "Course change"
    assert refunded["refundedAt"] is not None

    enrollment = client.get(f"/api/enrollments/{enrolled['enrollment']['id']}", headers=admin_headers).json()
    assert enrollment["paidAmount"] == 0

    again = client.post(f"/api/payments/{payment['id']}/refund", json={}, headers=admin_headers)
    assert again.status_code == 409
    edit = client.put(f"/api/payments/{payment['id']}", json={"amount": 10}, headers=admin_headers)
    assert edit.status_code == 409


def test_delete_payment_reverses_totals(client, admin_headers, enrolled):
    payment = _pay(client, admin_headers, enrolled, 250).json()
    assert client.delete(f"/api/payments/{payment['id']}", headers=admin_headers).status_code == 204
    student = client.get(f"/api/students/{enrolled['student']['id']}", headers=admin_headers).json()
    assert student["paymentPlan"]["paidAmount"] == 0
    assert client.get(f"/api/payments/{payment['id']}", headers=admin_headers).status_code == 404


def test_receipt_balance_after_each_payment(client, admin_headers, enrolled):
    first = _pay(client, admin_headers, enrolled, 300, paymentDate="2030-01-10").json()
    second = _pay(client, admin_headers, enrolled, 200, paymentDate="2030-01-20").json()

    receipt = client.get(f"/api/payments/{first['id']}/receipt", headers=admin_headers).json()
    assert receipt["receiptNumber"] == "RCPT-0001"
    assert receipt["studentName"] == enrolled["student"]["name"]
    assert receipt["courseName"] == enrolled["course"]["name"]
    assert receipt["paidToDate"] == 300
    assert receipt["balanceDue"] == 700

    later = client.get(f"/api/payments/{second['id']}/receipt", headers=admin_headers).json()
    assert later["paidToDate"] == 500
    assert later["balanceDue"] == 500


def test_payment_list_and_stats(client, admin_headers, enrolled):
    _pay(client, admin_headers, enrolled, 100, paymentMethod="cash")
    _pay(client, admin_headers, enrolled, 200, paymentMethod="card")
    refunded = _pay(client, admin_headers, enrolled, 50, paymentMethod="card").json()
    client.post(f"/api/payments/{refunded['id']}/refund", json={}, headers=admin_headers)

    by_card = client.get("/api/payments", params={"method": "card"}, headers=admin_headers).json()
    assert len(by_card) == 2

    stats = client.get("/api/payments/stats", headers=admin_headers).json()
    assert stats["totalCollected"] == 300
    assert stats["totalRefunded"] == 50
    assert stats["count"] == 3
    assert stats["byMethod"] == {"cash": 100, "card": 200}
    assert stats["byStatus"] == {"completed": 2, "refunded": 1}
    assert stats["thisMonth"] == 300


def test_payments_require_payment_permission(client, make_user):
    _, headers = make_user("instructor")
    assert client.get("/api/payments", headers=headers).status_code == 403
