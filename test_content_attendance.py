"""
Content library and attendance API tests.
"""

from unittest.mock import MagicMock


# --- CONTENT ---
def _content(client, headers, **overrides):
    body = {"title": "Intro slides", "type": "presentation", "fileUrl": "https://files.example.com/intro.pdf"}
    body.update(overrides)
    return client.post("/api/content", json=body, headers=headers)


def test_create_and_filter_content(client, admin_headers, make_course):
    course = make_course()
    created = _content(client, admin_headers, courseId=course["id"], tags=["Week1", "basics"])
    assert created.status_code == 201
    content = created.json()
    assert content["visibility"] == "course"
    assert content["accessCount"] == 0
    assert content["uploadedBy"]

    _content(client, admin_headers, title="Quiz one", type="quiz")

    by_course = client.get("/api/content", params={"courseId": course["id"]}, headers=admin_headers).json()
    assert [c["id"] for c in by_course] == [content["id"]]
    by_type = client.get("/api/content", params={"type": "quiz"}, headers=admin_headers).json()
    assert [c["title"] for c in by_type] == ["Quiz one"]
    by_tag = client.get("/api/content", params={"tag": "week1"}, headers=admin_headers).json()
    assert len(by_tag) == 1
    by_search = client.get("/api/content", params={"search": "intro"}, headers=admin_headers).json()
    assert len(by_search) == 1


def test_content_links_must_exist(client, admin_headers):
    assert _content(client, admin_headers, courseId="missing").status_code == 404
    assert _content(client, admin_headers, type="podcast").status_code == 400


def test_update_and_delete_content(client, admin_headers):
    content = _content(client, admin_headers).json()
    updated = client.put(f"/api/content/{content['id']}", json={"title": "Renamed", "tags": None},
                         headers=admin_headers)
    assert updated.json()["title"] == "Renamed"
    assert updated.json()["tags"] == []

    assert client.delete(f"/api/content/{content['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/content/{content['id']}", headers=admin_headers).status_code == 404


def test_share_content(client, admin_headers, make_user, make_course, make_batch):
    content = _content(client, admin_headers).json()
    user, _ = make_user("student")
    batch = make_batch(make_course()["id"])

    empty = client.post(f"/api/content/{content['id']}/share", json={}, headers=admin_headers)
    assert empty.status_code == 400

    shared = client.post(
        f"/api/content/{content['id']}/share",
        json={"userIds": [user["id"]], "batchIds": [batch["id"]]},
        headers=admin_headers,
    ).json()
    again = client.post(
        f"/api/content/{content['id']}/share", json={"userIds": [user["id"]]}, headers=admin_headers
    ).json()
    assert shared["sharedWithBatches"] == [batch["id"]]
    assert again["sharedWithUsers"] == [user["id"]]

    missing = client.post(f"/api/content/{content['id']}/share", json={"userIds": ["ghost"]},
                          headers=admin_headers)
    assert missing.status_code == 404


def test_download_redirects_and_counts(client, admin_headers, make_user):
    content = _content(client, admin_headers).json()
    _, student = make_user("student")

    response = client.get(f"/api/content/{content['id']}/download", headers=student, follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "https://files.example.com/intro.pdf"
    assert client.get(f"/api/content/{content['id']}", headers=admin_headers).json()["accessCount"] == 1


def test_download_uses_presigned_url_for_stored_files(client, admin_headers, monkeypatch):
    s3_client = MagicMock()
    s3_client.generate_presigned_url.return_value = "https://bucket.example.com/signed"
    monkeypatch.setenv("CONTENT_BUCKET", "edumanage-content")
    monkeypatch.setattr("edumanage.storage.s3.get_s3_client", lambda: s3_client)

    content = _content(client, admin_headers, fileUrl=None, storageKey="content/1/notes.pdf").json()
    response = client.get(f"/api/content/{content['id']}/download", headers=admin_headers, follow_redirects=False)
    assert response.headers["location"] == "https://bucket.example.com/signed"
    s3_client.generate_presigned_url.assert_called_once_with(
        "get_object", Params={"Bucket": "edumanage-content", "Key": "content/1/notes.pdf"}, ExpiresIn=900
    )


def test_download_without_file_is_not_found(client, admin_headers):
    content = _content(client, admin_headers, fileUrl=None).json()
    response = client.get(f"/api/content/{content['id']}/download", headers=admin_headers, follow_redirects=False)
    assert response.status_code == 404


def test_guest_cannot_view_content(client, admin_headers, make_user):
    _, guest = make_user("guest")
    assert client.get("/api/content", headers=guest).status_code == 403


# --- ATTENDANCE ---
def _mark(client, headers, enrolled, day="2030-01-06", status="present"):
    return client.post(
        "/api/attendance",
        json={"batchId": enrolled["batch"]["id"], "studentId": enrolled["student"]["id"], "date": day,
              "status": status},
        headers=headers,
    )


def _attended(client, headers, enrolled):
    return client.get(f"/api/enrollments/{enrolled['enrollment']['id']}", headers=headers).json()["attendedSessions"]


def test_mark_attendance_counts_sessions(client, admin_headers, enrolled):
    response = _mark(client, admin_headers, enrolled)
    assert response.status_code == 201
    assert response.json()["markedBy"]
    assert _attended(client, admin_headers, enrolled) == 1

    assert _mark(client, admin_headers, enrolled).status_code == 409
    _mark(client, admin_headers, enrolled, day="2030-01-07", status="absent")
    _mark(client, admin_headers, enrolled, day="2030-01-08", status="late")
    assert _attended(client, admin_headers, enrolled) == 2


def test_update_and_delete_attendance_adjust_counter(client, admin_headers, enrolled):
    record = _mark(client, admin_headers, enrolled, status="absent").json()
    assert _attended(client, admin_headers, enrolled) == 0

    client.put(f"/api/attendance/{record['id']}", json={"status": "present"}, headers=admin_headers)
    assert _attended(client, admin_headers, enrolled) == 1

    assert client.delete(f"/api/attendance/{record['id']}", headers=admin_headers).status_code == 204
    assert _attended(client, admin_headers, enrolled) == 0


def test_attendance_requires_active_enrollment(client, admin_headers, enrolled, make_student, make_lead):
    batch_id = enrolled["batch"]["id"]
    outsider = make_student()
    response = client.post(
        "/api/attendance",
        json={"batchId": batch_id, "studentId": outsider["id"], "date": "2030-01-06", "status": "present"},
        headers=admin_headers,
    )
    assert response.status_code == 400

    lead = make_lead()
    response = client.post(
        "/api/attendance",
        json={"batchId": batch_id, "studentId": lead["id"], "date": "2030-01-06", "status": "present"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_bulk_attendance_skips_existing(client, admin_headers, enrolled):
    _mark(client, admin_headers, enrolled)
    response = client.post(
        "/api/attendance/bulk",
        json={"batchId": enrolled["batch"]["id"], "date": "2030-01-06",
              "entries": [{"studentId": enrolled["student"]["id"], "status": "absent"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["created"] == []
    assert response.json()["skipped"] == [enrolled["student"]["id"]]

    fresh = client.post(
        "/api/attendance/bulk",
        json={"batchId": enrolled["batch"]["id"], "date": "2030-01-07",
              "entries": [{"studentId": enrolled["student"]["id"], "status": "excused"}]},
        headers=admin_headers,
    ).json()
    assert len(fresh["created"]) == 1

    missing = client.post(
        "/api/attendance/bulk",
        json={"batchId": "missing", "date": "2030-01-07", "entries": [{"studentId": "x", "status": "present"}]},
        headers=admin_headers,
    )
    assert missing.status_code == 404


def test_bulk_attendance_with_unenrolled_student_writes_nothing(client, admin_headers, enrolled, make_student):
    outsider = make_student()
    response = client.post(
        "/api/attendance/bulk",
        json={"batchId": enrolled["batch"]["id"], "date": "2030-01-06",
              "entries": [{"studentId": enrolled["student"]["id"], "status": "present"},
                          {"studentId": outsider["id"], "status": "present"}]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert client.get("/api/attendance", params={"batchId": enrolled["batch"]["id"]},
                      headers=admin_headers).json() == []
    assert _attended(client, admin_headers, enrolled) == 0


def test_bulk_attendance_skips_repeated_entries(client, admin_headers, enrolled):
    student_id = enrolled["student"]["id"]
    response = client.post(
        "/api/attendance/bulk",
        json={"batchId": enrolled["batch"]["id"], "date": "2030-01-06",
              "entries": [{"studentId": student_id, "status": "present"},
                          {"studentId": student_id, "status": "absent"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert [record["status"] for record in response.json()["created"]] == ["present"]
    assert response.json()["skipped"] == [student_id]
    assert _attended(client, admin_headers, enrolled) == 1


def test_attendance_listing_and_stats(client, admin_headers, enrolled):
    _mark(client, admin_headers, enrolled, day="2030-01-06", status="present")
    _mark(client, admin_headers, enrolled, day="2030-01-07", status="late")
    _mark(client, admin_headers, enrolled, day="2030-01-08", status="absent")
    _mark(client, admin_headers, enrolled, day="2030-01-09", status="excused")

    listed = client.get("/api/attendance", params={"batchId": enrolled["batch"]["id"]}, headers=admin_headers).json()
    assert [r["date"] for r in listed] == ["2030-01-09", "2030-01-08", "2030-01-07", "2030-01-06"]

    history = client.get(f"/api/students/{enrolled['student']['id']}/attendance", headers=admin_headers).json()
    assert len(history) == 4

    stats = client.get("/api/attendance/stats", params={"batchId": enrolled["batch"]["id"]},
                       headers=admin_headers).json()
    assert stats == {"total": 4, "present": 1, "absent": 1, "late": 1, "excused": 1, "attendanceRate": 50.0}


def test_instructor_marks_attendance(client, enrolled, make_user):
    _, instructor = make_user("instructor")
    assert _mark(client, instructor, enrolled).status_code == 201
