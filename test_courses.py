"""
Course and batch API tests.
"""


# --- COURSES ---
def test_create_course_uppercases_code(client, admin_headers, make_course):
    course = make_course(code="py-101", level="intermediate")
    assert course["code"] == "PY-101"
    assert course["level"] == "intermediate"
    assert course["enrolledCount"] == 0
    assert course["activeBatches"] == 0


def test_course_code_must_be_unique(client, admin_headers, make_course):
    make_course(code="WEB1")
    response = client.post(
        "/api/courses", json={"name": "Dup", "code": "web1", "durationWeeks": 4, "fee": 10}, headers=admin_headers
    )
    assert response.status_code == 409


def test_course_validation(client, admin_headers):
    response = client.post(
        "/api/courses", json={"name": "Bad", "code": "has space", "durationWeeks": 4, "fee": 10},
        headers=admin_headers,
    )
    assert response.status_code == 400
    negative = client.post(
        "/api/courses", json={"name": "Bad", "code": "NEG", "durationWeeks": 4, "fee": -1}, headers=admin_headers
    )
    assert negative.status_code == 400


def test_list_courses_filters(client, admin_headers, make_course):
    make_course(name="Python Basics", category="programming")
    make_course(name="Spoken English", category="language", isActive=False)

    everything = client.get("/api/courses", headers=admin_headers).json()
    assert len(everything) == 2

    active = client.get("/api/courses", params={"isActive": "true"}, headers=admin_headers).json()
    assert [c["name"] for c in active] == ["Python Basics"]

    language = client.get("/api/courses", params={"category": "language"}, headers=admin_headers).json()
    assert [c["name"] for c in language] == ["Spoken English"]

    searched = client.get("/api/courses", params={"search": "python"}, headers=admin_headers).json()
    assert len(searched) == 1


def test_guest_can_view_but_not_create_courses(client, make_user, make_course):
    course = make_course()
    _, guest = make_user("guest")
    assert client.get(f"/api/courses/{course['id']}", headers=guest).status_code == 200
    response = client.post("/api/courses", json={"name": "G", "code": "GG", "durationWeeks": 1, "fee": 0},
                           headers=guest)
    assert response.status_code == 403


def test_update_course(client, admin_headers, make_course):
    course = make_course()
    response = client.put(f"/api/courses/{course['id']}", json={"fee": 2500, "name": None}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["fee"] == 2500
    assert response.json()["name"] == course["name"]
    assert client.put("/api/courses/missing", json={"fee": 1}, headers=admin_headers).status_code == 404


def test_delete_course_with_active_enrollment_conflicts(client, admin_headers, enrolled):
    course_id = enrolled["course"]["id"]
    assert client.delete(f"/api/courses/{course_id}", headers=admin_headers).status_code == 409

    client.patch(f"/api/enrollments/{enrolled['enrollment']['id']}/status", json={"status": "dropped"},
                 headers=admin_headers)
    assert client.delete(f"/api/courses/{course_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/batches/{enrolled['batch']['id']}", headers=admin_headers).status_code == 404


# --- BATCHES ---
def test_batch_codes_are_generated_per_course(client, admin_headers, make_course, make_batch):
    course = make_course(code="DS")
    first = make_batch(course["id"])
    second = make_batch(course["id"], startDate="2030-02-01", endDate="2030-05-01")
    assert first["batchCode"] == "DS-B01"
    assert second["batchCode"] == "DS-B02"
    assert first["status"] == "upcoming"
    assert first["maxStudents"] == 30

    listed = client.get(f"/api/courses/{course['id']}/batches", headers=admin_headers).json()
    assert [b["batchCode"] for b in listed] == ["DS-B01", "DS-B02"]
    assert client.get(f"/api/courses/{course['id']}", headers=admin_headers).json()["activeBatches"] == 2


def test_batch_dates_are_validated(client, admin_headers, make_course, make_batch):
    course = make_course()
    response = client.post(
        f"/api/courses/{course['id']}/batches",
        json={"name": "Backwards", "startDate": "2030-05-01", "endDate": "2030-01-01"},
        headers=admin_headers,
    )
    assert response.status_code == 400

    batch = make_batch(course["id"], startTime="09:00", endTime="11:00")
    update = client.put(f"/api/batches/{batch['id']}", json={"endDate": "2029-01-01"}, headers=admin_headers)
    assert update.status_code == 400
    times = client.put(f"/api/batches/{batch['id']}", json={"endTime": "08:00"}, headers=admin_headers)
    assert times.status_code == 400


def test_create_batch_for_unknown_course(client, admin_headers):
    response = client.post(
        "/api/courses/missing/batches",
        json={"name": "Orphan", "startDate": "2030-01-01", "endDate": "2030-02-01"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_batch_capacity_cannot_drop_below_enrollment(client, admin_headers, enrolled):
    batch_id = enrolled["batch"]["id"]
    batch = client.get(f"/api/batches/{batch_id}", headers=admin_headers).json()
    assert batch["currentStudents"] == 1

    assert client.put(f"/api/batches/{batch_id}", json={"maxStudents": 5}, headers=admin_headers).status_code == 200
    assert client.delete(f"/api/batches/{batch_id}", headers=admin_headers).status_code == 409


def test_delete_empty_batch(client, admin_headers, make_course, make_batch):
    batch = make_batch(make_course()["id"])
    assert client.delete(f"/api/batches/{batch['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/batches/{batch['id']}", headers=admin_headers).status_code == 404
