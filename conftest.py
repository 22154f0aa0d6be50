"""
Shared pytest fixtures for the EduManage API tests.

The app runs against the in-memory document store. Every test starts from
an empty store, an empty outbox and a fresh rate limit window.
"""

import itertools
import os

# Configuration is read at import time, so it has to be in place first
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("CLOUDWATCH_METRICS", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from edumanage.app import app  # noqa: E402
from edumanage.middleware import rate_limit  # noqa: E402
from edumanage.services import mailer, metrics_tracker  # noqa: E402
from edumanage.storage import store  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin@1234"

_sequence = itertools.count(1)


# --- STATE ---
@pytest.fixture(autouse=True)
def reset_state():
    """Start every test from an empty store."""
    store.reset()
    rate_limit.reset()
    mailer.clear_outbox()
    metrics_tracker.reset()
    yield
    store.reset()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# --- AUTH ---
def login_headers(client: TestClient, email: str, password: str) -> dict:
    """
    Log in and build the Authorization header.

    Args:
        client: Client bound to the app.
        email: Email of an existing active user.
        password: That user's password.

    Returns:
        Header mapping with the bearer access token.
    """
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client: TestClient) -> dict:
    """The first registered account is the administrator."""
    response = client.post(
        "/api/auth/register",
        json={"name": "Admin User", "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 201, response.text
    assert response.json()["role"] == "admin"
    return login_headers(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def make_user(client: TestClient, admin_headers: dict):
    """Create a user with a role and return (user, headers)."""

    def _make(role: str = "guest", password: str = "Member@123"):
        email = f"user{next(_sequence)}@example.com"
        response = client.post(
            "/api/users",
            json={"name": f"{role.title()} User", "email": email, "password": password, "role": role},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json(), login_headers(client, email, password)

    return _make


# --- RECORDS ---
@pytest.fixture
def make_course(client: TestClient, admin_headers: dict):
    def _make(**overrides) -> dict:
        number = next(_sequence)
        body = {
            "name": f"Course {number}",
            "code": f"CRS{number}",
            "durationWeeks": 12,
            "fee": 1000,
            "category": "programming",
        }
        body.update(overrides)
        response = client.post("/api/courses", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_batch(client: TestClient, admin_headers: dict):
    def _make(course_id: str, **overrides) -> dict:
        body = {
            "name": f"Batch {next(_sequence)}",
            "startDate": "2030-01-06",
            "endDate": "2030-04-30",
            "maxStudents": 30,
        }
        body.update(overrides)
        response = client.post(f"/api/courses/{course_id}/batches", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_lead(client: TestClient, admin_headers: dict):
    def _make(**overrides) -> dict:
        number = next(_sequence)
        body = {
            "name": f"Lead {number}",
            "email": f"lead{number}@example.com",
            "phone": f"98765{number:05d}",
            "source": "website",
        }
        body.update(overrides)
        response = client.post("/api/leads", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_student(client: TestClient, admin_headers: dict):
    def _make(**overrides) -> dict:
        number = next(_sequence)
        body = {
            "name": f"Student {number}",
            "email": f"student{number}@example.com",
            "phone": f"91234{number:05d}",
        }
        body.update(overrides)
        response = client.post("/api/students", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def enrolled(client: TestClient, admin_headers: dict, make_course, make_batch, make_student):
    """An admitted student enrolled in a batch of a 1000 fee course."""
    course = make_course()
    batch = make_batch(course["id"])
    student = make_student()
    response = client.post(
        "/api/enrollments",
        json={"studentId": student["id"], "courseId": course["id"], "batchId": batch["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return {"course": course, "batch": batch, "student": student, "enrollment": response.json()}
