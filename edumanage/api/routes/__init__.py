"""
Routers, one module per resource. Everything except health is mounted
under the ``/api`` prefix by :mod:`edumanage.app`.
"""
from . import (attendance, auth, content, courses, dashboard, enrollments,
               health, leads, payments, students, users)

API_ROUTERS = [
    auth.router,
    users.router,
    leads.router,
    students.router,
    courses.router,
    courses.batch_router,
    enrollments.router,
    payments.router,
    content.router,
    attendance.router,
    dashboard.router,
]

__all__ = ["API_ROUTERS", "health"]
