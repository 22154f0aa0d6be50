"""
Python client for the EduManage API.

    client = EduManageClient(base_url="http://localhost:5000/api")
    client.auth.login("admin@example.com", "Secret@123")
    client.leads.list(status="new")
"""
from .api import ApiClient, ApiError, SessionExpiredError, TokenStore
from .password_reset import (InvalidStepError, PasswordResetFlow,
                             ResetInputError, ResetStep)
from .services import (AttendanceApi, AuthApi, ContentApi, CoursesApi,
                       DashboardApi, EduManageClient, EnrollmentsApi,
                       LeadsApi, PaymentsApi, StudentsApi, UsersApi)

__all__ = [
    "ApiClient", "ApiError", "SessionExpiredError", "TokenStore",
    "InvalidStepError", "PasswordResetFlow", "ResetInputError", "ResetStep",
    "AttendanceApi", "AuthApi", "ContentApi", "CoursesApi", "DashboardApi",
    "EduManageClient", "EnrollmentsApi", "LeadsApi", "PaymentsApi",
    "StudentsApi", "UsersApi",
]
