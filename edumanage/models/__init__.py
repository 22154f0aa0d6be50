"""
Centralized model definitions for the EduManage API.

This module exports every Pydantic model and enum used by the routes,
services and client package.
"""
from .attendance import (Attendance, AttendanceCreate,
                         AttendanceStats, AttendanceStatus,
                         AttendanceUpdate,
                         BulkAttendanceEntry,
                         BulkAttendanceRequest,
                         BulkAttendanceResult)
from .common import (ApiModel, ChartPoint, Email,
                     MessageResponse, Page, Password,
                     PersonName, Phone)
from .content import (Content, ContentCreate, ContentType,
                      ContentUpdate, ShareRequest, Visibility)
from .course import (Batch, BatchCreate, BatchStatus,
                     BatchUpdate, Course, CourseCreate,
                     CourseLevel, CourseUpdate,
                     SyllabusModule, Weekday)
from .dashboard import (Activity, ActivityType,
                        DashboardOverview, DashboardStats)
from .enrollment import (Enrollment, EnrollmentCreate,
                         EnrollmentStatus,
                         EnrollmentStatusUpdate,
                         EnrollmentUpdate)
from .health import (HealthComponentBrief,
                     HealthComponentCollection,
                     HealthComponentDetail, HealthIssue,
                     HealthRequestSummary, HealthStatus,
                     HealthSummaryResponse,
                     HealthTimelineEntry)
from .lead import (Communication, CommunicationCreate,
                   CommunicationType, FollowUp,
                   FollowUpComplete, FollowUpCreate,
                   ImportResult, ImportRowError, Lead,
                   LeadAssign, LeadCreate, LeadNote,
                   LeadReply, LeadSource, LeadSourceCount,
                   LeadStats, LeadStatus, LeadStatusUpdate,
                   LeadUpdate, NoteCreate, PaymentPlan)
from .payment import (Payment, PaymentCreate, PaymentMethod,
                      PaymentRefund, PaymentStats,
                      PaymentStatus, PaymentUpdate, Receipt)
from .student import (BulkUpdateData, BulkUpdateRequest,
                      BulkUpdateResult, DueDateStatus,
                      FeeStatus, FeeSummary, Gender,
                      LeadConversion, NotificationRequest,
                      NotificationResult, Student,
                      StudentCreate, StudentDetails,
                      StudentStats, StudentStatus,
                      StudentStatusUpdate, StudentUpdate)
from .user import (AuthCheck, ChangePasswordRequest,
                   ForgotPasswordRequest, LoginRequest,
                   LoginResponse, Permission, PermissionList,
                   ProfileUpdate, RefreshRequest,
                   RegisterRequest, ResetPasswordRequest,
                   ResetTokenResponse, Role, RoleUpdate,
                   StatusUpdate, TokenPair, User, UserCreate,
                   UserStats, UserStatus, UserUpdate,
                   VerifyResetCodeRequest)

__all__ = [
    # Common
    "ApiModel", "ChartPoint", "Email", "MessageResponse", "Page", "Password",
    "PersonName", "Phone",
    # Users and auth
    "AuthCheck", "ChangePasswordRequest", "ForgotPasswordRequest",
    "LoginRequest", "LoginResponse", "Permission", "PermissionList",
    "ProfileUpdate", "RefreshRequest", "RegisterRequest",
    "ResetPasswordRequest", "ResetTokenResponse", "Role", "RoleUpdate",
    "StatusUpdate", "TokenPair", "User", "UserCreate", "UserStats",
    "UserStatus", "UserUpdate", "VerifyResetCodeRequest",
    # Leads
    "Communication", "CommunicationCreate", "CommunicationType", "FollowUp",
    "FollowUpComplete", "FollowUpCreate", "ImportResult", "ImportRowError",
    "Lead", "LeadAssign", "LeadCreate", "LeadNote", "LeadReply", "LeadSource",
    "LeadSourceCount", "LeadStats", "LeadStatus", "LeadStatusUpdate",
    "LeadUpdate", "NoteCreate", "PaymentPlan",
    # Students
    "BulkUpdateData", "BulkUpdateRequest", "BulkUpdateResult",
    "DueDateStatus", "FeeStatus", "FeeSummary", "Gender", "LeadConversion",
    "NotificationRequest", "NotificationResult", "Student", "StudentCreate",
    "StudentDetails", "StudentStats", "StudentStatus", "StudentStatusUpdate",
    "StudentUpdate",
    # Courses and batches
    "Batch", "BatchCreate", "BatchStatus", "BatchUpdate", "Course",
    "CourseCreate", "CourseLevel", "CourseUpdate", "SyllabusModule",
    "Weekday",
    # Enrollments
    "Enrollment", "EnrollmentCreate", "EnrollmentStatus",
    "EnrollmentStatusUpdate", "EnrollmentUpdate",
    # Payments
    "Payment", "PaymentCreate", "PaymentMethod", "PaymentRefund",
    "PaymentStats", "PaymentStatus", "PaymentUpdate", "Receipt",
    # Content
    "Content", "ContentCreate", "ContentType", "ContentUpdate",
    "ShareRequest", "Visibility",
    # Attendance
    "Attendance", "AttendanceCreate", "AttendanceStats", "AttendanceStatus",
    "AttendanceUpdate", "BulkAttendanceEntry", "BulkAttendanceRequest",
    "BulkAttendanceResult",
    # Dashboard
    "Activity", "ActivityType", "DashboardOverview", "DashboardStats",
    # Health
    "HealthComponentBrief", "HealthComponentCollection",
    "HealthComponentDetail", "HealthIssue", "HealthRequestSummary",
    "HealthStatus", "HealthSummaryResponse", "HealthTimelineEntry",
]
