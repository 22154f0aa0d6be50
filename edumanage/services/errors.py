"""
Exceptions raised by the service layer.

Each subclass carries the HTTP status the API answers with; the app
registers one handler that turns them into `{"detail": message}`.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InvalidOperationError(ServiceError):
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class RateLimitedError(ServiceError):
    status_code = 429
