"""
ASGI middleware for request logging and rate limiting.
"""
from .logging import LoggingMiddleware, setup_logging
from .rate_limit import RateLimitMiddleware, setup_rate_limit

__all__ = ["LoggingMiddleware", "setup_logging", "RateLimitMiddleware", "setup_rate_limit"]
