"""EduManage: education business back office API and client."""

__version__ = "0.1.0"
