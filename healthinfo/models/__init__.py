"""
SQLAlchemy models for the health information API.
"""
# Auth
from healthinfo.models.user import User
from healthinfo.models.refresh_token import RefreshToken

# Records
from healthinfo.models.client import Client
from healthinfo.models.program import Program
from healthinfo.models.enrollment import Enrollment


__all__ = [
    # Auth
    "User",
    "RefreshToken",
    # Records
    "Client",
    "Program",
    "Enrollment",
]
