from lgu_auth.models.user import User, UserRole
from lgu_auth.models.refresh_token import RefreshToken
from lgu_auth.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "RefreshToken",
    "AuditLog",
]
