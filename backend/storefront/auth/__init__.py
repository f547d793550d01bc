from .blacklist import TokenBlacklist
from .dependencies import AdminUser, CurrentUser, StaffUser, get_current_user, require_roles
from .tokens import TokenService

__all__ = [
    "AdminUser",
    "CurrentUser",
    "StaffUser",
    "TokenBlacklist",
    "TokenService",
    "get_current_user",
    "require_roles",
]
