from backoffice.models.user import Permission, Role, User, role_permission, user_permission, user_role
from backoffice.models.menu import Menu
from backoffice.models.admin_log import AdminAction, AdminActionLog

__all__ = [
    "AdminAction",
    "AdminActionLog",
    "Menu",
    "Permission",
    "Role",
    "User",
    "role_permission",
    "user_permission",
    "user_role",
]
