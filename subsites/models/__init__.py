from .site_tree import ROOT_PARENT_ID, ContentNode, ContentNodeLive
from .tenant import MAIN_SITE_ID, TemplateTenant, Tenant, TenantDomain
from .user import ADMIN_CODE, Group, Permission, Role, RoleCode, User

__all__ = [
    "ADMIN_CODE",
    "ContentNode",
    "ContentNodeLive",
    "Group",
    "MAIN_SITE_ID",
    "Permission",
    "ROOT_PARENT_ID",
    "Role",
    "RoleCode",
    "TemplateTenant",
    "Tenant",
    "TenantDomain",
    "User",
]
