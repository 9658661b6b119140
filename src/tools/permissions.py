"""
src/tools/permissions.py - minimal role-based access control (RBAC)

Grants actions to roles ("Manager") rather than to people. The review pages
use it to decide who may appear as a reviewer.

Usage:
    from tools.permissions import has_permission
    if has_permission(user.role_name, "approve_expense"):
        ...
"""


from config import Role


ACTION_MATRIX = {
    "create_expense": {Role.EMPLOYEE.value, Role.MANAGER.value},
    "submit_expense": {Role.EMPLOYEE.value, Role.MANAGER.value},
    "delete_expense": {Role.EMPLOYEE.value, Role.MANAGER.value},
    "approve_expense": {Role.MANAGER.value},
    "reject_expense": {Role.MANAGER.value},
}


def has_permission(role_name: str, action: str) -> bool:
    """
    Return True if the given role is allowed to perform `action`.

    Args:
        role_name: A role name as stored in the database, e.g. "Manager".
        action: The action string to check, e.g. "approve_expense".
    """

    allowed = ACTION_MATRIX.get(action, set())

    return role_name in allowed
