# policy.py
"""
Who may do what to whom.

can_perform() is the single place role checks live; route handlers ask it
instead of comparing user types inline.
"""
from typing import Optional

# ----------------------------
# Roles / statuses
# ----------------------------
VENDOR = "VENDOR"
CLIENT = "CLIENT"
DRIVER = "DRIVER"
ADMIN = "ADMIN"
HELPDESK = "HELPDESK"
SUPER_ADMIN = "SUPER_ADMIN"

ROLES = (VENDOR, CLIENT, DRIVER, ADMIN, HELPDESK, SUPER_ADMIN)
USER_STATUSES = ("ACTIVE", "PENDING", "DELETED")

STAFF = {ADMIN, SUPER_ADMIN, HELPDESK}
ADMINS = {ADMIN, SUPER_ADMIN}


def normalize_role(role: Optional[str]) -> Optional[str]:
    """'admin' / ' Super_Admin ' -> canonical role, None if unknown."""
    if not role or not isinstance(role, str):
        return None
    key = role.strip().upper()
    return key if key in ROLES else None


# ----------------------------
# Policy
# ----------------------------
def _anyone(actor, is_self, target_role):
    return True


def _self_or_staff(actor, is_self, target_role):
    return is_self or actor in STAFF


def _staff(actor, is_self, target_role):
    return actor in STAFF


def _admins(actor, is_self, target_role):
    return actor in ADMINS


def _super_admin(actor, is_self, target_role):
    return actor == SUPER_ADMIN


def _super_admin_not_self(actor, is_self, target_role):
    return actor == SUPER_ADMIN and not is_self


def _delete_user(actor, is_self, target_role):
    return actor in ADMINS and not is_self and target_role != SUPER_ADMIN


def _purge_user(actor, is_self, target_role):
    return actor == SUPER_ADMIN and not is_self and target_role != SUPER_ADMIN


RULES = {
    "view_profile": _self_or_staff,
    "update_profile": _self_or_staff,
    "view_files": _self_or_staff,
    "change_role": _super_admin_not_self,
    "change_status": _staff,
    "delete_user": _delete_user,
    "restore_user": _admins,
    "list_deleted_users": _admins,
    "purge_user": _purge_user,
    "view_settings": _admins,
    "update_settings": _super_admin,
    "manage_configurations": _admins,
    "run_calculator": _anyone,
    "save_calculation": _anyone,
    "view_history": _anyone,
    "view_all_history": _admins,
}


def can_perform(
    actor_role: Optional[str],
    action: str,
    target_role: Optional[str] = None,
    *,
    actor_id: Optional[str] = None,
    target_id: Optional[str] = None,
) -> bool:
    """
    True if a user with `actor_role` may perform `action` on a target user.

    Self-targeting is detected from actor_id == target_id. Unknown roles and
    unknown actions are always denied.
    """
    actor = normalize_role(actor_role)
    rule = RULES.get(action)
    if actor is None or rule is None:
        return False

    is_self = actor_id is not None and actor_id == target_id
    return bool(rule(actor, is_self, normalize_role(target_role)))
