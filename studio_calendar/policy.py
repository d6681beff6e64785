# studio_calendar/policy.py

import logging
from typing import Callable, Optional

from studio_calendar.errors import (
    FAILED_PRECONDITION,
    MSG_LAST_ADMIN,
    MSG_SELF_DEACTIVATE,
    CommandError,
)
from studio_calendar.models import Role, StaffUser, normalize_role

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def enforce_staff_change(
    actor_uid: str,
    target_uid: str,
    target: StaffUser,
    count_active_admins: Callable[[], int],
    role: Optional[str] = None,
    active: Optional[bool] = None,
) -> None:
    """
    Single authorization policy for role and active-state changes.

    - An admin can never deactivate their own account.
    - A change that takes away the last active admin is refused.

    `count_active_admins` is only called when the target is an active admin
    who would stop being one.
    """
    if active is False and target_uid == actor_uid:
        logger.warning("User '%s' tried to deactivate their own account", actor_uid)
        raise CommandError(FAILED_PRECONDITION, MSG_SELF_DEACTIVATE)

    new_role = target.role if role is None else normalize_role(role)
    new_active = target.active if active is None else bool(active)
    stays_admin = new_role == Role.admin.value and new_active

    if target.is_active_admin and not stays_admin:
        active_admins = count_active_admins()
        if active_admins <= 1:
            logger.warning(
                "Refusing change on '%s': %d active admin(s) left", target_uid, active_admins
            )
            raise CommandError(FAILED_PRECONDITION, MSG_LAST_ADMIN)
