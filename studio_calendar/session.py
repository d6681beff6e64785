# studio_calendar/session.py

import logging
from datetime import date
from enum import Enum
from typing import Callable, Optional

import requests

from studio_calendar.auth_client import AuthClient
from studio_calendar.commands import StaffCommands
from studio_calendar.config import USERS_CONTAINER
from studio_calendar.database import DocumentStore
from studio_calendar.errors import (
    MSG_ADMIN_ONLY,
    MSG_INACTIVE_PROFILE,
    MSG_STAFF_FORM_REQUIRED,
    PERMISSION_DENIED,
    CommandError,
    normalize_error,
)
from studio_calendar.models import AuthUser, CurrentUser
from studio_calendar.store import ClientState
from studio_calendar.sync import SyncLayer

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class SessionState(str, Enum):
    SIGNED_OUT = "signed-out"
    LOADING_PROFILE = "loading-profile"
    ACTIVE_SESSION = "active-session"


class SessionController:
    """
    Reacts to auth transitions:

        signed-out      -> loading-profile   (sign-in reported)
        loading-profile -> active-session    (profile found and active)
        loading-profile -> signed-out        (profile missing/inactive; forced sign-out)
        active-session  -> signed-out        (sign-out, explicit or forced)
    """

    def __init__(
        self,
        auth: AuthClient,
        store: DocumentStore,
        state: ClientState,
        sync: SyncLayer,
        render: Optional[Callable[[], None]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.auth = auth
        self.store = store
        self.state = state
        self.sync = sync
        self.render = render or (lambda: None)
        self.clock = clock
        self.status = SessionState.SIGNED_OUT
        self.auth_error: Optional[str] = None
        self._unsub_auth: Optional[Callable[[], None]] = None

    def start(self):
        self._unsub_auth = self.auth.on_auth_state_changed(self.handle_auth_user)

    def stop(self):
        if self._unsub_auth:
            self._unsub_auth()
            self._unsub_auth = None
        self.sync.unsubscribe_all()

    @property
    def is_admin(self) -> bool:
        return self.status == SessionState.ACTIVE_SESSION and self.state.is_admin

    can_manage_staff = is_admin

    def _clear_session(self):
        self.state.reset()
        self.sync.unsubscribe_all()
        self.status = SessionState.SIGNED_OUT

    def _force_sign_out(self, message: str):
        logger.warning("Forcing sign-out: %s", message)
        self.auth.sign_out()
        if self.status != SessionState.SIGNED_OUT:
            self._clear_session()
        self.auth_error = message

    def handle_auth_user(self, user: Optional[AuthUser]):
        if user is None:
            self._clear_session()
            self.auth_error = None
            logger.info("Session signed out")
            return

        self.status = SessionState.LOADING_PROFILE
        logger.info("Loading profile for '%s'", user.uid)
        try:
            profile = self.store.get(USERS_CONTAINER, user.uid)
        except Exception as e:
            logger.exception("Profile load failed for '%s': %s", user.uid, str(e))
            self._force_sign_out(normalize_error(e))
            return

        if not profile or profile.get("active") is False:
            self._force_sign_out(MSG_INACTIVE_PROFILE)
            return

        self.state.current_user = CurrentUser.from_profile(user, profile)
        self.state.reset_view(self.clock())
        self.auth_error = None
        self.status = SessionState.ACTIVE_SESSION
        logger.info("Session active for '%s' (%s)", user.uid, self.state.current_user.role)

        self.sync.subscribe_events()
        self.sync.subscribe_users()
        self.render()

    def sign_in(self, email: str, password: str) -> Optional[AuthUser]:
        email = (email or "").strip()
        password = (password or "").strip()
        if not email or not password:
            return None
        try:
            return self.auth.sign_in(email, password)
        except (CommandError, requests.RequestException) as e:
            self.auth_error = normalize_error(e)
            return None

    def sign_out(self):
        self.auth.sign_out()
        if self.status != SessionState.SIGNED_OUT:
            self._clear_session()

    def user_meta(self) -> str:
        user = self.state.current_user
        if user is None:
            return ""
        return f"{user.name} ({user.role}) 로그인"


class StaffAdmin:
    """
    Admin-only staff management. Calls never reach the server unless the
    session is active with an admin role; server errors land in manage_error.
    """

    def __init__(self, session: SessionController, commands: StaffCommands):
        self.session = session
        self.commands = commands
        self.manage_error = ""

    def _guard(self):
        if not self.session.is_admin:
            raise CommandError(PERMISSION_DENIED, MSG_ADMIN_ONLY)

    def _run(self, call, *args):
        try:
            result = call(*args)
        except (CommandError, requests.RequestException) as e:
            self.manage_error = normalize_error(e)
            return None
        self.manage_error = ""
        return result

    def create_staff(self, name: str, email: str, password: str, role: str = "staff") -> Optional[dict]:
        self._guard()
        if not (name or "").strip() or not (email or "").strip() or not (password or "").strip():
            self.manage_error = MSG_STAFF_FORM_REQUIRED
            return None
        return self._run(self.commands.create_staff_user, name, email, password, role)

    def set_role(self, uid: str, role: str) -> Optional[dict]:
        self._guard()
        return self._run(self.commands.set_staff_role, uid, role)

    def toggle_active(self, uid: str) -> Optional[dict]:
        self._guard()
        user = self.session.state.find_user(uid)
        if user is None:
            return None
        return self._run(self.commands.set_staff_active, uid, not user.active)
