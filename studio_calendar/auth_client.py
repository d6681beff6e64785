# studio_calendar/auth_client.py

import logging
from typing import Callable, List, Optional

import requests

from studio_calendar.errors import INTERNAL, CommandError
from studio_calendar.models import AuthUser

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

AuthListener = Callable[[Optional[AuthUser]], None]


class AuthClient:
    """
    Client for the credential endpoint (POST {base}login).

    Holds the bearer token for the signed-in user and reports sign-in and
    sign-out transitions to listeners, synchronously and in registration order.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 15):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.session = session or requests.Session()
        self.timeout = timeout
        self.current_user: Optional[AuthUser] = None
        self._token: Optional[str] = None
        self._listeners: List[AuthListener] = []

    def token(self) -> Optional[str]:
        return self._token

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Registers a listener, calls it with the current user, returns an unsubscribe callable."""
        self._listeners.append(listener)
        listener(self.current_user)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self.current_user)

    def sign_in(self, email: str, password: str) -> AuthUser:
        logger.info("Signing in '%s'", email)
        response = self.session.post(
            f"{self.base_url}login",
            json={"email": email, "password": password},
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code != 200:
            logger.warning("Sign-in failed for '%s': %s", email, response.status_code)
            raise CommandError.from_response(body, response.status_code)

        result = body.get("result") or {}
        if not result.get("token") or not result.get("uid"):
            raise CommandError(INTERNAL, "Malformed sign-in response")
        self._token = result["token"]
        self.current_user = AuthUser(uid=result["uid"], email=result.get("email", email))
        self._notify()
        return self.current_user

    def sign_out(self):
        if self.current_user is None and self._token is None:
            return
        logger.info("Signing out '%s'", self.current_user.uid if self.current_user else "")
        self._token = None
        self.current_user = None
        self._notify()
