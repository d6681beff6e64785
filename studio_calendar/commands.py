# studio_calendar/commands.py

import logging
from typing import Callable, Optional

import requests

from studio_calendar.errors import INTERNAL, MSG_GENERIC, CommandError
from studio_calendar.models import normalize_role

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class StaffCommands:
    """
    Typed calls to the three staff procedures. Input is trimmed and
    normalized here; every business rule is checked by the server.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.timeout = timeout

    def _call(self, name: str, data: dict) -> dict:
        headers = {}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.info("Calling %s", name)
        response = self.session.post(
            f"{self.base_url}{name}",
            json={"data": data},
            headers=headers,
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or "error" in body:
            error = CommandError.from_response(body, response.status_code)
            logger.warning("%s failed: %s %s", name, error.code, error.message)
            raise error
        if "result" not in body:
            raise CommandError(INTERNAL, MSG_GENERIC)
        return body["result"]

    def create_staff_user(self, name: str, email: str, password: str, role: str = "staff") -> dict:
        return self._call("createStaffUser", {
            "name": (name or "").strip(),
            "email": (email or "").strip().lower(),
            "password": (password or "").strip(),
            "role": normalize_role(role),
        })

    def set_staff_role(self, uid: str, role: str) -> dict:
        return self._call("setStaffRole", {
            "uid": (uid or "").strip(),
            "role": normalize_role(role),
        })

    def set_staff_active(self, uid: str, active: bool) -> dict:
        return self._call("setStaffActive", {
            "uid": (uid or "").strip(),
            "active": bool(active),
        })
