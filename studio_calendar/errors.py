# studio_calendar/errors.py

import logging
from typing import List, Optional

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

UNAUTHENTICATED = "unauthenticated"
PERMISSION_DENIED = "permission-denied"
INVALID_ARGUMENT = "invalid-argument"
NOT_FOUND = "not-found"
ALREADY_EXISTS = "already-exists"
FAILED_PRECONDITION = "failed-precondition"
INTERNAL = "internal"

INVALID_CREDENTIAL = "auth/invalid-credential"
USER_DISABLED = "auth/user-disabled"
TOO_MANY_REQUESTS = "auth/too-many-requests"

HTTP_STATUS = {
    UNAUTHENTICATED: 401,
    PERMISSION_DENIED: 403,
    INVALID_ARGUMENT: 400,
    NOT_FOUND: 404,
    ALREADY_EXISTS: 409,
    FAILED_PRECONDITION: 400,
    INTERNAL: 500,
    INVALID_CREDENTIAL: 401,
    USER_DISABLED: 403,
    TOO_MANY_REQUESTS: 429,
}

# User-facing strings
MSG_LOGIN_REQUIRED = "로그인이 필요합니다."
MSG_NOT_REGISTERED = "직원 계정이 등록되지 않았습니다."
MSG_ACCOUNT_DISABLED = "비활성화된 계정입니다."
MSG_ADMIN_ONLY = "관리자만 실행할 수 있습니다."
MSG_STAFF_FIELDS_REQUIRED = "이름, 이메일, 비밀번호가 필요합니다."
MSG_PASSWORD_TOO_SHORT = "비밀번호는 4자 이상이어야 합니다."
MSG_PASSWORD_TOO_LONG = "비밀번호는 72바이트 이하여야 합니다."
MSG_UID_REQUIRED = "uid가 필요합니다."
MSG_STAFF_NOT_FOUND = "직원 계정을 찾지 못했습니다."
MSG_LAST_ADMIN = "최소 1명의 활성 관리자 계정이 필요합니다."
MSG_SELF_DEACTIVATE = "본인 계정은 비활성화할 수 없습니다."
MSG_EMAIL_EXISTS = "이미 등록된 이메일입니다."
MSG_INACTIVE_PROFILE = "활성화된 직원 계정이 아닙니다. 관리자에게 문의해 주세요."
MSG_STAFF_FORM_REQUIRED = "이름, 이메일, 초기 비밀번호를 입력해 주세요."
MSG_GENERIC = "요청 처리 중 오류가 발생했습니다."

_LOCALIZED = {
    INVALID_CREDENTIAL: "이메일 또는 비밀번호를 확인해 주세요.",
    TOO_MANY_REQUESTS: "요청이 많습니다. 잠시 후 다시 시도해 주세요.",
    PERMISSION_DENIED: "권한이 없습니다.",
    NOT_FOUND: "대상을 찾지 못했습니다.",
}


class CommandError(Exception):
    """
    Error raised by a callable procedure or the auth endpoint.
    The same type is raised server-side and re-created client-side from the
    response envelope, so `code` survives the round trip.
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or code

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_response(self) -> dict:
        return {"error": {"status": self.code, "message": self.message}}

    @classmethod
    def from_response(cls, body: Optional[dict], status_code: int = 500) -> "CommandError":
        error = (body or {}).get("error") or {}
        if isinstance(error, str):
            return cls(INTERNAL, error)
        return cls(error.get("status") or INTERNAL, error.get("message") or "")


class EventValidationError(ValueError):
    """An event draft failed local validation; nothing was sent to the store."""

    def __init__(self, problems: List[str]):
        super().__init__("; ".join(problems))
        self.problems = problems


def normalize_error(error: Optional[BaseException]) -> str:
    """Maps any error to the message shown to the user."""
    code = getattr(error, "code", "") or ""
    if not isinstance(code, str):
        code = str(code)
    for known, message in _LOCALIZED.items():
        if known in code:
            return message
    message = getattr(error, "message", None) or (str(error) if error else "")
    return message or MSG_GENERIC
