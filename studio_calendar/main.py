from azure.functions import HttpRequest, HttpResponse
import json
import logging

from studio_calendar.auth import token_required
from studio_calendar.errors import INTERNAL, INVALID_ARGUMENT, MSG_GENERIC, CommandError
from studio_calendar.staff_routes import (
    create_staff_user, set_staff_role, set_staff_active, login_user
)
from studio_calendar.utils import get_client_ip, get_callable_data

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _json_response(body: dict, status_code: int) -> HttpResponse:
    return HttpResponse(
        json.dumps(body, ensure_ascii=False),
        status_code=status_code,
        mimetype="application/json"
    )


def _error_response(code: str, message: str) -> HttpResponse:
    error = CommandError(code, message)
    return _json_response(error.to_response(), error.status_code)


def _callable(route, req: HttpRequest, user_id: str) -> HttpResponse:
    try:
        data = get_callable_data(req)
    except ValueError as ve:
        logger.warning("Bad callable payload: %s", str(ve))
        return _error_response(INVALID_ARGUMENT, "Invalid JSON input.")
    response, status_code = route(user_id, data)
    return _json_response(response, status_code)


@token_required
def create_staff_user_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """
    POST /createStaffUser  {"data": {"name", "email", "password", "role"}}
    """
    try:
        return _callable(create_staff_user, req, user_id)
    except Exception as e:
        logger.exception("Error in createStaffUser endpoint: %s", str(e))
        return _error_response(INTERNAL, MSG_GENERIC)


@token_required
def set_staff_role_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """
    POST /setStaffRole  {"data": {"uid", "role"}}
    """
    try:
        return _callable(set_staff_role, req, user_id)
    except Exception as e:
        logger.exception("Error in setStaffRole endpoint: %s", str(e))
        return _error_response(INTERNAL, MSG_GENERIC)


@token_required
def set_staff_active_handler(req: HttpRequest, user_id: str) -> HttpResponse:
    """
    POST /setStaffActive  {"data": {"uid", "active"}}
    """
    try:
        return _callable(set_staff_active, req, user_id)
    except Exception as e:
        logger.exception("Error in setStaffActive endpoint: %s", str(e))
        return _error_response(INTERNAL, MSG_GENERIC)


def login(req: HttpRequest) -> HttpResponse:
    try:
        try:
            req_body = req.get_json()
        except ValueError:
            return _error_response(INVALID_ARGUMENT, "Invalid JSON input.")
        email = (req_body or {}).get("email")
        password = (req_body or {}).get("password")

        if not email or not password:
            return _error_response(INVALID_ARGUMENT, "Missing credentials")

        response, status_code = login_user(email, password, get_client_ip(req))
        return _json_response(response, status_code)
    except Exception as e:
        logger.exception("Error in login endpoint: %s", str(e))
        return _error_response(INTERNAL, MSG_GENERIC)
