# studio_calendar/auth.py

import datetime
import jwt
from azure.functions import HttpRequest, HttpResponse
from functools import wraps
import json
import logging
from dotenv import load_dotenv
import os

from studio_calendar.config import JWT_ALGORITHM
from studio_calendar.errors import MSG_LOGIN_REQUIRED, UNAUTHENTICATED, CommandError

load_dotenv()

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", 12))

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def issue_token(uid: str, email: str) -> str:
    if not JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "userId": uid,
        "email": email,
        "iat": now,
        "exp": now + datetime.timedelta(hours=JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _unauthenticated(message: str = MSG_LOGIN_REQUIRED) -> HttpResponse:
    error = CommandError(UNAUTHENTICATED, message)
    return HttpResponse(
        json.dumps(error.to_response(), ensure_ascii=False),
        status_code=error.status_code,
        mimetype="application/json"
    )


def token_required(func):
    @wraps(func)
    def wrapper(req: HttpRequest, *args, **kwargs):
        auth_header = req.headers.get("Authorization")
        if not auth_header:
            logger.warning("Authorization header missing")
            return _unauthenticated()

        try:
            token_type, token = auth_header.split(" ")
            if token_type.lower() != "bearer":
                logger.warning("Invalid token type")
                raise ValueError("Invalid token type")
        except ValueError:
            logger.warning("Invalid Authorization header format")
            return _unauthenticated()

        if not JWT_SECRET:
            logger.error("JWT_SECRET is not configured; rejecting token")
            return _unauthenticated()

        try:
            payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
            user_id = payload.get("userId")
            if not user_id:
                raise jwt.InvalidTokenError("userId missing in token")
        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return _unauthenticated()
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {str(e)}")
            return _unauthenticated()

        # Pass user_id as a keyword argument
        return func(req, *args, user_id=user_id, **kwargs)
    return wrapper
