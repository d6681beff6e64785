# studio_calendar/config.py

import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

USERS_CONTAINER = "Users"
EVENTS_CONTAINER = "Events"
ACCOUNTS_CONTAINER = "Accounts"

JWT_ALGORITHM = "HS256"


class ConfigError(RuntimeError):
    """Raised when the backend project identity is missing."""


class BackendConfig(BaseModel):
    project_id: str
    cosmos_connection_string: Optional[str] = None
    database_name: str = "StudioCalendarDB"
    functions_base_url: str = "http://localhost:7071/api/"
    jwt_secret: Optional[str] = None
    jwt_expiry_hours: int = 12
    poll_interval: float = 2.0


def load_config(env: Optional[dict] = None) -> BackendConfig:
    """
    Builds the backend configuration from the environment (after .env is loaded).
    A missing STUDIO_PROJECT_ID is fatal for both the client and the function app.
    """
    env = os.environ if env is None else env

    project_id = (env.get("STUDIO_PROJECT_ID") or "").strip()
    if not project_id:
        logger.error("STUDIO_PROJECT_ID is not configured.")
        raise ConfigError("STUDIO_PROJECT_ID 설정이 필요합니다.")

    base_url = env.get("FUNCTIONS_BASE_URL", "http://localhost:7071/api/")
    if not base_url.endswith("/"):
        base_url += "/"

    return BackendConfig(
        project_id=project_id,
        cosmos_connection_string=env.get("COSMOS_CONNECTION_STRING"),
        database_name=env.get("COSMOS_DATABASE_NAME", "StudioCalendarDB"),
        functions_base_url=base_url,
        jwt_secret=env.get("JWT_SECRET"),
        jwt_expiry_hours=int(env.get("JWT_EXPIRY_HOURS", 12)),
        poll_interval=float(env.get("SYNC_POLL_SECONDS", 2.0)),
    )
