# studio_calendar/models.py

from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field, ValidationError, field_validator

from studio_calendar.errors import EventValidationError
from studio_calendar.timeutils import is_half_hour, parse_date


# -----------------------
# Roles & view modes
# -----------------------
class Role(str, Enum):
    admin = "admin"
    staff = "staff"


def normalize_role(role) -> str:
    """Anything other than "admin" is coerced to "staff"."""
    if isinstance(role, Role):
        role = role.value
    return Role.admin.value if role == Role.admin.value else Role.staff.value


class ViewMode(str, Enum):
    month = "month"
    week = "week"
    day = "day"


ALL_STAFF = "all"

EVENT_FIELDS = (
    "date", "time", "serviceType", "reserverType",
    "brideName", "groomName", "brideContact", "groomContact",
    "assignee", "notes",
)


# -----------------------
# Event Model
# -----------------------
class Event(BaseModel):
    id: str = ""
    date: str  # YYYY-MM-DD
    time: str  # HH:MM, :00 or :30
    serviceType: str = ""
    reserverType: str = ""
    brideName: str = ""
    groomName: str = ""
    brideContact: str = ""
    groomContact: str = ""
    assignee: str = ""
    notes: str = ""
    createdAt: Optional[str] = None
    createdByUid: Optional[str] = None
    createdByName: Optional[str] = None
    updatedAt: Optional[str] = None
    updatedByUid: Optional[str] = None
    updatedByName: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "Event":
        data = {key: value for key, value in doc.items() if not key.startswith("_")}
        data["id"] = str(doc.get("id", ""))
        for key in EVENT_FIELDS:
            if data.get(key) is None:
                data[key] = ""
        return cls(**data)

    def fields(self) -> dict:
        return self.model_dump(include=set(EVENT_FIELDS))


class EventDraft(BaseModel):
    """
    Form payload for creating (id empty) or updating (id set) an event.
    Mandatory fields must be non-empty and the time must sit on a half hour.
    """

    id: Optional[str] = None
    date: str
    time: str
    serviceType: str
    reserverType: str
    brideName: str = ""
    groomName: str = ""
    brideContact: str = ""
    groomContact: str = ""
    assignee: str
    notes: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def strip_strings(cls, value):
        if isinstance(value, str):
            return value.strip()
        return "" if value is None else value

    @field_validator("date", "time", "serviceType", "reserverType", "assignee")
    @classmethod
    def required(cls, value: str) -> str:
        if not value:
            raise ValueError("필수 항목입니다.")
        return value

    @field_validator("date")
    @classmethod
    def valid_date(cls, value: str) -> str:
        try:
            parse_date(value)
        except ValueError:
            raise ValueError("날짜 형식은 YYYY-MM-DD 입니다.")
        return value

    @field_validator("time")
    @classmethod
    def half_hour(cls, value: str) -> str:
        if not is_half_hour(value):
            raise ValueError("시간은 정각 또는 30분 단위로 입력해 주세요.")
        return value

    @classmethod
    def parse(cls, payload: dict) -> "EventDraft":
        """Validates a raw form payload, raising EventValidationError on any problem."""
        try:
            return cls(**payload)
        except ValidationError as ve:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in ve.errors()
            ]
            raise EventValidationError(problems) from ve

    def fields(self) -> dict:
        return self.model_dump(include=set(EVENT_FIELDS))


# -----------------------
# Staff (profile) Model
# -----------------------
class StaffUser(BaseModel):
    id: str = ""
    name: str = ""
    email: str = ""
    role: str = Role.staff.value
    active: bool = True
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, value):
        return normalize_role(value)

    @property
    def is_active_admin(self) -> bool:
        return self.role == Role.admin.value and self.active

    @classmethod
    def from_document(cls, doc: dict) -> "StaffUser":
        data = {key: value for key, value in doc.items() if not key.startswith("_")}
        data["id"] = str(doc.get("id", ""))
        if data.get("active") is None:
            data["active"] = True
        return cls(**data)


# -----------------------
# Auth credential Model
# -----------------------
class Account(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    passwordHash: str
    displayName: str = ""
    disabled: bool = False


class AuthUser(BaseModel):
    """Identity reported by the auth collaborator after sign-in."""
    uid: str
    email: str = ""


class CurrentUser(BaseModel):
    uid: str
    email: str = ""
    name: str
    role: str = Role.staff.value
    active: bool = True

    @classmethod
    def from_profile(cls, auth_user: AuthUser, profile: dict) -> "CurrentUser":
        return cls(
            uid=auth_user.uid,
            email=auth_user.email or "",
            name=profile.get("name") or auth_user.email or "직원",
            role=normalize_role(profile.get("role") or Role.staff.value),
            active=profile.get("active") is not False,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value
