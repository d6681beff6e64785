# staff_routes.py

import logging
from typing import Optional, Tuple

import bcrypt
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from studio_calendar.auth import issue_token
from studio_calendar.database import (
    get_accounts_container,
    get_users_container,
    strip_system_fields,
    utc_now,
)
from studio_calendar.errors import (
    ALREADY_EXISTS,
    INTERNAL,
    INVALID_ARGUMENT,
    INVALID_CREDENTIAL,
    MSG_ACCOUNT_DISABLED,
    MSG_ADMIN_ONLY,
    MSG_EMAIL_EXISTS,
    MSG_GENERIC,
    MSG_LOGIN_REQUIRED,
    MSG_NOT_REGISTERED,
    MSG_PASSWORD_TOO_LONG,
    MSG_PASSWORD_TOO_SHORT,
    MSG_STAFF_FIELDS_REQUIRED,
    MSG_STAFF_NOT_FOUND,
    MSG_UID_REQUIRED,
    NOT_FOUND,
    PERMISSION_DENIED,
    UNAUTHENTICATED,
    USER_DISABLED,
    CommandError,
)
from studio_calendar.models import Account, Role, StaffUser, normalize_role
from studio_calendar.policy import enforce_staff_change

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MIN_PASSWORD_LENGTH = 4
# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def _text(data: dict, key: str) -> str:
    value = (data or {}).get(key)
    return str(value or "").strip()


def _internal_error(action: str, e: Exception) -> Tuple[dict, int]:
    logger.exception("Cosmos HTTP error during %s: %s", action, str(e))
    error = CommandError(INTERNAL, MSG_GENERIC)
    return error.to_response(), error.status_code


def read_profile(uid: str) -> Optional[dict]:
    try:
        doc = get_users_container().read_item(item=uid, partition_key=uid)
    except CosmosResourceNotFoundError:
        return None
    return strip_system_fields(doc)


def find_account_by_email(email: str) -> Optional[dict]:
    accounts = list(
        get_accounts_container().query_items(
            query="SELECT * FROM Accounts a WHERE a.email = @email",
            parameters=[{"name": "@email", "value": email}],
            enable_cross_partition_query=True
        )
    )
    return accounts[0] if accounts else None


def count_active_admins() -> int:
    result = list(
        get_users_container().query_items(
            query="SELECT VALUE COUNT(1) FROM Users u WHERE u.role = @role AND u.active = true",
            parameters=[{"name": "@role", "value": Role.admin.value}],
            enable_cross_partition_query=True
        )
    )
    return int(result[0]) if result else 0


def get_actor(caller_uid: Optional[str]) -> StaffUser:
    """Resolves the caller to an active staff profile."""
    if not caller_uid:
        raise CommandError(UNAUTHENTICATED, MSG_LOGIN_REQUIRED)
    profile = read_profile(caller_uid)
    if profile is None:
        raise CommandError(PERMISSION_DENIED, MSG_NOT_REGISTERED)
    actor = StaffUser.from_document(profile)
    if not actor.active:
        raise CommandError(PERMISSION_DENIED, MSG_ACCOUNT_DISABLED)
    return actor


def assert_admin(caller_uid: Optional[str]) -> StaffUser:
    actor = get_actor(caller_uid)
    if actor.role != Role.admin.value:
        logger.warning("User '%s' is not an admin", caller_uid)
        raise CommandError(PERMISSION_DENIED, MSG_ADMIN_ONLY)
    return actor


def check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise CommandError(INVALID_ARGUMENT, MSG_PASSWORD_TOO_SHORT)
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise CommandError(INVALID_ARGUMENT, MSG_PASSWORD_TOO_LONG)


def _create_account_and_profile(name: str, email: str, password: str, role: str) -> str:
    if find_account_by_email(email):
        raise CommandError(ALREADY_EXISTS, MSG_EMAIL_EXISTS)

    hashed_password = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    account = Account(email=email, passwordHash=hashed_password.decode("utf-8"), displayName=name)
    accounts = get_accounts_container()
    accounts.create_item(body=account.model_dump())

    now = utc_now()
    profile = StaffUser(id=account.id, name=name, email=email, role=role, active=True,
                        createdAt=now, updatedAt=now)
    try:
        get_users_container().create_item(body=profile.model_dump())
    except CosmosHttpResponseError:
        logger.error("Profile write failed for '%s'; removing credential '%s'", email, account.id)
        accounts.delete_item(item=account.id, partition_key=account.id)
        raise
    return account.id


def create_staff_user(caller_uid: Optional[str], data: dict) -> Tuple[dict, int]:
    """
    Creates the auth credential and the staff profile for a new account.
    Admin only. Returns {"ok": True, "uid": ...}.
    """
    logger.info("createStaffUser requested by '%s'", caller_uid)
    try:
        assert_admin(caller_uid)
        name = _text(data, "name")
        email = _text(data, "email").lower()
        password = _text(data, "password")
        role = normalize_role((data or {}).get("role"))

        if not name or not email or not password:
            raise CommandError(INVALID_ARGUMENT, MSG_STAFF_FIELDS_REQUIRED)
        check_password(password)

        uid = _create_account_and_profile(name, email, password, role)
        logger.info("Staff user '%s' (%s) created with role '%s'", uid, email, role)
        return {"result": {"ok": True, "uid": uid}}, 200

    except CommandError as e:
        logger.warning("createStaffUser rejected: %s %s", e.code, e.message)
        return e.to_response(), e.status_code
    except CosmosHttpResponseError as e:
        return _internal_error("createStaffUser", e)


def set_staff_role(caller_uid: Optional[str], data: dict) -> Tuple[dict, int]:
    logger.info("setStaffRole requested by '%s'", caller_uid)
    try:
        actor = assert_admin(caller_uid)
        uid = _text(data, "uid")
        role = normalize_role((data or {}).get("role"))
        if not uid:
            raise CommandError(INVALID_ARGUMENT, MSG_UID_REQUIRED)

        profile = read_profile(uid)
        if profile is None:
            raise CommandError(NOT_FOUND, MSG_STAFF_NOT_FOUND)
        target = StaffUser.from_document(profile)

        enforce_staff_change(actor.id, uid, target, count_active_admins, role=role)

        profile["role"] = role
        profile["updatedAt"] = utc_now()
        get_users_container().upsert_item(body=profile)
        logger.info("Role of '%s' set to '%s'", uid, role)
        return {"result": {"ok": True}}, 200

    except CommandError as e:
        logger.warning("setStaffRole rejected: %s %s", e.code, e.message)
        return e.to_response(), e.status_code
    except CosmosHttpResponseError as e:
        return _internal_error("setStaffRole", e)


def set_staff_active(caller_uid: Optional[str], data: dict) -> Tuple[dict, int]:
    """Updates the profile's active flag and mirrors it to the credential's disabled flag."""
    logger.info("setStaffActive requested by '%s'", caller_uid)
    try:
        actor = assert_admin(caller_uid)
        uid = _text(data, "uid")
        active = bool((data or {}).get("active"))
        if not uid:
            raise CommandError(INVALID_ARGUMENT, MSG_UID_REQUIRED)

        profile = read_profile(uid)
        if profile is None:
            raise CommandError(NOT_FOUND, MSG_STAFF_NOT_FOUND)
        target = StaffUser.from_document(profile)

        enforce_staff_change(actor.id, uid, target, count_active_admins, active=active)

        profile["active"] = active
        profile["updatedAt"] = utc_now()
        get_users_container().upsert_item(body=profile)

        accounts = get_accounts_container()
        try:
            account = strip_system_fields(accounts.read_item(item=uid, partition_key=uid))
        except CosmosResourceNotFoundError:
            logger.warning("No credential found for staff user '%s'", uid)
        else:
            account["disabled"] = not active
            accounts.upsert_item(body=account)

        logger.info("Active flag of '%s' set to %s", uid, active)
        return {"result": {"ok": True}}, 200

    except CommandError as e:
        logger.warning("setStaffActive rejected: %s %s", e.code, e.message)
        return e.to_response(), e.status_code
    except CosmosHttpResponseError as e:
        return _internal_error("setStaffActive", e)


def login_user(email: str, password: str, client_ip: str = "") -> Tuple[dict, int]:
    """Checks the credential and issues a bearer token for the staff account."""
    email = (email or "").strip().lower()
    logger.info("Received login request for '%s' from IP: %s", email, client_ip)
    try:
        secret = (password or "").encode("utf-8")
        account = find_account_by_email(email)
        if (
            not account
            or len(secret) > MAX_PASSWORD_BYTES
            or not bcrypt.checkpw(secret, account["passwordHash"].encode("utf-8"))
        ):
            logger.warning("Invalid credentials for '%s'", email)
            raise CommandError(INVALID_CREDENTIAL, "Invalid credentials")
        if account.get("disabled"):
            logger.warning("Disabled account '%s' attempted to log in", email)
            raise CommandError(USER_DISABLED, MSG_ACCOUNT_DISABLED)

        token = issue_token(account["id"], email)
        logger.info("'%s' logged in successfully", email)
        return {"result": {"uid": account["id"], "email": email, "token": token}}, 200

    except CommandError as e:
        return e.to_response(), e.status_code
    except CosmosHttpResponseError as e:
        return _internal_error("login", e)


def create_first_admin(name: str, email: str, password: str) -> str:
    """Bootstrap path: writes an active admin without a calling actor."""
    name = (name or "").strip()
    email = (email or "").strip().lower()
    password = (password or "").strip()
    if not name or not email or not password:
        raise CommandError(INVALID_ARGUMENT, MSG_STAFF_FIELDS_REQUIRED)
    check_password(password)
    uid = _create_account_and_profile(name, email, password, Role.admin.value)
    logger.info("First admin '%s' (%s) created", uid, email)
    return uid
