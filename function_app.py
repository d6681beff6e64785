# function_app.py

import azure.functions as func
import logging

from studio_calendar.main import (
    login,
    create_staff_user_handler,
    set_staff_role_handler,
    set_staff_active_handler,
)


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Ensure that handlers are added only once
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

# Callers authenticate with the bearer token issued by /login
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)


@app.route(route="login", methods=["POST"])
def login_function(req: func.HttpRequest) -> func.HttpResponse:
    return login(req)


# Staff management (admin only; checked server-side)
@app.route(route="createStaffUser", methods=["POST"])
def create_staff_user_function(req: func.HttpRequest) -> func.HttpResponse:
    return create_staff_user_handler(req)


@app.route(route="setStaffRole", methods=["POST"])
def set_staff_role_function(req: func.HttpRequest) -> func.HttpResponse:
    return set_staff_role_handler(req)


@app.route(route="setStaffActive", methods=["POST"])
def set_staff_active_function(req: func.HttpRequest) -> func.HttpResponse:
    return set_staff_active_handler(req)
