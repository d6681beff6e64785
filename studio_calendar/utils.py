import logging

import azure.functions as func

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

def get_client_ip(req: func.HttpRequest) -> str:
    """
    Extracts the client IP address from the HttpRequest.
    """
    x_forwarded_for = req.headers.get('X-Forwarded-For')
    if x_forwarded_for:
        # X-Forwarded-For may contain multiple IPs; the first is the client's IP
        ip = x_forwarded_for.split(',')[0].strip()
        return ip
    else:
        # Fallback to REMOTE_ADDR if X-Forwarded-For is not present
        return req.headers.get('REMOTE_ADDR', '')


def get_callable_data(req: func.HttpRequest) -> dict:
    """
    Reads the {"data": {...}} envelope of a callable request.
    Raises ValueError when the body is not a JSON object.
    """
    body = req.get_json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    data = body.get("data", {})
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("'data' must be a JSON object")
    return data
