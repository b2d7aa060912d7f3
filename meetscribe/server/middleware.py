"""Request middleware: bearer-token auth and JSON error responses."""

import logging
from typing import Any, Dict

from aiohttp import web

from .keys import AUTH_TOKENS_KEY, CONFIG_KEY

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/api/transcription"


def error_response(status: int, error: str, message: str) -> web.Response:
    return web.json_response({"success": False, "error": error, "message": message}, status=status)


def _auth_context(token: str) -> Dict[str, Any]:
    return {"user": f"token:...{token[-4:]}" if len(token) > 4 else "token", "token": token}


@web.middleware
async def auth_middleware(request: web.Request, handler):
    """Require ``Authorization: Bearer <token>`` on transcription routes.

    With no configured tokens, development servers accept any token;
    production servers reject everything.
    """
    if not request.path.startswith(PROTECTED_PREFIX):
        return await handler(request)

    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        logger.warning(f"No authentication token on {request.method} {request.path}")
        return error_response(401, "Unauthorized", "No authentication token provided")

    token = header[len("Bearer "):].strip()
    tokens = request.app[AUTH_TOKENS_KEY]
    if tokens:
        accepted = token in tokens
    else:
        accepted = bool(token) and not request.app[CONFIG_KEY].is_production
    if not accepted:
        logger.warning(f"Rejected authentication token on {request.method} {request.path}")
        return error_response(401, "Unauthorized", "Invalid authentication token")

    request["auth_context"] = _auth_context(token)
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Turn HTTP errors and unexpected exceptions into the JSON error shape."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_response(e.status, e.reason, e.text or e.reason)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return error_response(500, "Server Error", "Internal Server Error")
