"""
Edge authentication for protected API paths.

Runs before routing: requests to a protected path without a valid access
token are answered with 401 here and never reach a router. The verified
user id is placed on request.state.user_id for downstream handlers.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from healthinfo.core.config import Settings
from healthinfo.core.security import get_token_from_request, verify_token_for_middleware

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = (
    "/api/auth/revoke",
    "/api/clients",
    "/api/programs",
    "/api/enrollments",
)


def is_protected(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


class AuthMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        # CORS preflight carries no credentials
        if request.method == "OPTIONS" or not is_protected(request.url.path):
            return await call_next(request)

        token = get_token_from_request(request.headers)
        if token is None:
            logger.info(f"Rejected unauthenticated request to {request.url.path}")
            return JSONResponse(
                status_code=401,
                content={"detail": "Authentication required."},
                headers={"WWW-Authenticate": "Bearer"},
            )

        payload = await verify_token_for_middleware(token, self.settings)
        if payload is None:
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or expired token."},
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.user_id = payload.user_id
        return await call_next(request)
