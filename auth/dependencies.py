"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and roles.

Authentication uses the Authorization: Bearer <token> header only; tokens are
verified statelessly through the AuthService stored on app.state, then the
user is reloaded from the store so a deleted account stops working at once.

get_current_user() raises HTTP 401 if unauthenticated.
require_role(*roles) builds a dependency that also raises HTTP 403 when the
user's role is not in the allowed set. require_admin and
require_gestor_or_admin are the two guards the routes use.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.errors import ExpiredTokenError, InvalidTokenError
from auth.models import Role, User
from auth.service import AuthService


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(request: Request) -> User:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized("No authorization header provided")

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    auth_service: AuthService = request.app.state.auth_service
    try:
        claims = auth_service.verify_token(parts[1])
    except ExpiredTokenError as exc:
        raise _unauthorized("Token expired") from exc
    except InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    user = request.app.state.user_store.find_by_id(claims.id)
    if user is None:
        raise _unauthorized("Invalid token")
    return user


def require_role(*allowed: Role) -> Callable[[Request], User]:
    """Build a dependency that admits only users whose role is in `allowed`.

    Example:
        @router.post("/projects")
        def route(user: User = Depends(require_role(Role.admin, Role.gestor))): ...
    """
    allowed_values = ", ".join(r.value for r in allowed)

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail={
                    "code": "forbidden",
                    "message": f"Access denied. Required role(s): {allowed_values}. Your role: {user.role.value}",
                },
            )
        return user

    return dependency


require_admin = require_role(Role.admin)
require_gestor_or_admin = require_role(Role.admin, Role.gestor)
