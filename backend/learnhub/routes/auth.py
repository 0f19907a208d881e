"""
LearnHub Backend: Demo Login Route
====================================

What:  POST /api/auth with action "login" or "register" against the demo
       accounts in settings.demo_users.
How:   Login compares usernames case-insensitively; register only validates
       and never stores anything. This is a placeholder for the demo UI and
       does not protect any other endpoint.
"""

import logging

from fastapi import APIRouter

from learnhub.config import settings
from learnhub.exceptions import AuthenticationError, ConflictError, ValidationError
from learnhub.schemas.auth import AuthRequest, AuthResponse, AuthUser
from learnhub.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def find_demo_user(username: str, password: str):
    """Returns the matching AuthUser, or None. Ids are 1-based positions."""
    for position, (name, secret) in enumerate(settings.demo_users.items(), 1):
        if name.lower() == username.lower() and secret == password:
            return AuthUser(id=str(position), username=name)
    return None


@router.post(
    "/auth",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid action or field", "model": ErrorResponse},
        401: {"description": "Wrong credentials", "model": ErrorResponse},
        409: {"description": "Username taken", "model": ErrorResponse},
    },
    summary="Demo login / register",
)
async def auth(body: AuthRequest) -> AuthResponse:
    if body.action == "login":
        user = find_demo_user(body.username or "", body.password or "")
        if user is None:
            logger.info("Demo login rejected for '%s'", body.username)
            raise AuthenticationError()
        logger.info("Demo login for '%s'", user.username)
        return AuthResponse(user=user)

    if body.action == "register":
        if not body.username or len(body.username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                message="Username must be at least 3 characters long", field="username"
            )
        if not body.password or len(body.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message="Password must be at least 6 characters long", field="password"
            )
        taken = {name.lower() for name in settings.demo_users}
        if body.username.lower() in taken:
            raise ConflictError(
                message="Username already exists. Please choose a different username."
            )
        return AuthResponse(message="Registration successful")

    raise ValidationError(message="Invalid action", field="action")
