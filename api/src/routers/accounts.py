"""
Account router: registration and login.

Both endpoints are public. Registration only creates the account; the
client must call ``/login`` afterwards to obtain a bearer token.
"""

import structlog
from fastapi import APIRouter, Depends, Request, status

from api.src.dependencies import get_auth_service
from api.src.models.user import (
    ErrorResponse, LoginRequest, LoginResponse, MessageResponse, RegisterRequest
)
from api.src.rate_limit import limiter, login_limit, register_limit
from api.src.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

accounts_router = APIRouter(
    tags=["Accounts"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or credentials"},
        429: {"model": ErrorResponse, "description": "Too many attempts"}
    }
)


@accounts_router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Register",
    description="""
    Create an account.

    **Authentication:** Not required (public endpoint)

    **Error Responses:**
    - 400: `All fields required` or `User already exists`
    """,
    responses={
        400: {
            "description": "Missing field or duplicate email",
            "model": ErrorResponse,
            "content": {
                "application/json": {
                    "example": {"error": "User already exists"}
                }
            }
        }
    }
)
@limiter.limit(register_limit)
async def register(
    request: Request,
    register_request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    """
    Register a new user.

    Args:
        request: HTTP request (used for rate limiting)
        register_request: Username, email and password
        auth_service: Authentication service

    Returns:
        Confirmation message
    """
    logger.info("register_attempt")
    return await auth_service.register(register_request)


@accounts_router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="""
    Authenticate with email and password.

    **Authentication:** Not required (public endpoint)

    **Success Response (200):**
    - token: bearer token, valid for 7 days
    - user: username, email, preferences, favourites

    **Error Responses:**
    - 400: `Invalid credentials` (same for unknown email and wrong password)
    """
)
@limiter.limit(login_limit)
async def login(
    request: Request,
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return a token with the user view.

    Args:
        request: HTTP request (used for rate limiting)
        login_request: Login credentials
        auth_service: Authentication service

    Returns:
        Token and user view
    """
    logger.info("login_attempt")
    return await auth_service.login(login_request)
