"""
Authentication service: registration, login and bearer token handling.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT token issue and resolution (python-jose)
- Registration with duplicate-email detection
- Login with a uniform failure for unknown email and wrong password
"""

import structlog
from typing import Optional
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from jose import JWTError, jwt
from pymongo.errors import PyMongoError

from api.src.config import Settings, get_settings
from api.src.exceptions import (
    DuplicateEmail, InvalidCredential, InvalidCredentials, ServerError,
    ValidationError
)
from api.src.models.user import (
    LoginRequest, LoginResponse, MessageResponse, RegisterRequest,
    TokenPayload, UserDB
)
from api.src.repositories.user_repo import UserRepository
from shared.metrics import AccountMetrics, get_account_metrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for registration, login and credential resolution."""

    def __init__(
        self,
        user_repo: UserRepository,
        settings: Optional[Settings] = None,
        metrics: Optional[AccountMetrics] = None
    ):
        """
        Initialize auth service.

        Args:
            user_repo: User repository
            settings: Settings (defaults to the cached application settings)
            metrics: Metrics sink (defaults to the process-wide instance)
        """
        self.user_repo = user_repo
        self.settings = settings or get_settings()
        self.metrics = metrics or get_account_metrics()

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.password_bcrypt_rounds
        )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            True if password matches, False otherwise (including unreadable hashes)
        """
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except ValueError as e:
            logger.error("password_verify_failed", error=str(e))
            return False

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_credential(self, user_id: str) -> str:
        """
        Create a bearer token bound to ``user_id``.

        Args:
            user_id: User ID

        Returns:
            JWT token string, valid for ``jwt_expire_days``
        """
        now = datetime.now(timezone.utc)
        expire = now + timedelta(days=self.settings.jwt_expire_days)

        payload = {
            "sub": user_id,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp())
        }

        token = jwt.encode(
            payload,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm
        )

        logger.info("access_token_created", user_id=user_id, expires_at=expire.isoformat())
        return token

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Decode and validate a JWT.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid, expired or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            return None

        if not payload.get("sub") or "exp" not in payload or "iat" not in payload:
            logger.warning("token_missing_claims")
            return None

        return TokenPayload(
            sub=str(payload["sub"]),
            exp=payload["exp"],
            iat=payload["iat"]
        )

    @trace_function("auth.resolve_credential")
    async def resolve_credential(self, token: Optional[str]) -> UserDB:
        """
        Resolve a bearer token to its user.

        Args:
            token: Raw token from the Authorization header

        Returns:
            The user the token was issued to

        Raises:
            InvalidCredential: Token missing, malformed, expired, or user gone
            ServerError: Store unavailable
        """
        if not token:
            logger.warning("auth_missing_token")
            raise InvalidCredential()

        payload = self.decode_token(token)
        if payload is None:
            raise InvalidCredential()

        try:
            user = await self.user_repo.get_user_by_id(payload.sub)
        except PyMongoError:
            raise ServerError()

        if user is None:
            logger.warning("auth_user_not_found", user_id=payload.sub)
            raise InvalidCredential()

        return user

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    @trace_function("auth.register")
    async def register(self, request: RegisterRequest) -> MessageResponse:
        """
        Create an account. Does not log the user in.

        Args:
            request: Registration fields

        Returns:
            Confirmation message

        Raises:
            ValidationError: Any field missing or empty
            DuplicateEmail: Email already registered
            ServerError: Store unavailable
        """
        if not request.username or not request.email or not request.password:
            self.metrics.auth_attempts.labels(operation="register", outcome="invalid").inc()
            raise ValidationError("All fields required")

        try:
            existing = await self.user_repo.get_user_by_email(request.email)
            if existing:
                logger.warning("register_duplicate_email")
                self.metrics.auth_attempts.labels(operation="register", outcome="duplicate").inc()
                raise DuplicateEmail()

            user = await self.user_repo.create_user(
                username=request.username,
                email=request.email,
                password_hash=self.hash_password(request.password)
            )
        except PyMongoError:
            self.metrics.auth_attempts.labels(operation="register", outcome="error").inc()
            raise ServerError()

        self.metrics.auth_attempts.labels(operation="register", outcome="success").inc()
        logger.info("user_registered", user_id=user.id)
        return MessageResponse(message="Registration successful")

    @trace_function("auth.login")
    async def login(self, request: LoginRequest) -> LoginResponse:
        """
        Verify credentials and issue a token.

        Args:
            request: Email and password

        Returns:
            Token and redacted user view

        Raises:
            InvalidCredentials: Unknown email or wrong password (same message)
            ServerError: Store unavailable
        """
        if not request.email or not request.password:
            self.metrics.auth_attempts.labels(operation="login", outcome="failure").inc()
            raise InvalidCredentials()

        try:
            user = await self.user_repo.get_user_by_email(request.email)
        except PyMongoError:
            self.metrics.auth_attempts.labels(operation="login", outcome="error").inc()
            raise ServerError()

        if user is None:
            # Same bcrypt cost as a real check
            self.pwd_context.dummy_verify()
            logger.warning("authentication_failed")
            self.metrics.auth_attempts.labels(operation="login", outcome="failure").inc()
            raise InvalidCredentials()

        if not self.verify_password(request.password, user.password_hash):
            logger.warning("authentication_failed")
            self.metrics.auth_attempts.labels(operation="login", outcome="failure").inc()
            raise InvalidCredentials()

        token = self.issue_credential(user.id)
        self.metrics.auth_attempts.labels(operation="login", outcome="success").inc()
        logger.info("login_success", user_id=user.id)

        return LoginResponse(token=token, user=user.to_summary())
