"""
Rate limiting for the credential endpoints (slowapi).

Limits are read from settings at request time so tests and deployments can
tune them through environment variables.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from api.src.config import get_settings


def login_limit() -> str:
    return get_settings().rate_limit_login


def register_limit() -> str:
    return get_settings().rate_limit_register


limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled
)
