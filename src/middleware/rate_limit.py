from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config.settings import settings

# Initialize limiter keyed on the client address
# default_limits can be overridden per route
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
