"""Rate limiting using slowapi.

A module-level Limiter keyed on client IP. Write endpoints of the leave
router carry an explicit ``@limiter.limit(settings.LEAVE_WRITE_RATE_LIMIT)``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backoffice.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)
