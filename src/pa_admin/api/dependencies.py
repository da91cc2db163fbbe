"""FastAPI dependency: require_admin_key.

Authentication proper lives in the platform in front of this service; the
admin trigger only checks a shared key so cron-adjacent tooling can call it.

Usage:
    @router.post("/protected", dependencies=[Depends(require_admin_key)])
"""

import hmac

from fastapi import Header

from config.settings import settings
from src.pa_common.errors import InvalidAdminKeyError


async def require_admin_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Raise 401 (InvalidAdminKeyError) unless X-Admin-Key matches ADMIN_API_KEY."""
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        raise InvalidAdminKeyError()
