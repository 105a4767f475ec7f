"""Role check for write endpoints. Authentication happens upstream; the gateway forwards the role."""

import logging
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from matchday.core.config import settings

logger = logging.getLogger(__name__)

role_header = APIKeyHeader(name=settings.ROLE_HEADER, auto_error=False)


def require_roles(*roles: str):
    """Dependency factory: 403 unless the forwarded role is one of ``roles`` (default: WRITE_ROLES)."""
    allowed = {role.lower() for role in (roles or settings.WRITE_ROLES)}

    def verify_role(role: Optional[str] = Security(role_header)) -> str:
        if not role or role.strip().lower() not in allowed:
            logger.warning(f"🚫 Rejected write with role {role!r}, need one of {sorted(allowed)}")
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return role.strip().lower()

    return verify_role


require_editor = require_roles()
require_admin = require_roles("admin")
