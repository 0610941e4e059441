"""Identity resolution: FastAPI dependencies exposing the caller's identity.

Public interface:
    ``IdentityContext`` - who is calling and which admin privileges apply.
    ``require_identity`` - resolves the caller from the ``X-User-Id`` header,
                           raises 401 when missing or unknown.
    ``require_admin``    - like ``require_identity``, raises 403 unless the
                           caller is an unrestricted admin.

Authentication itself happens upstream; the gateway in front of the API
forwards the authenticated user id in ``X-User-Id``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


@dataclass(frozen=True)
class IdentityContext:
    """Resolved caller identity handed explicitly to every service call.

    An unrestricted admin (superadmin) passes every permission check.
    A restricted admin gets no implicit access at all: only ownership and
    grants count, and the resolver denies before looking at grants.
    """

    user_id: str
    is_unrestricted_admin: bool = False
    is_restricted_admin: bool = False

    @classmethod
    def for_user(cls, user) -> "IdentityContext":
        is_admin = user.role == "admin"
        return cls(
            user_id=user.user_id,
            is_unrestricted_admin=is_admin and bool(user.is_superadmin),
            is_restricted_admin=is_admin and not user.is_superadmin,
        )


def require_identity(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> IdentityContext:
    """Resolve the caller from the gateway header. Raises 401 otherwise."""
    from ..models.user import User

    if not x_user_id:
        raise AuthenticationError(f"Missing {USER_ID_HEADER} header")

    user = db.query(User).filter(User.user_id == x_user_id).first()
    if user is None:
        logger.info("Rejected unknown identity", extra={"user_id": x_user_id})
        raise AuthenticationError("Unknown user")

    return IdentityContext.for_user(user)


def require_admin(
    identity: IdentityContext = Depends(require_identity),
) -> IdentityContext:
    """Require an unrestricted admin. Raises 403 otherwise."""
    if not identity.is_unrestricted_admin:
        raise PermissionDeniedError("Admin access required")
    return identity
