"""Seed the bootstrap administrator on first startup.

Users are normally provisioned through ``POST /api/users``, which requires
an unrestricted admin. When BOOTSTRAP_ADMIN_ID is set and no such user
exists yet, one superadmin is created so that first request is possible.
Idempotent: skips if the user already exists.
"""

import logging

from sqlalchemy.orm import Session

from .config import settings

logger = logging.getLogger(__name__)


def seed_bootstrap_admin(db: Session) -> bool:
    """Create the bootstrap superadmin if configured and missing.

    Returns:
        True if a user was created.
    """
    from ..models.user import User
    from ..services.user_service import UserService
    from ..storage import get_object_store

    user_id = settings.bootstrap_admin_id
    if not user_id:
        return False

    if db.query(User).filter(User.user_id == user_id).first() is not None:
        logger.debug("Bootstrap admin %s already exists, skipping seed", user_id)
        return False

    UserService(db, get_object_store()).create_user(
        display_name=settings.bootstrap_admin_name,
        role="admin",
        is_superadmin=True,
        user_id=user_id,
    )
    logger.info("Seeded bootstrap admin %s", user_id)
    return True
