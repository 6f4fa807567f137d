"""Profile rows mirrored from identity-provider claims."""

import logging

from sqlalchemy.orm import Session

from coderoom.core.security import IdentityClaims
from coderoom.models import User

logger = logging.getLogger(__name__)


def sync_user_profile(db: Session, claims: IdentityClaims) -> User:
    """Create the profile on first sight; refresh name and avatar afterwards."""
    user = db.get(User, claims.user_id)
    if user is None:
        user = User(id=claims.user_id, username=claims.username, avatar_url=claims.avatar_url)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created profile for user %s", user.id)
        return user

    if user.username != claims.username or (claims.avatar_url and user.avatar_url != claims.avatar_url):
        user.username = claims.username
        if claims.avatar_url:
            user.avatar_url = claims.avatar_url
        db.commit()
        db.refresh(user)
    return user
