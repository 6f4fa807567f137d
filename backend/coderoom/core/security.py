from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
from jose import JWTError, jwt
from coderoom.core.config import settings
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityClaims:
    """The only facts the core needs from the identity provider."""

    user_id: UUID
    username: str
    avatar_url: Optional[str] = None


def _username_from_claims(payload: dict) -> str:
    name = (payload.get("name") or payload.get("username") or "").strip()
    if name:
        return name
    email = payload.get("email") or ""
    if "@" in email:
        return email.split("@", 1)[0]
    return "Anonymous"


def verify_identity_token(token: str) -> Optional[IdentityClaims]:
    """Verify an identity-provider JWT and return its claims, or None."""
    options = {"verify_iss": bool(settings.IDENTITY_JWT_ISSUER)}
    try:
        payload = jwt.decode(
            token,
            settings.IDENTITY_JWT_SECRET,
            algorithms=[settings.IDENTITY_JWT_ALGORITHM],
            issuer=settings.IDENTITY_JWT_ISSUER,
            options=options,
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None
    try:
        user_id = UUID(str(subject))
    except ValueError:
        logger.info("Rejected identity token with non-UUID subject")
        return None

    return IdentityClaims(
        user_id=user_id,
        username=_username_from_claims(payload),
        avatar_url=payload.get("avatar_url"),
    )


def create_identity_token(
    user_id: UUID,
    name: Optional[str] = None,
    avatar_url: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token the way the identity provider does (development and tests)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=30))
    to_encode = {
        "sub": str(user_id),
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }
    if name:
        to_encode["name"] = name
    if avatar_url:
        to_encode["avatar_url"] = avatar_url
    if settings.IDENTITY_JWT_ISSUER:
        to_encode["iss"] = settings.IDENTITY_JWT_ISSUER
    return jwt.encode(to_encode, settings.IDENTITY_JWT_SECRET, algorithm=settings.IDENTITY_JWT_ALGORITHM)
