from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from coderoom.database import get_db
from coderoom.core.security import verify_identity_token
from coderoom.models.user import User
from coderoom.services.channel import ChannelRegistry
from coderoom.services.execution_gateway import ExecutionGateway
from coderoom.services.users import sync_user_profile

# HTTP Bearer token scheme
security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get the current user from an identity-provider JWT."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = verify_identity_token(credentials.credentials)
    if claims is None:
        raise credentials_exception

    try:
        return sync_user_profile(db, claims)
    except SQLAlchemyError:
        db.rollback()
        # Surface a clearer error if the DB is not reachable instead of a generic 500
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable while validating credentials"
        )


def get_channel_registry(request: Request) -> ChannelRegistry:
    return request.app.state.channel_registry


def get_execution_gateway(request: Request) -> ExecutionGateway:
    return request.app.state.execution_gateway
