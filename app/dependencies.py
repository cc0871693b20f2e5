from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.services.account_service import AccountService, account_service
from app.services.token_issuer import token_issuer
from app.utils.exceptions import UnauthorizedException

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Services ─────────────────────────────────────────────────────────────────
def get_account_service() -> AccountService:
    """Process-wide account service; overridden in tests."""
    return account_service


# ─── Get Current User ─────────────────────────────────────────────────────────
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the opaque Bearer token to its User.
    Raises 401 if the token is missing or unknown.
    """
    if not credentials:
        raise UnauthorizedException("No authentication token provided")

    user = token_issuer.resolve(db, credentials.credentials)
    if user is None:
        raise UnauthorizedException("Invalid or revoked token")

    return user
