import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.user import User
from app.models.access_token import AccessToken
from app.utils.security import generate_access_token, hash_token
from app.utils.exceptions import IdentityError

logger = logging.getLogger(__name__)


class TokenIssuer:

    # ─── Issue ────────────────────────────────────────────────────────────────
    def issue(self, db: Session, user_id: int, name: str = "user-token") -> str:
        """
        Create a bearer token bound to user_id.
        The plaintext is returned exactly once; only its hash is persisted.
        """
        if db.get(User, user_id) is None:
            raise IdentityError(user_id)

        token = generate_access_token()
        db.add(AccessToken(userId=user_id, name=name, tokenHash=hash_token(token)))
        db.commit()

        logger.info(f"Issued {name} for user {user_id}")
        return token

    # ─── Resolve ──────────────────────────────────────────────────────────────
    def resolve(self, db: Session, token: str) -> User | None:
        """Return the user a token was issued to, or None for unknown tokens."""
        stored = db.query(AccessToken).filter(AccessToken.tokenHash == hash_token(token)).first()
        if not stored:
            return None

        stored.lastUsedAt = datetime.now(timezone.utc)
        db.commit()
        return stored.user


token_issuer = TokenIssuer()
