from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class AccessToken(Base):
    """Opaque bearer token. Only the SHA-256 of the token is stored."""
    __tablename__ = "access_tokens"

    id         = Column(Integer, primary_key=True, index=True)
    userId     = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name       = Column(String(100), nullable=False)
    tokenHash  = Column(String(64), nullable=False, unique=True, index=True)
    createdAt  = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    lastUsedAt = Column(TIMESTAMP(timezone=True), nullable=True)

    # ─── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="access_tokens")

    def __repr__(self):
        return f"<AccessToken id={self.id} userId={self.userId} name={self.name}>"
