from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id        = Column(Integer, primary_key=True, index=True)
    name      = Column(String(255), nullable=False)
    email     = Column(String(255), unique=True, nullable=False, index=True)
    password  = Column(String(255), nullable=False)
    createdAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                       onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    access_tokens = relationship("AccessToken", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
