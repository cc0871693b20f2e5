"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Order matters — import parent tables before child tables.
"""

from app.models.user import User
from app.models.access_token import AccessToken

__all__ = [
    "User",
    "AccessToken",
]
