"""
SQLAlchemy ORM models package.

Re-exports all models for convenient imports.
"""

from app.db.models.user import UserModel
from app.db.models.message import MessageModel

__all__ = [
    "UserModel",
    "MessageModel",
]
