"""
RefreshToken model: one row per active session so refresh tokens can be revoked and rotated.
Fields:
- token (the signed refresh JWT, not unique; rotation consumes rows atomically)
- user_id (Integer) - FK to users.id
- created_at
"""
from sqlalchemy import Column, Integer, Text, ForeignKey, Index

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (
        Index("ix_refresh_tokens_token", "token"),
    )

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id}>"
