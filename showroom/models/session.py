"""ORM model for refresh-token sessions."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func

from showroom.models.base import Base, new_id


class AuthSession(Base):
    """One row per issued refresh token; deleting the row revokes the token."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    refresh_token = Column(Text, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
