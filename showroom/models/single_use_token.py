"""ORM model for password-reset and email-verification tokens."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, func

from showroom.models.base import Base, new_id


class SingleUseToken(Base):
    """
    Random opaque token granting one action.

    kind: 'password_reset' or 'email_verification'. email is set for
    verification tokens (the address being verified). A token is usable only
    while is_used is false and expires_at is in the future.
    """

    __tablename__ = "single_use_tokens"
    __table_args__ = (Index("ix_single_use_tokens_user_kind", "user_id", "kind"),)

    id = Column(String(36), primary_key=True, default=new_id)
    kind = Column(String(32), nullable=False)
    token = Column(String(128), nullable=False, unique=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    email = Column(String(320), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
