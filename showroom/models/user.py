"""ORM model for storefront and back-office user accounts."""

from sqlalchemy import Boolean, Column, DateTime, String, func

from showroom.models.base import Base, new_id


class User(Base):
    """
    User account for token authentication and role-based access control.

    role: 'user', 'admin' or 'super_admin'. Accounts are never hard-deleted;
    is_active=False soft-deactivates them.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    username = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
