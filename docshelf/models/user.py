"""
User Model - Authentication and ownership root
"""

from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.orm import relationship
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow


class User(Base):
    """
    User model for authentication and API key ownership

    Attributes:
        id: Unique user identifier (UUID)
        email: User email (unique, indexed for fast lookup)
        name: Display name
        hashed_password: Bcrypt hashed password
        is_active: Whether user can authenticate
        created_at: Account creation timestamp
        updated_at: Last modification timestamp

    Relationships:
        api_keys: User's API keys (one-to-many)
        collections: User's collections (one-to-many)
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(50), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")
    collections = relationship("Collection", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
