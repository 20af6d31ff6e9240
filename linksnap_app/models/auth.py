from sqlalchemy import Column, DateTime, ForeignKey, String
from linksnap_app.database.connection import Base
from linksnap_app.models.url import _new_id, _utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserSession(Base):
    """An issued access token. Signing out deletes the row."""
    __tablename__ = "sessions"

    access_token = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
