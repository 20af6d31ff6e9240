import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from linksnap_app.database.connection import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortURL(Base):
    """
    One shortened link.

    The unique constraints are the real enforcement of "one code, one row"
    and "one row per user"; the service layer only pre-checks them.
    """
    __tablename__ = "urls"
    __table_args__ = (
        CheckConstraint("clicks >= 0", name="urls_clicks_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    original_url = Column(String, nullable=False)
    short_code = Column(String(20), unique=True, nullable=False, index=True)
    clicks = Column(Integer, nullable=False, default=0)
    is_custom = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
