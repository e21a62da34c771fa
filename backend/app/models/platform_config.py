"""Database model for platform configuration."""

from sqlalchemy import JSON, Column, DateTime, Text
from sqlalchemy.sql import func

from ..database import Base

COMMISSION_KEY = "commission"
BOOKING_RULES_KEY = "booking_rules"


class PlatformConfig(Base):
    """
    Key/value configuration stored as JSON.

    Known keys: ``commission`` and ``booking_rules``. Missing keys fall back
    to the defaults in app.core.config.
    """

    __tablename__ = "platform_config"

    key = Column(Text, primary_key=True, nullable=False)
    value_json = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<PlatformConfig key={self.key}>"


__all__ = ["PlatformConfig", "COMMISSION_KEY", "BOOKING_RULES_KEY"]
