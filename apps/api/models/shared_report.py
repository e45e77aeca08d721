"""SharedReport model for public report links."""

from sqlalchemy import Column, DateTime, Index, JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from database import Base


# JSONB on Postgres, plain JSON everywhere else (SQLite in tests).
PayloadJSON = JSON().with_variant(JSONB(), "postgresql")


class SharedReport(Base):
    """Audit payload published under a short, expiring identifier."""

    __tablename__ = "shared_reports"

    short_id = Column(String, primary_key=True)
    audit_result = Column(PayloadJSON, nullable=False)
    lighthouse_data = Column(PayloadJSON, nullable=True)
    website = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_shared_reports_expires_at", "expires_at"),
    )
