"""Operator-set key/value settings. A row here overrides the matching environment default."""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime
from bulletin.database import Base


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
