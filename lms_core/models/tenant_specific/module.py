# lms_core/models/tenant_specific/module.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from ..base import TenantBase


class Module(TenantBase):
    __tablename__ = "modules"

    title = Column(String(200), nullable=False, index=True)
    subject = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=True)
    difficulty = Column(String(20), nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    published = Column(Boolean, default=False, nullable=False)

    created_by = Column(UUID(as_uuid=True), nullable=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
