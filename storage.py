# storage.py
"""
Postgres tables (any SQLAlchemy URL works; tests use SQLite).

Configured from DATABASE_URL. Without it the engine and session factory
are None and callers fall back to the in-memory presets.
"""
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "")

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


def _make_engine(url: str):
    if not url:
        return None
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine) if engine else None


# ----------------------------
# Models
# ----------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)  # Supabase auth user id
    email = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=True)
    type = Column(String, nullable=False, default="CLIENT")
    status = Column(String, nullable=False, default="PENDING")
    is_temporary_password = Column(Boolean, default=False)

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # soft delete
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String, nullable=True)
    deletion_reason = Column(Text, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "isTemporaryPassword": bool(self.is_temporary_password),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "deletedAt": _iso(self.deleted_at),
            "deletedBy": self.deleted_by,
            "deletionReason": self.deletion_reason,
        }


class FileUpload(Base):
    __tablename__ = "file_uploads"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, index=True, nullable=False)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    file_url = Column(String, nullable=True)
    category = Column(String, nullable=True)
    uploaded_at = Column(DateTime, default=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "fileUrl": self.file_url,
            "category": self.category,
            "uploadedAt": _iso(self.uploaded_at),
        }


class DeliveryConfigurationRecord(Base):
    __tablename__ = "delivery_configurations"

    id = Column(String, primary_key=True)
    client_name = Column(String, nullable=False)
    vendor_name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    payload = Column(JSON, nullable=False)  # full wire-shape configuration

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class CalculationHistory(Base):
    __tablename__ = "calculation_history"

    id = Column(String, primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=_utcnow, index=True)

    configuration_id = Column(String, index=True, nullable=True)
    user_id = Column(String, index=True, nullable=True)

    input_data = Column(JSON, nullable=False)
    customer_charges = Column(JSON, nullable=False)
    driver_payments = Column(JSON, nullable=False)
    customer_total = Column(Float, nullable=False)
    driver_total = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "configurationId": self.configuration_id,
            "userId": self.user_id,
            "inputData": self.input_data,
            "customerCharges": self.customer_charges,
            "driverPayments": self.driver_payments,
            "customerTotal": self.customer_total,
            "driverTotal": self.driver_total,
            "notes": self.notes,
            "createdAt": _iso(self.created_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def init_db() -> None:
    if engine:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")
