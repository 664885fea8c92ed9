"""
Relational model for provider onboarding.

- EHR systems describe third-party EHR API integrations
- Healthcare providers are onboarded organizations, optionally linked to one EHR
- Data fetch history is an append-only record of completed data pulls
- Audit log captures every mutation made through the storage layer
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from provider_onboarding.models.database import Base

PROVIDER_TYPES = ("Hospital", "Clinic", "Private Practice", "SpecialistCenter", "Other")
PROVIDER_STATUSES = ("Active", "Inactive", "Pending", "Error")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# User – authentication identity
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, unique=True, nullable=False)
    password = Column(Text, nullable=False, comment="scrypt hash, never plaintext")


# ---------------------------------------------------------------------------
# EHR System – external EHR API integration
# ---------------------------------------------------------------------------
class EhrSystem(Base):
    __tablename__ = "ehr_systems"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    system_name = Column(String(255), unique=True, nullable=False)
    system_version = Column(String(50))
    api_endpoint = Column(String(255), comment="Base URL for the EHR API")
    documentation_link = Column(String(255))
    auth_url = Column(String(255), comment="Authorization URL")
    con_url = Column(String(255), comment="Connection URL")
    bulkfhir_url = Column(String(255), comment="Bulk FHIR URL")
    additional_notes = Column(Text)
    is_supported = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    providers = relationship("HealthcareProvider", back_populates="ehr_system")


# ---------------------------------------------------------------------------
# Healthcare Provider – onboarded organization
# ---------------------------------------------------------------------------
class HealthcareProvider(Base):
    __tablename__ = "healthcare_providers"

    id = Column("provider_id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_name = Column(String(255), nullable=False)
    provider_type = Column(Text, nullable=False)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(20), nullable=False)
    address = Column(Text)
    ehr_id = Column(Uuid(as_uuid=True), ForeignKey("ehr_systems.id"), nullable=True)
    ehr_tenant_id = Column(String(255), comment="Tenant ID for multi-tenant EHR APIs")
    ehr_group_id = Column(String(255), comment="Group whose data is fetched from the EHR")
    onboarded_date = Column(DateTime, default=_utcnow, nullable=False)
    last_data_fetch = Column(DateTime, nullable=True)
    status = Column(Text, default="Pending", nullable=False)
    notes = Column(Text)

    ehr_system = relationship("EhrSystem", back_populates="providers")
    fetch_history = relationship("DataFetchHistory", back_populates="provider")

    __table_args__ = (
        Index("ix_providers_ehr_id", "ehr_id"),
        Index("ix_providers_name", "provider_name"),
    )


# ---------------------------------------------------------------------------
# Data Fetch History – one row per completed fetch
# ---------------------------------------------------------------------------
class DataFetchHistory(Base):
    __tablename__ = "data_fetch_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(
        Uuid(as_uuid=True), ForeignKey("healthcare_providers.provider_id"), nullable=False
    )
    fetch_date = Column(DateTime, default=_utcnow, nullable=False)
    s3_location = Column(Text, nullable=False, comment="Where the fetched payload was stored")
    status = Column(Text, default="completed", nullable=False)

    provider = relationship("HealthcareProvider", back_populates="fetch_history")

    __table_args__ = (
        Index("ix_fetch_history_provider", "provider_id"),
        Index("ix_fetch_history_date", "fetch_date"),
    )


# ---------------------------------------------------------------------------
# Audit Log – immutable compliance trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="create | update | delete")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=False)
    detail = Column(JSON().with_variant(JSONB, "postgresql"), comment="Context for the action")
    timestamp = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)
