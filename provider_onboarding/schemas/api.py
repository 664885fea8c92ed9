"""Pydantic models for API response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Reads ORM rows by attribute, emits camelCase JSON."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


def to_columns(values: dict[str, Any], model: type[ApiModel]) -> dict[str, Any]:
    """Re-key a camelCase payload by the ORM attribute names ``model`` reads."""
    by_alias = {field.alias or name: name for name, field in model.model_fields.items()}
    return {by_alias[key]: value for key, value in values.items() if key in by_alias}


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------

class EhrSystemResponse(ApiModel):
    id: UUID
    system_name: str
    system_version: str | None = None
    api_endpoint: str | None = None
    documentation_link: str | None = None
    auth_url: str | None = None
    con_url: str | None = None
    bulkfhir_url: str | None = None
    additional_notes: str | None = None
    is_supported: bool
    created_at: datetime


class ProviderResponse(ApiModel):
    id: UUID
    provider_name: str
    provider_type: str
    contact_email: str
    contact_phone: str
    address: str | None = None
    ehr_id: UUID | None = None
    ehr_tenant_id: str | None = None
    ehr_group_id: str | None = None
    onboarded_date: datetime
    last_data_fetch: datetime | None = None
    status: str
    notes: str | None = None


class DataFetchHistoryResponse(ApiModel):
    id: int
    provider_id: UUID
    fetch_date: datetime
    s3_location: str = Field(alias="s3Location")
    status: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------

class FieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    message: str = "Validation error"
    errors: list[FieldError]


class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
