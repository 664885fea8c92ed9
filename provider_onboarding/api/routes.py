"""
FastAPI routes – the main API surface.

- Request bodies are validated against the insert JSON schemas before any
  storage call; every violated field is reported at once
- Storage is injected per request via Depends, so tests can swap it
- Unexpected failures are logged with detail and surface as a generic 500
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from provider_onboarding.api.dependencies import get_db, get_storage
from provider_onboarding.config import settings
from provider_onboarding.errors import ConflictError, PayloadValidationError
from provider_onboarding.schemas.api import (
    DataFetchHistoryResponse,
    EhrSystemResponse,
    HealthResponse,
    ProviderResponse,
    ValidationErrorResponse,
    to_columns,
)
from provider_onboarding.schemas.payloads import (
    DATA_FETCH_HISTORY_INSERT_SCHEMA,
    EHR_SYSTEM_INSERT_SCHEMA,
    HEALTHCARE_PROVIDER_INSERT_SCHEMA,
)
from provider_onboarding.services.validation import validate_payload
from provider_onboarding.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter()

_VALIDATION_RESPONSES: dict = {400: {"model": ValidationErrorResponse}}


@contextmanager
def _fail_with(message: str):
    """Turn any unexpected error into a logged 500 carrying ``message``."""
    try:
        yield
    except (PayloadValidationError, ConflictError, HTTPException):
        raise
    except Exception:
        logger.exception(message)
        raise HTTPException(status_code=500, detail=message)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health endpoint – verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_status = "disconnected"
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        database=db_status,
    )


# ---------------------------------------------------------------------------
# Healthcare providers
# ---------------------------------------------------------------------------

@router.get("/providers", response_model=list[ProviderResponse])
def list_providers(
    search: str | None = None,
    ehr_id: UUID | None = Query(None, alias="ehrId"),
    storage: Storage = Depends(get_storage),
):
    """List providers, optionally filtered by name substring or EHR system."""
    with _fail_with("Failed to fetch healthcare providers"):
        if ehr_id is not None:
            providers = storage.list_providers_by_ehr(ehr_id)
            if search:
                needle = search.lower()
                providers = [p for p in providers if needle in p.provider_name.lower()]
        elif search:
            providers = storage.search_providers(search)
        else:
            providers = storage.list_providers()
        return [ProviderResponse.model_validate(p) for p in providers]


@router.get("/providers/{provider_id}", response_model=ProviderResponse)
def get_provider(provider_id: UUID, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch healthcare provider"):
        provider = storage.get_provider(provider_id)
        if provider is None:
            raise HTTPException(status_code=404, detail="Healthcare provider not found")
        return ProviderResponse.model_validate(provider)


@router.post(
    "/providers",
    response_model=ProviderResponse,
    status_code=201,
    responses=_VALIDATION_RESPONSES,
)
def create_provider(payload: Any = Body(...), storage: Storage = Depends(get_storage)):
    values = validate_payload(payload, HEALTHCARE_PROVIDER_INSERT_SCHEMA)
    with _fail_with("Failed to create healthcare provider"):
        provider = storage.create_provider(to_columns(values, ProviderResponse))
        return ProviderResponse.model_validate(provider)


@router.api_route(
    "/providers/{provider_id}",
    methods=["PUT", "PATCH"],
    response_model=ProviderResponse,
    responses=_VALIDATION_RESPONSES,
)
def update_provider(
    provider_id: UUID, payload: Any = Body(...), storage: Storage = Depends(get_storage)
):
    """Partial update: only the supplied fields are validated and written."""
    values = validate_payload(payload, HEALTHCARE_PROVIDER_INSERT_SCHEMA, partial=True)
    with _fail_with("Failed to update healthcare provider"):
        provider = storage.update_provider(provider_id, to_columns(values, ProviderResponse))
        if provider is None:
            raise HTTPException(status_code=404, detail="Healthcare provider not found")
        return ProviderResponse.model_validate(provider)


@router.delete("/providers/{provider_id}", status_code=204)
def delete_provider(provider_id: UUID, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to delete healthcare provider"):
        if not storage.delete_provider(provider_id):
            raise HTTPException(status_code=404, detail="Healthcare provider not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# EHR systems
# ---------------------------------------------------------------------------

@router.get("/ehr-systems", response_model=list[EhrSystemResponse])
def list_ehr_systems(storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch EHR systems"):
        return [EhrSystemResponse.model_validate(s) for s in storage.list_ehr_systems()]


@router.get("/ehr-systems/{ehr_id}", response_model=EhrSystemResponse)
def get_ehr_system(ehr_id: UUID, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch EHR system"):
        system = storage.get_ehr_system(ehr_id)
        if system is None:
            raise HTTPException(status_code=404, detail="EHR system not found")
        return EhrSystemResponse.model_validate(system)


@router.get("/ehr-systems/{ehr_id}/providers", response_model=list[ProviderResponse])
def list_ehr_system_providers(ehr_id: UUID, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch healthcare providers for EHR system"):
        if storage.get_ehr_system(ehr_id) is None:
            raise HTTPException(status_code=404, detail="EHR system not found")
        return [ProviderResponse.model_validate(p) for p in storage.list_providers_by_ehr(ehr_id)]


@router.post(
    "/ehr-systems",
    response_model=EhrSystemResponse,
    status_code=201,
    responses=_VALIDATION_RESPONSES,
)
def create_ehr_system(payload: Any = Body(...), storage: Storage = Depends(get_storage)):
    values = validate_payload(payload, EHR_SYSTEM_INSERT_SCHEMA)
    with _fail_with("Failed to create EHR system"):
        system = storage.create_ehr_system(to_columns(values, EhrSystemResponse))
        return EhrSystemResponse.model_validate(system)


@router.api_route(
    "/ehr-systems/{ehr_id}",
    methods=["PUT", "PATCH"],
    response_model=EhrSystemResponse,
    responses=_VALIDATION_RESPONSES,
)
def update_ehr_system(
    ehr_id: UUID, payload: Any = Body(...), storage: Storage = Depends(get_storage)
):
    """Partial update, e.g. toggling ``isSupported`` or editing URLs."""
    values = validate_payload(payload, EHR_SYSTEM_INSERT_SCHEMA, partial=True)
    with _fail_with("Failed to update EHR system"):
        system = storage.update_ehr_system(ehr_id, to_columns(values, EhrSystemResponse))
        if system is None:
            raise HTTPException(status_code=404, detail="EHR system not found")
        return EhrSystemResponse.model_validate(system)


# ---------------------------------------------------------------------------
# Data fetch history
# ---------------------------------------------------------------------------

@router.get("/data-history", response_model=list[DataFetchHistoryResponse])
def list_data_history(search: str | None = None, storage: Storage = Depends(get_storage)):
    """Fetch history, newest first; ``search`` matches provider names."""
    with _fail_with("Failed to fetch data fetch history"):
        rows = storage.search_fetch_history(search) if search else storage.list_fetch_history()
        return [DataFetchHistoryResponse.model_validate(r) for r in rows]


@router.get("/data-history/provider/{provider_id}", response_model=list[DataFetchHistoryResponse])
def list_provider_data_history(provider_id: UUID, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch data fetch history for provider"):
        rows = storage.list_fetch_history_by_provider(provider_id)
        return [DataFetchHistoryResponse.model_validate(r) for r in rows]


@router.get("/data-history/{history_id}", response_model=DataFetchHistoryResponse)
def get_data_history(history_id: int, storage: Storage = Depends(get_storage)):
    with _fail_with("Failed to fetch data fetch history record"):
        row = storage.get_fetch_history(history_id)
        if row is None:
            raise HTTPException(status_code=404, detail="Data fetch history record not found")
        return DataFetchHistoryResponse.model_validate(row)


@router.post(
    "/data-history",
    response_model=DataFetchHistoryResponse,
    status_code=201,
    responses=_VALIDATION_RESPONSES,
)
def create_data_history(payload: Any = Body(...), storage: Storage = Depends(get_storage)):
    values = validate_payload(payload, DATA_FETCH_HISTORY_INSERT_SCHEMA)
    with _fail_with("Failed to create data fetch history record"):
        row = storage.create_fetch_history(to_columns(values, DataFetchHistoryResponse))
        return DataFetchHistoryResponse.model_validate(row)
