"""SQLAlchemy-backed storage over a single request-scoped session."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from provider_onboarding.errors import (
    ConflictError,
    PayloadValidationError,
    ReferentialIntegrityError,
)
from provider_onboarding.models.entities import (
    DataFetchHistory,
    EhrSystem,
    HealthcareProvider,
    User,
)
from provider_onboarding.services.audit import log_action
from provider_onboarding.services.passwords import hash_password, verify_password
from provider_onboarding.storage.base import Storage

logger = logging.getLogger(__name__)


def _as_uuid(value: Any, field: str) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise PayloadValidationError(
            [{"field": field, "message": f"{field} must be a valid UUID"}]
        ) from None


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class DatabaseStorage(Storage):
    """
    Storage backed by a relational database.

    Every mutation writes an audit entry in the same transaction and commits
    before returning; the returned row is refreshed so it carries every
    server-generated value.
    """

    def __init__(self, db: Session, actor: str = "api_user"):
        self.db = db
        self.actor = actor

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    @contextmanager
    def _conflict_on_duplicate(self, message: str):
        """Report a unique-constraint violation raised by the database as a conflict."""
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(message) from exc

    def _audit(self, action: str, resource_type: str, resource_id: Any, detail=None) -> None:
        log_action(
            self.db,
            actor=self.actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            detail=detail,
        )

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    def get_user(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, username: str, password: str) -> User:
        if self.get_user_by_username(username) is not None:
            raise ConflictError(f"Username '{username}' is already taken")

        user = User(username=username, password=hash_password(password))
        with self._conflict_on_duplicate(f"Username '{username}' is already taken"):
            self.db.add(user)
            self.db.flush()
            self._audit("create", "User", user.id, {"username": username})
            self._commit()
        self.db.refresh(user)
        return user

    def verify_user_credentials(self, username: str, password: str) -> User | None:
        user = self.get_user_by_username(username)
        if user is None or not verify_password(password, user.password):
            return None
        return user

    # -----------------------------------------------------------------------
    # Healthcare providers
    # -----------------------------------------------------------------------

    def _require_ehr(self, ehr_id: UUID) -> None:
        if self.db.get(EhrSystem, ehr_id) is None:
            raise ReferentialIntegrityError("ehrId", f"EHR system {ehr_id} does not exist")

    def get_provider(self, provider_id: UUID) -> HealthcareProvider | None:
        return self.db.get(HealthcareProvider, provider_id)

    def list_providers(self) -> list[HealthcareProvider]:
        return (
            self.db.query(HealthcareProvider)
            .order_by(HealthcareProvider.onboarded_date, HealthcareProvider.provider_name)
            .all()
        )

    def list_providers_by_ehr(self, ehr_id: UUID) -> list[HealthcareProvider]:
        return (
            self.db.query(HealthcareProvider)
            .filter(HealthcareProvider.ehr_id == ehr_id)
            .order_by(HealthcareProvider.onboarded_date, HealthcareProvider.provider_name)
            .all()
        )

    def search_providers(self, term: str) -> list[HealthcareProvider]:
        return (
            self.db.query(HealthcareProvider)
            .filter(HealthcareProvider.provider_name.ilike(_like_pattern(term), escape="\\"))
            .order_by(HealthcareProvider.provider_name)
            .all()
        )

    def create_provider(self, values: dict[str, Any]) -> HealthcareProvider:
        values = dict(values)
        provider_id = _as_uuid(values.pop("id", None), "id") or uuid.uuid4()
        if self.get_provider(provider_id) is not None:
            raise ConflictError(f"Healthcare provider {provider_id} already exists")

        values["ehr_id"] = _as_uuid(values.get("ehr_id"), "ehrId")
        if values["ehr_id"] is not None:
            self._require_ehr(values["ehr_id"])

        provider = HealthcareProvider(id=provider_id, **values)
        with self._conflict_on_duplicate(f"Healthcare provider {provider_id} already exists"):
            self.db.add(provider)
            self.db.flush()
            self._audit(
                "create",
                "HealthcareProvider",
                provider.id,
                {"provider_name": provider.provider_name},
            )
            self._commit()
        self.db.refresh(provider)
        return provider

    def update_provider(
        self, provider_id: UUID, values: dict[str, Any]
    ) -> HealthcareProvider | None:
        provider = self.get_provider(provider_id)
        if provider is None:
            return None

        values = {k: v for k, v in values.items() if k != "id"}
        if "ehr_id" in values:
            values["ehr_id"] = _as_uuid(values["ehr_id"], "ehrId")
            if values["ehr_id"] is not None:
                self._require_ehr(values["ehr_id"])

        for attr, value in values.items():
            setattr(provider, attr, value)
        self.db.flush()
        self._audit("update", "HealthcareProvider", provider.id, {"fields": sorted(values)})
        self._commit()
        self.db.refresh(provider)
        return provider

    def delete_provider(self, provider_id: UUID) -> bool:
        provider = self.get_provider(provider_id)
        if provider is None:
            return False

        history_count = (
            self.db.query(DataFetchHistory)
            .filter(DataFetchHistory.provider_id == provider_id)
            .count()
        )
        if history_count:
            raise ConflictError(
                f"Healthcare provider {provider_id} has {history_count} fetch history "
                "record(s) and cannot be deleted"
            )

        self.db.delete(provider)
        self._audit(
            "delete", "HealthcareProvider", provider_id, {"provider_name": provider.provider_name}
        )
        self._commit()
        return True

    # -----------------------------------------------------------------------
    # EHR systems
    # -----------------------------------------------------------------------

    def _require_unique_system_name(self, name: str, exclude: UUID | None = None) -> None:
        query = self.db.query(EhrSystem).filter(EhrSystem.system_name == name)
        if exclude is not None:
            query = query.filter(EhrSystem.id != exclude)
        if query.first() is not None:
            raise ConflictError(f"EHR system '{name}' already exists")

    def get_ehr_system(self, ehr_id: UUID) -> EhrSystem | None:
        return self.db.get(EhrSystem, ehr_id)

    def list_ehr_systems(self) -> list[EhrSystem]:
        return self.db.query(EhrSystem).order_by(EhrSystem.created_at, EhrSystem.system_name).all()

    def create_ehr_system(self, values: dict[str, Any]) -> EhrSystem:
        values = dict(values)
        ehr_id = _as_uuid(values.pop("id", None), "id") or uuid.uuid4()
        if self.get_ehr_system(ehr_id) is not None:
            raise ConflictError(f"EHR system {ehr_id} already exists")
        self._require_unique_system_name(values["system_name"])

        system = EhrSystem(id=ehr_id, **values)
        with self._conflict_on_duplicate(f"EHR system '{values['system_name']}' already exists"):
            self.db.add(system)
            self.db.flush()
            self._audit("create", "EhrSystem", system.id, {"system_name": system.system_name})
            self._commit()
        self.db.refresh(system)
        return system

    def update_ehr_system(self, ehr_id: UUID, values: dict[str, Any]) -> EhrSystem | None:
        system = self.get_ehr_system(ehr_id)
        if system is None:
            return None

        values = {k: v for k, v in values.items() if k != "id"}
        if "system_name" in values:
            self._require_unique_system_name(values["system_name"], exclude=ehr_id)

        for attr, value in values.items():
            setattr(system, attr, value)
        with self._conflict_on_duplicate(f"EHR system '{system.system_name}' already exists"):
            self.db.flush()
            self._audit("update", "EhrSystem", system.id, {"fields": sorted(values)})
            self._commit()
        self.db.refresh(system)
        return system

    # -----------------------------------------------------------------------
    # Data fetch history
    # -----------------------------------------------------------------------

    def get_fetch_history(self, history_id: int) -> DataFetchHistory | None:
        return self.db.get(DataFetchHistory, history_id)

    def list_fetch_history(self) -> list[DataFetchHistory]:
        return (
            self.db.query(DataFetchHistory)
            .order_by(DataFetchHistory.fetch_date.desc(), DataFetchHistory.id.desc())
            .all()
        )

    def list_fetch_history_by_provider(self, provider_id: UUID) -> list[DataFetchHistory]:
        return (
            self.db.query(DataFetchHistory)
            .filter(DataFetchHistory.provider_id == provider_id)
            .order_by(DataFetchHistory.fetch_date.desc(), DataFetchHistory.id.desc())
            .all()
        )

    def search_fetch_history(self, term: str) -> list[DataFetchHistory]:
        return (
            self.db.query(DataFetchHistory)
            .join(HealthcareProvider, DataFetchHistory.provider_id == HealthcareProvider.id)
            .filter(HealthcareProvider.provider_name.ilike(_like_pattern(term), escape="\\"))
            .order_by(DataFetchHistory.fetch_date.desc(), DataFetchHistory.id.desc())
            .all()
        )

    def create_fetch_history(self, values: dict[str, Any]) -> DataFetchHistory:
        values = dict(values)
        values["provider_id"] = _as_uuid(values["provider_id"], "providerId")
        provider = self.get_provider(values["provider_id"])
        if provider is None:
            raise ReferentialIntegrityError(
                "providerId", f"Healthcare provider {values['provider_id']} does not exist"
            )

        fetched_at = datetime.now(timezone.utc)
        history = DataFetchHistory(fetch_date=fetched_at, **values)
        self.db.add(history)
        provider.last_data_fetch = fetched_at
        self.db.flush()
        self._audit(
            "create",
            "DataFetchHistory",
            history.id,
            {"provider_id": str(provider.id), "s3_location": history.s3_location},
        )
        self._commit()
        self.db.refresh(history)
        logger.info("Recorded data fetch %s for provider %s", history.id, provider.id)
        return history
