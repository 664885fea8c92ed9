"""Data-access contract shared by route handlers and storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from provider_onboarding.models.entities import (
    DataFetchHistory,
    EhrSystem,
    HealthcareProvider,
    User,
)


class Storage(ABC):
    """
    The only boundary between HTTP handlers and persistent state.

    Values passed to ``create_*`` and ``update_*`` are keyed by column
    attribute name. Lookups return ``None`` when the record is absent.
    """

    # -- users --------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def create_user(self, username: str, password: str) -> User: ...

    @abstractmethod
    def verify_user_credentials(self, username: str, password: str) -> User | None: ...

    # -- healthcare providers ----------------------------------------------

    @abstractmethod
    def get_provider(self, provider_id: UUID) -> HealthcareProvider | None: ...

    @abstractmethod
    def list_providers(self) -> list[HealthcareProvider]: ...

    @abstractmethod
    def list_providers_by_ehr(self, ehr_id: UUID) -> list[HealthcareProvider]: ...

    @abstractmethod
    def search_providers(self, term: str) -> list[HealthcareProvider]: ...

    @abstractmethod
    def create_provider(self, values: dict[str, Any]) -> HealthcareProvider: ...

    @abstractmethod
    def update_provider(
        self, provider_id: UUID, values: dict[str, Any]
    ) -> HealthcareProvider | None: ...

    @abstractmethod
    def delete_provider(self, provider_id: UUID) -> bool: ...

    # -- EHR systems --------------------------------------------------------

    @abstractmethod
    def get_ehr_system(self, ehr_id: UUID) -> EhrSystem | None: ...

    @abstractmethod
    def list_ehr_systems(self) -> list[EhrSystem]: ...

    @abstractmethod
    def create_ehr_system(self, values: dict[str, Any]) -> EhrSystem: ...

    @abstractmethod
    def update_ehr_system(self, ehr_id: UUID, values: dict[str, Any]) -> EhrSystem | None: ...

    # -- data fetch history -------------------------------------------------

    @abstractmethod
    def get_fetch_history(self, history_id: int) -> DataFetchHistory | None: ...

    @abstractmethod
    def list_fetch_history(self) -> list[DataFetchHistory]: ...

    @abstractmethod
    def list_fetch_history_by_provider(self, provider_id: UUID) -> list[DataFetchHistory]: ...

    @abstractmethod
    def search_fetch_history(self, term: str) -> list[DataFetchHistory]: ...

    @abstractmethod
    def create_fetch_history(self, values: dict[str, Any]) -> DataFetchHistory: ...
