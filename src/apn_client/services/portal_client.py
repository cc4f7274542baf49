from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

ExportRecord = dict[str, Any]


@dataclass(frozen=True)
class PortalCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"PortalCredentials(username={self.username!r}, password='***')"

    def is_complete(self) -> bool:
        return bool(self.username) and bool(self.password)


class UsersWorkflows(Protocol):
    def all_active(self) -> list[ExportRecord]: ...

    def deactivate_by_name(self, name: str) -> bool: ...


class OpportunitiesWorkflows(Protocol):
    def all(self) -> list[ExportRecord]: ...

    def change_state(
        self, opportunity_id: str, target_state: str, *, partial_match: bool = False
    ) -> str: ...


class CertificationsWorkflows(Protocol):
    def all(self) -> list[ExportRecord]: ...


class PortalClient(Protocol):
    """
    What it does:
    - Defines the API callers expect from an APN automation client.

    Why it matters:
    - Callers (CLI, scripts) stay stable while the implementation can change
      (fakes for tests, Playwright for real use).

    Behavior:
    - authenticate() establishes the session; every workflow needs it first.
    - users / opportunities / certifications group the workflows.
    - end() releases the browser.
    """

    users: UsersWorkflows
    opportunities: OpportunitiesWorkflows
    certifications: CertificationsWorkflows

    def authenticate(self, username: str, password: str) -> Any: ...

    def end(self) -> None: ...
