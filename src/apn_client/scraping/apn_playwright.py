"""
apn_playwright.py

What this module does
- Implements the Playwright-based APN client that satisfies the `PortalClient`
  interface: authentication plus the users / opportunities / certifications
  workflows.

Why it matters
- The portal has no API. This is the single entry point scripts and the CLI use,
  and it keeps workflow order separate from the markup knowledge in
  `apn_markup.PortalAdapter`.

Safety guarantees
- `users.deactivate_by_name` NEVER clicks unless exactly one user matched.
- `opportunities.change_state` matches exact link text unless the caller opts
  into substring matching.

Behavior summary
- `authenticate(username, password)`: launches the browser on first use only,
  logs in, returns the session handle.
- Each workflow opens its own page in the shared context and closes it when done.
- `end()`: closes the browser once; no-op if nothing was launched.
- On timeouts: captures screenshots to the artifacts dir for debugging.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PWTimeoutError

from apn_client.config.paths import resolve_artifacts_dir
from apn_client.exports.spreadsheet import records_from_csv_text, records_from_download
from apn_client.scraping.apn_markup import PortalAdapter, PortalUrls
from apn_client.scraping.apn_session import PortalSession
from apn_client.services.portal_client import ExportRecord, PortalClient, PortalCredentials
from apn_client.utils.errors import (
    AmbiguousOrNotFoundError,
    AuthenticationFailedError,
    InvalidCredentialsError,
    NotAuthenticatedError,
)
from apn_client.utils.logger import get_logger, mask_username

if TYPE_CHECKING:
    from apn_client.config.settings import Settings

logger = get_logger(__name__)

DEFAULT_MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024


class PlaywrightPortalClient(PortalClient):
    """
    Playwright implementation of PortalClient.

    Behavior:
    - One PortalSession per client; several clients can run side by side with
      different credentials (one browser process each).
    - Not safe for concurrent calls on the same instance.
    """

    def __init__(
        self,
        *,
        browser_engine: str = "chromium",
        launch_options: dict[str, Any] | None = None,
        context_options: dict[str, Any] | None = None,
        urls: PortalUrls | None = None,
        adapter: PortalAdapter | None = None,
        playwright_factory: Callable[[], Any] | None = None,
        default_timeout_ms: int | None = None,
        max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES,
        artifacts_dir: str | Path | None = None,
    ) -> None:
        session_kwargs: dict[str, Any] = {
            "browser_engine": browser_engine,
            "launch_options": launch_options,
            "context_options": context_options,
            "default_timeout_ms": default_timeout_ms,
        }
        if playwright_factory is not None:
            session_kwargs["playwright_factory"] = playwright_factory
        # validates the engine name up front; nothing is launched here
        self._session = PortalSession(**session_kwargs)
        self._authenticated = False

        self.adapter = adapter or PortalAdapter(urls=urls or PortalUrls())
        self.max_download_bytes = max_download_bytes
        self._artifacts_dir = Path(artifacts_dir) if artifacts_dir is not None else None

        self.users = UserWorkflows(self)
        self.opportunities = OpportunityWorkflows(self)
        self.certifications = CertificationWorkflows(self)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> PlaywrightPortalClient:
        kwargs: dict[str, Any] = {
            "browser_engine": settings.browser_engine,
            "launch_options": {"headless": settings.headless},
            "context_options": {"locale": settings.locale},
            "urls": PortalUrls(base_url=settings.apn_base_url),
            "default_timeout_ms": settings.default_timeout_ms,
            "max_download_bytes": settings.max_download_bytes,
            "artifacts_dir": resolve_artifacts_dir(settings.artifacts_dir),
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def browser_engine(self) -> str:
        return self._session.browser_engine

    # -------------------- PortalClient interface --------------------

    def authenticate(self, username: str, password: str) -> PortalSession:
        """
        What it does:
        - Establishes the authenticated session all workflows run in.

        Behavior:
        - Missing username/password -> InvalidCredentialsError, before any launch.
        - Browser and context are launched on the first call only.
        - Any failure while logging in -> AuthenticationFailedError with the
          original exception chained and kept on `.original_exception`.
        - Does not re-authenticate when the portal session expires; call again.
        """
        creds = PortalCredentials(username=username or "", password=password or "")
        if not creds.is_complete():
            raise InvalidCredentialsError("Authentication credentials are required")

        session = self._session
        session.start()
        self._authenticated = False

        logger.info("Authenticating into the APN as '%s'", mask_username(creds.username))
        try:
            with session.page() as page:
                try:
                    self.adapter.login(page, creds)
                except Exception:
                    self._debug_dump(page, "login_failed")
                    raise
        except Exception as e:
            raise AuthenticationFailedError(
                "Authentication with the APN was unsuccessful. "
                f"Please check your credentials and try again. Cause: {e}",
                original_exception=e,
            ) from e

        self._authenticated = True
        logger.info("Authenticated into the APN")
        return session

    def end(self) -> None:
        """
        What it does:
        - Closes the browser process if one was launched.

        Behavior:
        - No-op before authenticate(); safe to call multiple times.
        """
        self._authenticated = False
        if not self._session.is_launched:
            return
        self._session.close()

    # -------------------- Helpers --------------------

    def _require_session(self) -> PortalSession:
        if not self._authenticated or not self._session.is_started:
            raise NotAuthenticatedError(
                "No APN session. Call authenticate() before running workflows."
            )
        return self._session

    def _records_from_download(self, download) -> list[ExportRecord]:
        return records_from_download(download, max_bytes=self.max_download_bytes)

    def _debug_dump(self, page: Page, tag: str) -> None:
        """
        What it does:
        - Captures a full-page screenshot for debugging.

        Behavior:
        - Writes <artifacts_dir>/<tag>.png (best effort); skipped when no
          artifacts dir is configured.
        """
        if self._artifacts_dir is None:
            return
        try:
            self._artifacts_dir.mkdir(parents=True, exist_ok=True)
            out = self._artifacts_dir / f"{tag}.png"
            page.screenshot(path=str(out), full_page=True)
            logger.info("Saved debug screenshot to %s", out)
        except Exception as e:
            logger.warning("Could not save debug screenshot '%s': %s", tag, e)


class _Workflows:
    def __init__(self, client: PlaywrightPortalClient) -> None:
        self._client = client

    @property
    def _adapter(self) -> PortalAdapter:
        return self._client.adapter

    def _timeout(self, page: Page, tag: str, e: PWTimeoutError) -> None:
        logger.error("%s timed out: %s", tag, e)
        self._client._debug_dump(page, f"{tag}_timeout")


class UserWorkflows(_Workflows):
    def all_active(self) -> list[ExportRecord]:
        """
        Exports every registered user (the "[Export All]" link on the Users page).

        This pulls ALL users, not only Alliance team members, so it can take a
        while and return a large result set. Columns as exported: Full Name,
        Contact Type, Title, Email, T&C Account Email Entered, Phone.
        """
        session = self._client._require_session()
        with session.page() as page:
            try:
                self._adapter.open_user_administration(page)
                download = self._adapter.export_users(page)
                records = self._client._records_from_download(download)
            except PWTimeoutError as e:
                self._timeout(page, "users_export", e)
                raise

        logger.info("Exported %d users", len(records))
        return records

    def deactivate_by_name(self, name: str) -> bool:
        """
        Deactivates one user, looked up by name (case-insensitive on the portal side).

        Irreversible: re-activation needs manual work in the portal, and this can
        deactivate the authenticated user too. Raises AmbiguousOrNotFoundError,
        without clicking anything, unless exactly one user matched.
        """
        if not name or not name.strip():
            raise ValueError("A user name is required")

        session = self._client._require_session()
        with session.page() as page:
            try:
                self._adapter.open_user_administration(page)
                self._adapter.search_users(page, name)

                count = self._adapter.count_deactivate_actions(page)
                if count != 1:
                    logger.warning("Deactivation aborted: %d matches for '%s'", count, name)
                    raise AmbiguousOrNotFoundError(name, count)

                self._adapter.deactivate_single_match(page)
            except PWTimeoutError as e:
                self._timeout(page, "users_deactivate", e)
                raise

        logger.info("Deactivated user '%s'", name)
        return True


class OpportunityWorkflows(_Workflows):
    def all(self) -> list[ExportRecord]:
        session = self._client._require_session()
        with session.page() as page:
            try:
                self._adapter.open_pipeline_manager(page)
                download = self._adapter.export_opportunities(page)
                records = self._client._records_from_download(download)
            except PWTimeoutError as e:
                self._timeout(page, "opportunities_export", e)
                raise

        logger.info("Exported %d opportunities", len(records))
        return records

    def change_state(
        self,
        opportunity_id: str,
        target_state: str,
        *,
        partial_match: bool = False,
    ) -> str:
        """
        What it does:
        - Opens the opportunity from the pipeline manager and moves it to `target_state`.

        Behavior:
        - Exact link-text match by default: zero or several hits raise
          AmbiguousOrNotFoundError before anything is clicked.
        - partial_match=True matches by substring and takes the first hit.
        - Returns "OK" once the confirm click navigated; the new state is not
          read back.
        """
        if not opportunity_id or not target_state:
            raise ValueError("Both an opportunity id and a target state are required")

        session = self._client._require_session()
        with session.page() as page:
            try:
                self._adapter.open_pipeline_manager(page)
                self._adapter.search_opportunity(page, opportunity_id)
                link = self._pick(
                    self._adapter.opportunity_links(page, opportunity_id, partial_match=partial_match),
                    opportunity_id,
                    partial_match=partial_match,
                )
                self._adapter.follow(page, link)

                self._adapter.open_state_selector(page)
                state = self._pick(
                    self._adapter.state_links(page, target_state, partial_match=partial_match),
                    target_state,
                    partial_match=partial_match,
                )
                self._adapter.follow(page, state)

                self._adapter.confirm_state_change(page)
            except PWTimeoutError as e:
                self._timeout(page, "opportunity_change_state", e)
                raise

        logger.info("Moved opportunity '%s' to '%s'", opportunity_id, target_state)
        return "OK"

    @staticmethod
    def _pick(links, query: str, *, partial_match: bool):
        count = links.count()
        if count == 0 or (count > 1 and not partial_match):
            raise AmbiguousOrNotFoundError(query, count)
        return links.first


class CertificationWorkflows(_Workflows):
    def all(self) -> list[ExportRecord]:
        session = self._client._require_session()
        with session.page() as page:
            try:
                self._adapter.open_home(page)
                csv_text = self._adapter.fetch_certifications_csv(page)
            except PWTimeoutError as e:
                self._timeout(page, "certifications_export", e)
                raise

        records = records_from_csv_text(csv_text, max_bytes=self._client.max_download_bytes)
        logger.info("Exported %d certification records", len(records))
        return records
