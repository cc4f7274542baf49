"""
apn_markup.py

What this module does
- Holds every piece of knowledge about the APN portal's markup: URLs, labels,
  roles, CSS selectors, and the low-level click/fill sequences built on them.

Why it matters
- The portal has no API; its HTML is the contract and it changes without
  notice. When it does, the fix belongs in one method here, not in the
  workflows that call it.

Behavior summary
- `PortalUrls`: absolute URLs built from a configurable base URL.
- `PortalSelectors`: labels/roles/selectors in one frozen dataclass.
- `PortalAdapter`: one method per UI step. Methods take a Playwright `Page`
  and never decide business outcomes (counting is reported, not judged).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from playwright.sync_api import Download, Locator, Page

from apn_client.services.portal_client import PortalCredentials

DEFAULT_BASE_URL = "https://partnercentral.awspartner.com"

_FETCH_TEXT_JS = """
async (url) => {
    const response = await fetch(url, { method: 'GET', credentials: 'include' });
    return response.text();
}
"""


@dataclass(frozen=True)
class PortalUrls:
    base_url: str = DEFAULT_BASE_URL

    login_path: str = "/partnercentral2/s/login"
    home_path: str = "/partnercentral2/s/"
    user_administration_path: str = "/UserAdministrationPage"
    pipeline_manager_path: str = "/partnercentral2/s/pipeline-manager"
    certifications_export_path: str = "/PartnerCertificationDetailsExport"

    def _join(self, path: str) -> str:
        return self.base_url.rstrip("/") + path

    @property
    def login(self) -> str:
        return self._join(self.login_path)

    @property
    def home(self) -> str:
        return self._join(self.home_path)

    @property
    def user_administration(self) -> str:
        return self._join(self.user_administration_path)

    @property
    def pipeline_manager(self) -> str:
        return self._join(self.pipeline_manager_path)

    @property
    def certifications_export(self) -> str:
        return self._join(self.certifications_export_path)


@dataclass(frozen=True)
class PortalSelectors:
    """
    Centralized selectors for the portal.

    Labels and roles are preferred over generated element ids; the few CSS
    selectors left are the ones the portal offers nothing better for.
    """

    # Login
    email_label: str = "*Business email"
    password_label: str = "*Password"
    sign_in_button: str = "Sign in"
    post_login_marker: str = "p.welcomeUser"

    # User administration
    users_export_link: str = "[Export All]"
    users_search_input: str = 'input[name="j_id0\\:form\\:j_id14\\:j_id49"]'
    deactivate_link: str = "Deactivate"

    # Pipeline manager
    bulk_actions_textbox: str = "Bulk actions"
    export_all_opportunities: str = "Export Opportunities - All Opportunities"
    opportunity_search_input: str = "input.input-search"

    # Opportunity detail / change state
    state_selector: str = 'input[data-id="select-sobject-id"]'
    state_change_confirm: str = ".primary .slds-button"


@dataclass
class PortalAdapter:
    urls: PortalUrls = field(default_factory=PortalUrls)
    sel: PortalSelectors = field(default_factory=PortalSelectors)

    # -------------------- Login --------------------

    def login(self, page: Page, creds: PortalCredentials) -> None:
        page.goto(self.urls.login)
        page.get_by_label(self.sel.email_label).fill(creds.username)
        page.get_by_label(self.sel.password_label).fill(creds.password)
        page.get_by_role("button", name=self.sel.sign_in_button).click()

        # authenticated dashboard
        page.wait_for_selector(self.sel.post_login_marker)

    # -------------------- Users --------------------

    def open_user_administration(self, page: Page) -> None:
        page.goto(self.urls.user_administration)

    def export_users(self, page: Page) -> Download:
        with page.expect_download() as download_info:
            page.get_by_role("link", name=self.sel.users_export_link).click()
        return download_info.value

    def search_users(self, page: Page, name: str) -> None:
        search = page.locator(self.sel.users_search_input)
        search.wait_for()
        search.fill(name)
        search.press("Enter")

        # results arrive over XHR
        page.wait_for_load_state("networkidle")

    def count_deactivate_actions(self, page: Page) -> int:
        return self._deactivate_links(page).count()

    def deactivate_single_match(self, page: Page) -> None:
        page.once("dialog", lambda dialog: dialog.accept())
        self._deactivate_links(page).click()

    def _deactivate_links(self, page: Page) -> Locator:
        return page.get_by_role("link", name=self.sel.deactivate_link, exact=True)

    # -------------------- Opportunities --------------------

    def open_pipeline_manager(self, page: Page) -> None:
        page.goto(self.urls.pipeline_manager, wait_until="domcontentloaded")

    def export_opportunities(self, page: Page) -> Download:
        page.get_by_role("textbox", name=self.sel.bulk_actions_textbox).click()
        with page.expect_download() as download_info:
            page.get_by_text(self.sel.export_all_opportunities, exact=True).click()
        return download_info.value

    def search_opportunity(self, page: Page, opportunity_id: str) -> None:
        search = page.locator(self.sel.opportunity_search_input)
        search.wait_for()
        search.press_sequentially(opportunity_id)
        page.wait_for_load_state("networkidle")

    def opportunity_links(self, page: Page, opportunity_id: str, *, partial_match: bool) -> Locator:
        return self._links(page, opportunity_id, partial_match=partial_match)

    def open_state_selector(self, page: Page) -> None:
        page.locator(self.sel.state_selector).click()

    def state_links(self, page: Page, target_state: str, *, partial_match: bool) -> Locator:
        return self._links(page, target_state, partial_match=partial_match)

    def follow(self, page: Page, link: Locator) -> None:
        with page.expect_navigation(wait_until="networkidle"):
            link.click()

    def confirm_state_change(self, page: Page) -> None:
        with page.expect_navigation(wait_until="networkidle"):
            page.locator(self.sel.state_change_confirm).first.click()

    def _links(self, page: Page, text: str, *, partial_match: bool) -> Locator:
        if partial_match:
            # case-sensitive, own text nodes only (not descendants)
            return page.locator(f"xpath=//a[contains(text(), {_xpath_literal(text)})]")
        return page.get_by_role("link", name=text, exact=True)

    # -------------------- Certifications --------------------

    def open_home(self, page: Page) -> None:
        # in-page fetch needs the portal origin for the session cookies
        page.goto(self.urls.home, wait_until="domcontentloaded")

    def fetch_certifications_csv(self, page: Page) -> str:
        return page.evaluate(_FETCH_TEXT_JS, self.urls.certifications_export)


def _xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"
