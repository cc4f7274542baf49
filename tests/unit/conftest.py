from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from apn_client.scraping.apn_playwright import PlaywrightPortalClient
from apn_client.testing.fakes import FakeDownload, FakePlaywright, FakePortalAdapter


@pytest.fixture()
def fake_playwright():
    return FakePlaywright()


@pytest.fixture()
def adapter():
    return FakePortalAdapter()


@pytest.fixture()
def client(fake_playwright, adapter):
    c = PlaywrightPortalClient(
        adapter=adapter,
        playwright_factory=fake_playwright,
        launch_options={"headless": True},
    )
    yield c
    c.end()


@pytest.fixture()
def authed_client(client):
    client.authenticate("partner@example.com", "s3cret")
    return client


@pytest.fixture()
def make_workbook(tmp_path):
    """Writes rows (first row = header) to an .xlsx and returns a FakeDownload for it."""

    def _make(rows: list[list[object]], name: str = "export.xlsx") -> FakeDownload:
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(row)
        path = Path(tmp_path) / name
        wb.save(path)
        return FakeDownload(file_path=path, suggested_filename=name)

    return _make
