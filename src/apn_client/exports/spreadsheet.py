"""
spreadsheet.py

What this module does
- Turns portal exports (downloaded workbooks, CSV text) into lists of
  ExportRecord dicts keyed by the header row.

Why it matters
- Every export workflow shares one conversion path, so the record shape is
  the same whichever page produced the file.

Behavior summary
- Downloads are parsed from Playwright's file on disk, never buffered whole in
  Python memory, and are rejected above a size ceiling.
- Format is sniffed from the first bytes: zip -> xlsx (first sheet only),
  "<" -> HTML table (the legacy "xls" export), anything else -> CSV.
- Workbook and HTML cells keep their (inferred) types; CSV cells stay text so
  phone numbers and ids keep leading zeros.
- Workbook columns are read as object so ints next to blank cells stay ints.
- Fully blank rows are dropped; only empty cells become None ("NA", "N/A"
  and "null" are kept as text).
"""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pandas as pd
from playwright.sync_api import Download

from apn_client.services.portal_client import ExportRecord
from apn_client.utils.errors import DownloadTooLargeError, PortalError
from apn_client.utils.logger import get_logger

logger = get_logger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0"

# only truly empty cells are missing; "NA", "N/A", "null" are data
_NA_OPTIONS = {"keep_default_na": False, "na_values": [""]}


def records_from_download(download: Download, *, max_bytes: int) -> list[ExportRecord]:
    """
    What it does:
    - Waits for the download to finish and parses the saved file.

    Behavior:
    - Raises PortalError if Playwright reports a failed download.
    - Raises DownloadTooLargeError before parsing when the file exceeds max_bytes.
    """
    path = download.path()
    if path is None:
        raise PortalError(f"Download failed: {download.failure()}")

    path = Path(path)
    _check_size(path.stat().st_size, max_bytes)
    logger.info("Parsing export %s", download.suggested_filename)
    return records_from_file(path)


def records_from_file(path: str | Path) -> list[ExportRecord]:
    path = Path(path)
    with path.open("rb") as fh:
        head = fh.read(512)

    if not head.strip():
        return []

    if head.startswith(_ZIP_MAGIC):
        df = pd.read_excel(path, sheet_name=0, engine="openpyxl", dtype=object, **_NA_OPTIONS)
    elif head.startswith(_OLE2_MAGIC):
        raise PortalError(f"Legacy binary .xls export is not supported: {path.name}")
    elif head.lstrip().startswith(b"<"):
        df = _read_html(path)
    else:
        df = _read_csv(path)

    return frame_to_records(df)


def records_from_csv_text(text: str, *, max_bytes: int) -> list[ExportRecord]:
    _check_size(len(text.encode("utf-8")), max_bytes)
    if not text.strip():
        return []
    return frame_to_records(_read_csv(io.StringIO(text)))


def frame_to_records(df: pd.DataFrame) -> list[ExportRecord]:
    df = df.dropna(how="all")
    columns = [str(c) for c in df.columns]
    return [
        {col: _to_python(value) for col, value in zip(columns, row)}
        for row in df.itertuples(index=False, name=None)
    ]


# -------------------- Helpers --------------------


def _check_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise DownloadTooLargeError(size, max_bytes)


def _read_csv(source) -> pd.DataFrame:
    if isinstance(source, io.StringIO):
        return pd.read_csv(source, dtype=str, **_NA_OPTIONS)
    try:
        return pd.read_csv(source, dtype=str, encoding="utf-8-sig", **_NA_OPTIONS)
    except UnicodeDecodeError:
        return pd.read_csv(source, dtype=str, encoding="latin-1", **_NA_OPTIONS)


def _read_html(path: Path) -> pd.DataFrame:
    tables = pd.read_html(io.StringIO(path.read_text(encoding="utf-8", errors="replace")), **_NA_OPTIONS)
    if not tables:
        raise PortalError(f"No table found in export {path.name}")
    return tables[0]


def _to_python(value):
    if value is None:
        return None
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value
