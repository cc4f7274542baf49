from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from apn_client.exports.spreadsheet import (
    frame_to_records,
    records_from_csv_text,
    records_from_file,
)
from apn_client.utils.errors import DownloadTooLargeError, PortalError


@pytest.mark.unit
def test_workbook_cells_keep_their_types(make_workbook):
    download = make_workbook(
        [
            ["Opportunity", "Amount", "Seats", "Close Date"],
            ["Acme migration", 1250.5, 12, datetime(2026, 3, 1)],
        ]
    )

    records = records_from_file(download.path())

    assert records == [
        {
            "Opportunity": "Acme migration",
            "Amount": 1250.5,
            "Seats": 12,
            "Close Date": datetime(2026, 3, 1),
        }
    ]
    assert type(records[0]["Seats"]) is int


@pytest.mark.unit
def test_workbook_blank_rows_dropped_and_empty_cells_none(make_workbook):
    download = make_workbook(
        [
            ["Full Name", "Title"],
            ["Ann Lee", None],
            [None, None],
            ["Bo Kim", "Engineer"],
        ]
    )

    assert records_from_file(download.path()) == [
        {"Full Name": "Ann Lee", "Title": None},
        {"Full Name": "Bo Kim", "Title": "Engineer"},
    ]


@pytest.mark.unit
def test_csv_file_keeps_leading_zeros(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes("\ufeffName,Phone\nAnn,0123456\n".encode("utf-8"))

    assert records_from_file(path) == [{"Name": "Ann", "Phone": "0123456"}]


@pytest.mark.unit
def test_csv_file_latin1_fallback(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes("Name,City\nJosé,São Paulo\n".encode("latin-1"))

    assert records_from_file(path) == [{"Name": "José", "City": "São Paulo"}]


@pytest.mark.unit
def test_html_table_export(tmp_path):
    path = tmp_path / "export.xls"
    path.write_text(
        "<html><body><table>"
        "<thead><tr><th>Full Name</th><th>Email</th></tr></thead>"
        "<tbody><tr><td>Ann Lee</td><td>ann@example.com</td></tr></tbody>"
        "</table></body></html>",
        encoding="utf-8",
    )

    assert records_from_file(path) == [{"Full Name": "Ann Lee", "Email": "ann@example.com"}]


@pytest.mark.unit
def test_legacy_binary_xls_rejected(tmp_path):
    path = tmp_path / "export.xls"
    path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)

    with pytest.raises(PortalError, match="Legacy binary"):
        records_from_file(path)


@pytest.mark.unit
def test_empty_file_yields_no_records(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_bytes(b"")
    assert records_from_file(path) == []


@pytest.mark.unit
def test_csv_text_ceiling():
    with pytest.raises(DownloadTooLargeError):
        records_from_csv_text("a,b\n1,2\n", max_bytes=4)


@pytest.mark.unit
def test_frame_to_records_preserves_column_and_row_order():
    df = pd.DataFrame({"b": [1, 2], "a": ["x", None]})

    records = frame_to_records(df)

    assert [list(r) for r in records] == [["b", "a"], ["b", "a"]]
    assert records == [{"b": 1, "a": "x"}, {"b": 2, "a": None}]


@pytest.mark.unit
def test_na_like_text_is_kept_as_data(tmp_path, make_workbook):
    csv_records = records_from_csv_text(
        "Full Name,Title,Country\nNan Li,N/A,NA\nBo Kim,null,\n", max_bytes=1024
    )
    assert csv_records == [
        {"Full Name": "Nan Li", "Title": "N/A", "Country": "NA"},
        {"Full Name": "Bo Kim", "Title": "null", "Country": None},
    ]

    download = make_workbook([["Full Name", "Title"], ["Nan", "null"], ["Ann", "N/A"]])
    assert records_from_file(download.path()) == [
        {"Full Name": "Nan", "Title": "null"},
        {"Full Name": "Ann", "Title": "N/A"},
    ]


@pytest.mark.unit
def test_workbook_integers_survive_blank_cells_in_column(make_workbook):
    download = make_workbook([["Name", "Seats"], ["a", 12], ["b", None], ["c", 3]])

    records = records_from_file(download.path())

    assert records == [
        {"Name": "a", "Seats": 12},
        {"Name": "b", "Seats": None},
        {"Name": "c", "Seats": 3},
    ]
    assert type(records[0]["Seats"]) is int
