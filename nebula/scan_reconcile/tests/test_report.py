"""
Tests for the report projector and its renderers.

Run with: pytest nebula/scan_reconcile/tests/test_report.py -v
"""

import csv
import io
import pytest
from datetime import date, datetime

from nebula.scan_reconcile.config import ScanConfig
from nebula.scan_reconcile.errors import ReportError
from nebula.scan_reconcile.manifest import build_index, build_manifest
from nebula.scan_reconcile.matcher import handle_scan
from nebula.scan_reconcile.models import SessionState
from nebula.scan_reconcile.report import (
    ACCEPTED_COLUMNS,
    PRODUCT_COLUMNS,
    REJECTED_COLUMNS,
    ReportHeader,
    display_order,
    export_csv,
    format_console,
    generate_report_filename,
    global_counter,
    missing_subcodes,
    product_progress,
    project,
    require_header_fields,
)

T0 = datetime(2026, 3, 14, 9, 5, 7)
T1 = datetime(2026, 3, 14, 15, 30, 0)


@pytest.fixture
def state():
    """123 partially scanned, 456 complete, 789 untouched, one rejected scan."""
    products = build_manifest([
        {"codigo_barra": "123", "cantidad": "3", "ciudad": "Cali"},
        {"codigo_barra": "456", "cantidad": "1", "ciudad": "Pasto"},
        {"codigo_barra": "789", "cantidad": "2", "ciudad": "Neiva"},
    ])
    state = SessionState.from_products(products)
    index = build_index(products)
    handle_scan("123-2", T0, state, index)
    handle_scan("456", T0, state, index)
    handle_scan("999", T1, state, index)
    return state


class TestProject:

    def test_product_rows(self, state):
        payload = project(state)
        rows = {r.code: r for r in payload.products}

        assert [r.code for r in payload.products] == ["123", "456", "789"]
        assert rows["123"].units == "1 / 3"
        assert rows["123"].city == "Cali"
        assert rows["123"].scanned_subcodes == "2"
        assert rows["123"].missing_subcodes == "1, 3"

    def test_complete_product_has_no_missing(self, state):
        row = project(state).products[1]
        assert row.units == "1 / 1"
        assert row.missing_subcodes == ""

    def test_no_subcodes_uses_placeholder(self, state):
        rows = project(state).products
        assert rows[1].scanned_subcodes == "None"
        assert rows[2].scanned_subcodes == "None"
        assert rows[2].missing_subcodes == "1, 2"

    def test_custom_placeholder(self, state):
        row = project(state, config=ScanConfig(none_placeholder="-")).products[2]
        assert row.scanned_subcodes == "-"

    def test_audit_trails(self, state):
        payload = project(state)

        assert [(r.seq, r.code, r.time) for r in payload.accepted] == [
            (1, "123", "09:05:07 AM"),
            (2, "456", "09:05:07 AM"),
        ]
        assert [(r.seq, r.code, r.time) for r in payload.rejected] == [
            (1, "999", "03:30:00 PM"),
        ]

    def test_custom_time_format(self, state):
        payload = project(state, config=ScanConfig(time_format="%H:%M"))
        assert payload.rejected[0].time == "15:30"

    def test_totals(self, state):
        payload = project(state)
        assert payload.total_units_scanned == 2
        assert payload.total_units_expected == 6

    def test_state_is_not_modified(self, state):
        before = (dict(state.scanned_units), len(state.accepted_log), len(state.rejected_log))
        project(state, ReportHeader("ABC123", "Acme"))
        assert before == (dict(state.scanned_units), len(state.accepted_log), len(state.rejected_log))


class TestMissingSubcodes:

    def test_unrecognized_subcode_never_listed(self):
        products = build_manifest([{"codigo_barra": "1", "cantidad": "2", "ciudad": "A"}])
        product = products[0]
        product.scanned_subcodes = ["x9"]
        assert missing_subcodes(product, 1) == ["1", "2"]

    def test_no_suffix_scans_leave_all_labels_missing(self):
        products = build_manifest([{"codigo_barra": "1", "cantidad": "3", "ciudad": "A"}])
        product = products[0]
        product.no_suffix_count = 2
        assert missing_subcodes(product, 2) == ["1", "2", "3"]


class TestReportHeader:

    def test_rows(self):
        header = ReportHeader("ABC123", "Acme", "2026-03-14")
        assert header.rows() == [
            ["Vehicle Plate", "ABC123"],
            ["Sender", "Acme"],
            ["Unload Date", "2026-03-14"],
        ]

    def test_date_defaults_to_today(self):
        assert ReportHeader("A", "B").rows()[2][1] == date.today().strftime("%Y-%m-%d")

    def test_require_fields(self):
        header = ReportHeader("ABC123", "Acme")
        assert require_header_fields(header) is header

    @pytest.mark.parametrize("plate,sender", [("", "Acme"), ("ABC", "  "), ("", "")])
    def test_require_fields_rejects_blank(self, plate, sender):
        with pytest.raises(ReportError):
            require_header_fields(ReportHeader(plate, sender))


class TestLayout:

    def test_as_rows_with_header(self, state):
        rows = project(state, ReportHeader("ABC123", "Acme", "2026-03-14")).as_rows()

        assert rows[0] == ["Vehicle Plate", "ABC123"]
        assert rows[3] == []
        assert rows[4] == PRODUCT_COLUMNS
        assert rows[5] == ["123", "1 / 3", "Cali", "2", "1, 3"]
        assert rows[8] == []
        assert rows[9] == ACCEPTED_COLUMNS
        assert rows[10] == [1, "123", "09:05:07 AM"]
        assert rows[12] == []
        assert rows[13] == REJECTED_COLUMNS
        assert rows[14] == [1, "999", "03:30:00 PM"]
        assert len(rows) == 15

    def test_as_rows_without_header_starts_with_products(self, state):
        rows = project(state).as_rows()
        assert rows[0] == PRODUCT_COLUMNS

    def test_empty_session_still_has_sections(self):
        rows = project(SessionState()).as_rows()
        assert rows == [PRODUCT_COLUMNS, [], ACCEPTED_COLUMNS, [], REJECTED_COLUMNS]

    def test_to_dict(self, state):
        data = project(state, ReportHeader("ABC123", "Acme", "2026-03-14")).to_dict()

        assert data["header"][0] == {"label": "Vehicle Plate", "value": "ABC123"}
        assert data["products"][0]["units"] == "1 / 3"
        assert data["accepted"][0] == {"seq": 1, "code": "123", "time": "09:05:07 AM"}
        assert data["total_units_expected"] == 6


class TestProgress:

    def test_statuses(self, state):
        progress = product_progress(state)
        assert [(p.code, p.status) for p in progress] == [
            ("123", "partial"),
            ("456", "complete"),
            ("789", "pending"),
        ]
        assert progress[0].percent == 33.3
        assert [p.is_complete for p in state.products] == [False, True, False]

    def test_complete_after_mixed_scans(self, state):
        index = build_index(state.products)
        handle_scan("123", T1, state, index)
        handle_scan("123-3", T1, state, index)

        assert state.products[0].is_complete
        assert product_progress(state)[0].status == "complete"
        assert product_progress(state)[0].percent == 100.0

    def test_last_scanned_first(self, state):
        ordered = display_order(product_progress(state), "789")
        assert [p.code for p in ordered] == ["789", "123", "456"]

    def test_manifest_order_without_last_scan(self, state):
        ordered = display_order(product_progress(state))
        assert [p.code for p in ordered] == ["123", "456", "789"]

    def test_global_counter(self, state):
        assert global_counter(state) == "Units unloaded: 2 of 6"


class TestRenderers:

    def test_console(self, state):
        text = format_console(project(state, ReportHeader("ABC123", "Acme", "2026-03-14")))

        assert "Vehicle Plate:" in text
        assert "CORRECT CODES (2)" in text
        assert "INCORRECT CODES (1)" in text
        assert "Units unloaded: 2 of 6" in text

    def test_console_without_manifest(self):
        assert "No manifest loaded." in format_console(project(SessionState()))

    def test_csv(self, state):
        output = io.StringIO()
        content = export_csv(project(state), output)

        assert output.getvalue() == content
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == PRODUCT_COLUMNS
        assert rows[1] == ["123", "1 / 3", "Cali", "2", "1, 3"]
        assert [] in rows

    def test_filename(self):
        assert generate_report_filename(date(2026, 1, 8)) == "unload_report_2026-01-08.xlsx"
        assert generate_report_filename(date(2026, 1, 8), "csv") == "unload_report_2026-01-08.csv"
