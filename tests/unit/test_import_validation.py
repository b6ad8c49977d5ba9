"""
Unit tests for import row validation.

See STANDARDS_TESTING.md for patterns.

Run: pytest tests/unit/test_import_validation.py -v
"""

import pytest

from models.imports import (
    ImportErrorSeverity,
    ImportErrorType,
    PromobItem,
)
from parsers.haixun_parser import RawRow
from parsers.promob_parser import RawLabel
from services.import_validation_service import (
    CLIENT_REQUIRED_MESSAGE,
    DUPLICATE_CODE_MESSAGE,
    REPEATED_CODE_MESSAGE,
    check_promob_fields,
    collapse_repeated_barcodes,
    piece_from_item,
    piece_from_record,
    promob_barcode,
    promob_piece_id,
    promob_project_name,
    recheck_items,
    revalidate_item,
    validate_csv_row,
    validate_promob_label,
)

from tests.factories import promob_fields

WS = "ws_test"


def csv_row(line_number: int = 2, **overrides) -> RawRow:
    fields = {
        "client_code": "C01",
        "client_name": "Silva",
        "project_name": "Cozinha",
        "barcode": "bc001",
        "piece_module": "Balcao",
        "piece_name": "Lateral",
        "length": "600",
        "width": "400",
        "thickness": "18",
        "material": "MDF",
        "color": "Branco",
    }
    fields.update(overrides)
    return RawRow(line_number=line_number, fields=fields)


class TestValidateCsvRow:
    """Tests for validate_csv_row()"""

    def test_valid_row_has_no_issues(self):
        record, issues = validate_csv_row(csv_row())

        assert issues == []
        assert record.barcode == "BC001"
        assert record.dimensions == "600x400x18"

    def test_short_barcode_is_one_error(self):
        record, issues = validate_csv_row(csv_row(barcode="AB", line_number=5))

        assert record is None
        assert len(issues) == 1
        issue = issues[0]
        assert issue.type == ImportErrorType.INVALID_BARCODE_FORMAT
        assert issue.severity == ImportErrorSeverity.ERROR
        assert issue.line_number == 5
        assert issue.field == "barcode"
        assert issue.value == "AB"

    def test_bad_measurement_keeps_row(self):
        record, issues = validate_csv_row(csv_row(length="abc", width="-4"))

        assert record is not None
        assert record.length == ""
        assert record.width == ""
        assert record.dimensions == "0x0x18"
        assert len(issues) == 2
        assert all(i.type == ImportErrorType.INVALID_MEASUREMENTS for i in issues)
        assert all(i.severity == ImportErrorSeverity.WARNING for i in issues)

    def test_comma_decimal_is_accepted(self):
        record, issues = validate_csv_row(csv_row(thickness="18,5"))

        assert issues == []
        assert record.thickness == "18.5"

    @pytest.mark.parametrize("value", ["1_000", "1e3", "inf", "12.", ".5", "1.2.3"])
    def test_non_decimal_measurement_is_warning(self, value):
        record, issues = validate_csv_row(csv_row(length=value))

        assert record is not None
        assert record.length == ""
        assert [i.type for i in issues] == [ImportErrorType.INVALID_MEASUREMENTS]
        assert issues[0].severity == ImportErrorSeverity.WARNING

    def test_missing_client_and_project(self):
        record, issues = validate_csv_row(csv_row(client_name=" ", project_name=""))

        assert record is None
        types = {i.type for i in issues}
        assert types == {ImportErrorType.MISSING_CLIENT_INFO, ImportErrorType.MISSING_PROJECT_INFO}
        assert all(i.severity == ImportErrorSeverity.ERROR for i in issues)

    def test_measurement_and_barcode_errors_drop_row(self):
        record, issues = validate_csv_row(csv_row(barcode="", length="x"))

        assert record is None
        assert len(issues) == 2

    def test_piece_from_record(self):
        record, _ = validate_csv_row(csv_row(piece_name=""))

        piece = piece_from_record(record, WS)

        assert piece["id"] == f"{WS}_BC001"
        assert piece["name"] == "Piece BC001"
        assert piece["client"] == "Silva"
        assert piece["project"] == "Cozinha"
        assert piece["status"] == "PENDING"


class TestCollapseRepeatedBarcodes:
    """Tests for collapse_repeated_barcodes()"""

    def test_last_line_wins_and_earlier_lines_warn(self):
        numbered = [
            (2, validate_csv_row(csv_row(barcode="BC001", project_name="Cozinha"))[0]),
            (3, validate_csv_row(csv_row(barcode="BC002"))[0]),
            (4, validate_csv_row(csv_row(barcode="bc001", project_name="Sala"))[0]),
        ]

        records, issues = collapse_repeated_barcodes(numbered)

        assert [r.barcode for r in records] == ["BC001", "BC002"]
        assert records[0].project_name == "Sala"
        assert len(issues) == 1
        issue = issues[0]
        assert issue.type == ImportErrorType.DUPLICATE_BARCODE
        assert issue.severity == ImportErrorSeverity.WARNING
        assert issue.line_number == 2
        assert issue.value == "BC001"

    def test_unique_barcodes_pass_through(self):
        numbered = [(2, validate_csv_row(csv_row(barcode="BC001"))[0])]

        records, issues = collapse_repeated_barcodes(numbered)

        assert len(records) == 1
        assert issues == []


class TestPromobBarcode:
    """Tests for promob_barcode()"""

    def test_keeps_letters_and_digits(self):
        assert promob_barcode(" ab-12.3/x ") == "AB123X"

    def test_piece_id_uses_barcode(self):
        assert promob_piece_id(WS, "ab-123") == f"{WS}_AB123"


class TestCheckPromobFields:
    """Tests for check_promob_fields()"""

    def test_valid_fields(self):
        fields, issues = check_promob_fields(promob_fields(), WS)

        assert issues == []
        assert fields["item_code"] == "AB-123"

    def test_missing_client_is_warning(self):
        _, issues = check_promob_fields(promob_fields(client_name="  "), WS, page_number=3)

        assert len(issues) == 1
        issue = issues[0]
        assert issue.type == ImportErrorType.MISSING_CLIENT_INFO
        assert issue.severity == ImportErrorSeverity.WARNING
        assert issue.message == CLIENT_REQUIRED_MESSAGE
        assert issue.page_number == 3

    def test_code_with_too_few_alphanumerics(self):
        _, issues = check_promob_fields(promob_fields(item_code="A-1"), WS)

        assert len(issues) == 1
        assert issues[0].type == ImportErrorType.INVALID_BARCODE_FORMAT

    def test_existing_code_is_duplicate(self):
        existing = {promob_piece_id(WS, "AB-123")}

        _, issues = check_promob_fields(promob_fields(), WS, existing_ids=existing)

        assert len(issues) == 1
        assert issues[0].type == ImportErrorType.DUPLICATE_BARCODE
        assert issues[0].message == DUPLICATE_CODE_MESSAGE

    def test_code_repeated_in_file(self):
        file_ids = {promob_piece_id(WS, "ab123")}

        _, issues = check_promob_fields(promob_fields(), WS, file_ids=file_ids)

        assert [i.message for i in issues] == [REPEATED_CODE_MESSAGE]

    def test_long_client_name(self):
        _, issues = check_promob_fields(promob_fields(client_name="x" * 101), WS)

        assert len(issues) == 1
        assert issues[0].field == "client_name"
        assert issues[0].severity == ImportErrorSeverity.WARNING


class TestValidatePromobLabel:
    """Tests for validate_promob_label()"""

    def test_invalid_label_is_kept_and_flagged(self):
        label = RawLabel(page_number=2, fields=promob_fields(client_name=""))

        item, issues = validate_promob_label(label, WS)

        assert item.is_valid is False
        assert item.errors == [CLIENT_REQUIRED_MESSAGE]
        assert item.page_number == 2
        assert len(issues) == 1

    def test_item_ids_are_unique(self):
        label = RawLabel(page_number=1, fields=promob_fields())

        first, _ = validate_promob_label(label, WS)
        second, _ = validate_promob_label(label, WS)

        assert first.id != second.id


class TestRevalidateItem:
    """Tests for revalidate_item()"""

    @pytest.fixture
    def invalid_item(self) -> PromobItem:
        return PromobItem(
            id="item-1",
            client_name="",
            project_name="Cozinha",
            item_code="AB-123",
            page_number=1,
            is_valid=False,
            errors=[CLIENT_REQUIRED_MESSAGE],
        )

    def test_fix_makes_item_valid(self, invalid_item):
        updated = revalidate_item(invalid_item, "client_name", " Silva ", WS)

        assert updated.is_valid is True
        assert updated.errors == []
        assert updated.client_name == "Silva"
        assert updated.id == "item-1"

    def test_original_item_is_untouched(self, invalid_item):
        revalidate_item(invalid_item, "client_name", "Silva", WS)

        assert invalid_item.client_name == ""
        assert invalid_item.is_valid is False
        assert invalid_item.errors == [CLIENT_REQUIRED_MESSAGE]

    def test_edit_can_introduce_duplicate(self, invalid_item):
        existing = {promob_piece_id(WS, "ZZ-999")}

        updated = revalidate_item(invalid_item, "item_code", "ZZ-999", WS, existing_ids=existing)

        assert updated.is_valid is False
        assert DUPLICATE_CODE_MESSAGE in updated.errors
        assert CLIENT_REQUIRED_MESSAGE in updated.errors


class TestRecheckItems:
    """Tests for recheck_items()"""

    @staticmethod
    def item(item_id: str, code: str) -> PromobItem:
        return PromobItem(id=item_id, client_name="Silva", project_name="Cozinha", item_code=code)

    def test_repeat_is_flagged_after_first_row(self):
        items = [self.item("a", "AB-002"), self.item("b", "AB-002")]

        checked = recheck_items(items, WS)

        assert checked[0].is_valid is True
        assert checked[1].is_valid is False
        assert checked[1].errors == [REPEATED_CODE_MESSAGE]

    def test_clearing_a_repeat_revalidates_the_other_row(self):
        items = [
            self.item("a", "AB-001"),
            self.item("b", "AB-001").model_copy(
                update={"is_valid": False, "errors": [REPEATED_CODE_MESSAGE]}
            ),
        ]
        items[0] = revalidate_item(items[0], "item_code", "AB-009", WS)

        checked = recheck_items(items, WS)

        assert [c.is_valid for c in checked] == [True, True]
        assert [c.id for c in checked] == ["a", "b"]

    def test_stored_codes_stay_duplicates(self):
        existing = {promob_piece_id(WS, "AB-001")}

        checked = recheck_items([self.item("a", "AB-001")], WS, existing_ids=existing)

        assert checked[0].errors == [DUPLICATE_CODE_MESSAGE]


class TestPromobPieces:
    """Tests for piece_from_item() and promob_project_name()"""

    def test_project_falls_back_to_module(self):
        item = PromobItem(id="1", client_name="Silva", module="Torre", item_code="AB1")

        assert promob_project_name(item) == "Torre"

    def test_project_default(self):
        item = PromobItem(id="1", client_name="Silva", item_code="AB1")

        assert promob_project_name(item) == "Projeto Promob"

    def test_piece_row(self):
        item = PromobItem(id="1", client_name="Silva", project_name="Sala", item_code="ab-1.2")

        piece = piece_from_item(item, WS)

        assert piece["id"] == f"{WS}_AB12"
        assert piece["name"] == "Piece AB12"
        assert piece["project"] == "Sala"
        assert piece["status"] == "PENDING"
