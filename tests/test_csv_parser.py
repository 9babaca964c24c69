"""Tests for the collection export CSV parser."""

from figsync.services.csv_parser import (
    CollectionCSVParser,
    parse_collection_csv,
    sanitize_formula_injection,
    truncate_field,
)

HEADER = (
    "id,title,root,category,release_date,price,scale,barcode,status,count,score,"
    "payment_date,shipping_date,collecting_date,price_1,shop,shipping_method,"
    "tracking_number,wishibility,note\n"
)

VALID_CSV = (
    HEADER
    + '1001,Rem 1/7,Re:Zero,Prepainted,2023-08-00,"15,800",1/7,4580416940000,Owned,1,8,'
    "2023-01-10,2023-02-01,2023-02-10,\"¥15,800\",AmiAmi,EMS,,,Boxed\n"
    "1002,Saber Alter,Fate,Action/Dolls,2021-11-00,5000,,,Ordered,2,,"
    "0000-00-00,,,,Good Smile Online,Carrier Pigeon,,,\n"
    "1003,Miku Racing,Vocaloid,Prepainted,2024-00-00,18000,1/7,,Wished,1,,,,,,,,,,\n"
).encode("utf-8")

MINIMAL_CSV = b"id,status\n1001,Owned\n"

INVALID_CSV = b"Wrong,Headers,Here\n1,2,3\n"

EMPTY_CSV = b""


class TestCollectionCSVParser:
    def test_validate_valid_csv(self):
        parser = CollectionCSVParser(VALID_CSV)
        assert parser.validate() is True
        assert parser.errors == []

    def test_validate_minimal_csv(self):
        assert CollectionCSVParser(MINIMAL_CSV).validate() is True

    def test_validate_invalid_headers(self):
        parser = CollectionCSVParser(INVALID_CSV)
        assert parser.validate() is False
        assert "Missing required headers" in parser.errors[0]

    def test_validate_empty_csv(self):
        assert CollectionCSVParser(EMPTY_CSV).validate() is False

    def test_parse_full_record(self):
        records = list(CollectionCSVParser(VALID_CSV).parse())

        record = records[0]
        assert record.item_external_id == 1001
        assert record.status == "Owned"
        assert record.count == 1
        assert record.score == "8"
        assert record.payment_date == "2023-01-10"
        assert record.price == "15800"
        assert record.shop == "AmiAmi"
        assert record.shipping_method == "EMS"
        assert record.note == "Boxed"
        assert record.order_id is None

    def test_unknown_shipping_method_becomes_na(self):
        records = list(CollectionCSVParser(VALID_CSV).parse())

        assert records[1].shipping_method == "n/a"
        assert records[1].status == "Ordered"
        assert records[1].count == 2

    def test_dates_passed_through_raw(self):
        """Date cleanup happens during reconciliation, not parsing."""
        records = list(CollectionCSVParser(VALID_CSV).parse())

        assert records[1].payment_date == "0000-00-00"
        assert records[1].shipping_date is None

    def test_wished_rows_skipped(self):
        parser = CollectionCSVParser(VALID_CSV)
        records = list(parser.parse())

        assert [r.item_external_id for r in records] == [1001, 1002]
        assert any("wished" in w for w in parser.warnings)

    def test_invalid_id_skipped(self):
        parser = CollectionCSVParser(b"id,status\nabc,Owned\n1001,Owned\n")
        records = list(parser.parse())

        assert [r.item_external_id for r in records] == [1001]
        assert "Row 2" in parser.warnings[0]

    def test_invalid_row_skipped_with_warning(self):
        parser = CollectionCSVParser(b"id,status,count\n1001,Lost,1\n1002,Owned,x\n1003,Owned,1\n")
        records = list(parser.parse())

        assert [r.item_external_id for r in records] == [1003]
        assert len(parser.warnings) == 2

    def test_order_columns(self):
        csv_content = b"id,status,order_id,order_date\n1001,Ordered,A-17,2024-01-02\n1002,Ordered,,\n"
        records = list(CollectionCSVParser(csv_content).parse())

        assert records[0].order_id == "A-17"
        assert records[0].order_date == "2024-01-02"
        assert records[1].order_id is None
        assert records[1].order_date is None

    def test_bom_and_latin1(self):
        bom = "\ufeffid,status,shop\n1001,Owned,Mandarake\n".encode("utf-8")
        latin1 = "id,status,shop\n1001,Owned,Boutique Café\n".encode("latin-1")

        assert list(CollectionCSVParser(bom).parse())[0].shop == "Mandarake"
        assert list(CollectionCSVParser(latin1).parse())[0].shop == "Boutique Café"

    def test_unrecognized_columns_warned(self):
        parser = CollectionCSVParser(b"id,status,colour\n1001,Owned,red\n")

        assert parser.validate() is True
        assert parser.warnings == ["Ignoring unrecognized columns: colour"]
        assert len(list(parser.parse())) == 1


class TestPriceCleaning:
    def _prices(self, content: bytes):
        parser = CollectionCSVParser(content)
        return [r.price for r in parser.parse()], parser.warnings

    def test_decimal_comma_with_dot_grouping(self):
        prices, warnings = self._prices(b'id,status,price_1\n1,Owned,"1.234,56"\n')

        assert prices == ["1234.56"]
        assert warnings == []

    def test_decimal_comma(self):
        prices, _ = self._prices(b'id,status,price_1\n1,Owned,"12,5"\n')

        assert prices == ["12.5"]

    def test_comma_grouping_and_currency(self):
        prices, _ = self._prices(
            'id,status,price_1\n1,Owned,"¥1,234,567"\n2,Owned,"$ 1,234.50"\n'.encode("utf-8")
        )

        assert prices == ["1234567", "1234.50"]

    def test_negative_price_skipped(self):
        prices, warnings = self._prices(b"id,status,price_1\n1,Owned,-5\n2,Owned,5\n")

        assert prices == ["5"]
        assert len(warnings) == 1
        assert "Row 2" in warnings[0]
        assert "Negative price" in warnings[0]

    def test_unreadable_price_skipped(self):
        prices, warnings = self._prices(b"id,status,price_1\n1,Owned,1.2.3\n")

        assert prices == []
        assert "Unreadable price" in warnings[0]

    def test_blank_price_left_for_defaulting(self):
        prices, warnings = self._prices(b"id,status,price_1\n1,Owned,\n2,Owned,n/a\n")

        assert prices == ["", ""]
        assert warnings == []


class TestParseCollectionCSV:
    def test_returns_records_errors_warnings(self):
        records, errors, warnings = parse_collection_csv(VALID_CSV)

        assert len(records) == 2
        assert errors == []
        assert len(warnings) == 1

    def test_invalid_file(self):
        records, errors, _ = parse_collection_csv(INVALID_CSV)

        assert records == []
        assert errors


class TestSanitizers:
    def test_formula_injection(self):
        assert sanitize_formula_injection("=SUM(A1)") == "'=SUM(A1)"
        assert sanitize_formula_injection("@cmd") == "'@cmd"
        assert sanitize_formula_injection("AmiAmi") == "AmiAmi"
        assert sanitize_formula_injection("") == ""

    def test_truncate(self):
        assert truncate_field("abcdef", 3) == "abc"
        assert truncate_field("abc", 10) == "abc"
