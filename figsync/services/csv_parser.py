"""
Collection CSV parser.

Handles parsing and validation of collection export CSV files from the
catalog site (one row per owned or ordered item).
"""

import csv
import io
import re
from typing import Iterator

from figsync.schemas.sync import SHIPPING_METHODS, ImportRecord

# Maximum field lengths to prevent memory exhaustion
MAX_SHOP_LENGTH = 255
MAX_NOTE_LENGTH = 10000
MAX_MARKER_LENGTH = 100

REQUIRED_HEADERS = ["id", "status"]

OPTIONAL_HEADERS = [
    "title",
    "root",
    "category",
    "release_date",
    "price",
    "scale",
    "barcode",
    "count",
    "score",
    "payment_date",
    "shipping_date",
    "collecting_date",
    "price_1",
    "shop",
    "shipping_method",
    "tracking_number",
    "wishibility",
    "note",
    "order_id",
    "order_date",
]

# Price cells carry currency symbols and either grouping convention
PRICE_NOISE_RE = re.compile(r"[^\d.,\-]")
GROUPED_AMOUNT_RE = re.compile(r"^\d{1,3}([.,])\d{3}(?:\1\d{3})*$")
PLAIN_AMOUNT_RE = re.compile(r"^\d+(?:\.\d+)?$")

# Wishlist rows describe items the user does not have
SKIPPED_STATUSES = {"Wished"}


def sanitize_formula_injection(value: str) -> str:
    """
    Sanitize a string to prevent CSV/formula injection.

    Spreadsheet programs interpret cells starting with =, +, -, @, \\t or \\r
    as formulas.
    """
    if value and value[0] in ("=", "+", "-", "@", "\t", "\r"):
        return "'" + value
    return value


def truncate_field(value: str, max_length: int) -> str:
    """Truncate a field to maximum length."""
    if len(value) > max_length:
        return value[:max_length]
    return value


class CollectionCSVParser:
    """Parser for collection export CSV files."""

    def __init__(self, content: bytes):
        self.content = content
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self) -> bool:
        """
        Validate that the content is a collection export.

        Returns:
            True if valid, False otherwise. Check self.errors for details.
        """
        text = self._decode_content()

        reader = csv.DictReader(io.StringIO(text))
        if reader.fieldnames is None:
            self.errors.append("CSV file appears to be empty")
            return False

        fieldnames = [name.strip() for name in reader.fieldnames]
        missing_headers = [h for h in REQUIRED_HEADERS if h not in fieldnames]
        if missing_headers:
            self.errors.append(
                f"Missing required headers: {', '.join(missing_headers)}. "
                "This doesn't appear to be a collection export."
            )
            return False

        known = set(REQUIRED_HEADERS) | set(OPTIONAL_HEADERS)
        unexpected = [name for name in fieldnames if name and name not in known]
        if unexpected:
            self.warnings.append(f"Ignoring unrecognized columns: {', '.join(unexpected)}")

        return True

    def parse(self) -> Iterator[ImportRecord]:
        """
        Parse the CSV and yield ImportRecord objects.

        Rows that cannot be parsed are skipped and reported in self.warnings.
        """
        text = self._decode_content()
        reader = csv.DictReader(io.StringIO(text))

        for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is row 1)
            row = {(key or "").strip(): (value or "") for key, value in row.items()}
            try:
                record = self._parse_row(row, row_num)
            except ValueError as e:
                self.warnings.append(f"Row {row_num}: Failed to parse - {e}")
                continue
            if record:
                yield record

    def _decode_content(self) -> str:
        """Decode CSV content, trying multiple encodings."""
        try:
            return self.content.decode("utf-8-sig")
        except UnicodeDecodeError:
            pass

        # Latin-1 as fallback (handles any byte sequence)
        return self.content.decode("latin-1")

    def _parse_row(self, row: dict[str, str], row_num: int) -> ImportRecord | None:
        """Parse a single CSV row into an ImportRecord."""
        raw_id = row.get("id", "").strip()
        if not raw_id.isdigit():
            self.warnings.append(f"Row {row_num}: Missing or invalid item id '{raw_id}'")
            return None

        status = row.get("status", "").strip() or "Owned"
        if status in SKIPPED_STATUSES:
            self.warnings.append(f"Row {row_num}: Skipping {status.lower()} item {raw_id}")
            return None

        count = row.get("count", "").strip() or "1"

        shipping_method = row.get("shipping_method", "").strip()
        if shipping_method not in SHIPPING_METHODS:
            shipping_method = "n/a"

        shop = truncate_field(
            sanitize_formula_injection(row.get("shop", "").strip()), MAX_SHOP_LENGTH
        )
        note = truncate_field(
            sanitize_formula_injection(row.get("note", "").strip()), MAX_NOTE_LENGTH
        )
        marker = truncate_field(row.get("order_id", "").strip(), MAX_MARKER_LENGTH)

        return ImportRecord(
            item_external_id=int(raw_id),
            status=status,
            count=int(count),
            score=row.get("score", "").strip(),
            payment_date=row.get("payment_date", "").strip() or None,
            shipping_date=row.get("shipping_date", "").strip() or None,
            collecting_date=row.get("collecting_date", "").strip() or None,
            price=self._clean_price(row.get("price_1", "")),
            shop=shop,
            shipping_method=shipping_method,
            note=note,
            order_id=marker or None,
            order_date=row.get("order_date", "").strip() or None,
        )

    @staticmethod
    def _clean_price(value: str) -> str:
        """
        Normalize a price cell to a plain decimal string.

        Currency symbols and spaces are dropped, thousands separators removed
        and a decimal comma turned into a dot.

        Raises:
            ValueError: for negative or unreadable amounts.
        """
        cleaned = PRICE_NOISE_RE.sub("", value)
        if not cleaned:
            return ""
        if "-" in cleaned:
            raise ValueError(f"Negative price '{value.strip()}'")

        if "," in cleaned and "." in cleaned:
            # Whichever separator comes last is the decimal point
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            if GROUPED_AMOUNT_RE.match(cleaned):
                cleaned = cleaned.replace(",", "")
            elif cleaned.count(",") == 1:
                cleaned = cleaned.replace(",", ".")
        elif cleaned.count(".") > 1 and GROUPED_AMOUNT_RE.match(cleaned):
            cleaned = cleaned.replace(".", "")

        if not PLAIN_AMOUNT_RE.match(cleaned):
            raise ValueError(f"Unreadable price '{value.strip()}'")
        return cleaned


def parse_collection_csv(content: bytes) -> tuple[list[ImportRecord], list[str], list[str]]:
    """
    Convenience function to parse a collection export.

    Returns:
        Tuple of (records, errors, warnings)
    """
    parser = CollectionCSVParser(content)
    if not parser.validate():
        return [], parser.errors, parser.warnings

    records = list(parser.parse())
    return records, parser.errors, parser.warnings
