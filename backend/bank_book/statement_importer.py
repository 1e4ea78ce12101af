"""
Bank Statement Importer

Turns an uploaded delimited-text bank statement into StatementLine records.
Parsing is all-or-nothing: every row is checked and every problem is
collected, so the caller can reject the whole batch with a complete
per-row error list instead of importing part of a statement.

Recognised columns (header match ignores case, spaces, dashes and underscores):
- statementRef:  statementRef, reference, ref, referenceNumber
- statementDate: statementDate, date, transactionDate, valueDate
- amount:        amount, value
- description:   description, narration, details, memo
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from utils.errors import BadRequestError, ValidationError, row_errors

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "txt")
SNIFF_DELIMITERS = ",;\t|"

COLUMN_ALIASES: Dict[str, tuple] = {
    "statement_ref": ("statementref", "reference", "ref", "referencenumber"),
    "statement_date": ("statementdate", "date", "transactiondate", "valuedate"),
    "amount": ("amount", "value"),
    "description": ("description", "narration", "details", "memo"),
}
REQUIRED_COLUMNS = ("statement_ref", "statement_date")

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")

# bank_book_entries.amount is Numeric(14, 2)
CENTS = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")


@dataclass
class StatementLine:
    """One parsed statement row."""
    line_number: int
    statement_ref: str
    statement_date: date
    amount: Optional[Decimal] = None
    description: Optional[str] = None


@dataclass
class RowError:
    line_number: int
    field: str
    message: str

    def to_dict(self) -> Dict[str, object]:
        return {"line": self.line_number, "field": self.field, "message": self.message}


@dataclass
class ParsedStatement:
    lines: List[StatementLine] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    delimiter: str = ","

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _normalise_header(name: Optional[str]) -> str:
    return re.sub(r"[\s_\-]", "", (name or "").strip().lower())


def parse_statement_date(value: str) -> Optional[date]:
    """Parse the date formats banks commonly export. Returns None if unparseable."""
    value = value.strip()
    if not value:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    # ISO datetime, e.g. 2024-01-15T00:00:00Z
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _normalise_separators(value: str) -> str:
    """
    Rewrite an amount so "." is the only decimal separator.

    With both "," and "." present, whichever comes last is the decimal point
    (1.234,56 or 1,234.56). A lone comma followed by one or two digits is a
    decimal comma (100,50); commas between groups of three digits are
    thousands separators (1,234,567). Anything else is ambiguous.
    """
    if "," in value and "." in value:
        if value.rfind(",") > value.rfind("."):
            return value.replace(".", "").replace(",", ".")
        return value.replace(",", "")

    if "," in value:
        parts = value.split(",")
        if len(parts) == 2 and len(parts[1]) in (1, 2):
            return value.replace(",", ".")
        if all(len(part) == 3 for part in parts[1:]):
            return value.replace(",", "")
        raise ValueError(f"'{value}' is not a valid amount")

    return value


def parse_amount(value: str) -> Decimal:
    """
    Parse a statement amount.

    Whitespace is ignored, decimal commas and thousands separators are
    accepted, and an amount in parentheses is negative. Raises ValueError if
    the value is not a number, has more than 2 decimal places, or does not
    fit the stored column (|amount| < 1,000,000,000,000).
    """
    cleaned = value.strip().replace(" ", "")
    negative = cleaned.startswith("(") and cleaned.endswith(")")
    if negative:
        cleaned = cleaned[1:-1]

    cleaned = _normalise_separators(cleaned)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"'{value}' is not a valid amount")

    if not amount.is_finite():
        raise ValueError(f"'{value}' is not a valid amount")

    if abs(amount) >= MAX_AMOUNT:
        raise ValueError(f"'{value}' is out of range")

    if amount != amount.quantize(CENTS):
        raise ValueError(f"'{value}' has more than 2 decimal places")

    amount = amount.quantize(CENTS)
    return -amount if negative else amount


class BankStatementImporter:
    """Parses statement uploads; does not touch the database."""

    def __init__(self, max_rows: int = 10000, max_bytes: Optional[int] = None):
        self.max_rows = max_rows
        self.max_bytes = max_bytes

    def check_upload(self, filename: Optional[str], content: Optional[bytes]) -> None:
        """Reject uploads that cannot be parsed at all."""
        if content is None:
            raise BadRequestError("Statement file required")

        extension = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""
        if extension not in SUPPORTED_EXTENSIONS:
            raise BadRequestError(
                f"Unsupported file type: {extension or 'unknown'}. Supported: {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        if len(content) == 0:
            raise BadRequestError("Statement file is empty")

        if self.max_bytes is not None and len(content) > self.max_bytes:
            raise self._too_large()

    def _too_large(self) -> BadRequestError:
        return BadRequestError(f"Statement file too large (max {self.max_bytes // (1024 * 1024)}MB)")

    async def read_upload(self, upload) -> Optional[bytes]:
        """
        Read an uploaded file, never more than one byte past max_bytes.

        An upload whose declared size is already over the limit is rejected
        without reading; a longer body is cut at max_bytes + 1 so check_upload
        still rejects it.
        """
        if upload is None:
            return None
        if self.max_bytes is None:
            return await upload.read()
        if upload.size is not None and upload.size > self.max_bytes:
            raise self._too_large()
        return await upload.read(self.max_bytes + 1)

    def _decode(self, content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise BadRequestError("Statement file must be UTF-8 encoded text")

    def _map_columns(self, fieldnames: List[str]) -> Dict[str, str]:
        """Map canonical field -> header name as it appears in the file."""
        mapping: Dict[str, str] = {}
        for header in fieldnames:
            normalised = _normalise_header(header)
            for canonical, aliases in COLUMN_ALIASES.items():
                if canonical not in mapping and normalised in aliases:
                    mapping[canonical] = header
        return mapping

    def parse(self, content: bytes) -> ParsedStatement:
        """
        Parse statement bytes into lines and per-row errors.

        Raises:
            BadRequestError: content is not decodable text
            ValidationError: header lacks required columns, no data rows,
                or too many rows
        """
        text = self._decode(content)
        sample = text[:4096]

        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=SNIFF_DELIMITERS)
        except csv.Error:
            dialect = csv.excel

        reader = csv.DictReader(io.StringIO(text), dialect=dialect)
        fieldnames = reader.fieldnames or []
        columns = self._map_columns(fieldnames)

        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValidationError(
                "Statement header is missing required columns",
                details={"missing_columns": missing, "columns": list(fieldnames)},
            )

        result = ParsedStatement(delimiter=dialect.delimiter)
        row_count = 0

        for row in reader:
            values = {canonical: (row.get(header) or "").strip() for canonical, header in columns.items()}
            if not any(v for v in row.values() if isinstance(v, str) and v.strip()):
                continue

            row_count += 1
            if row_count > self.max_rows:
                raise ValidationError(
                    f"Statement has more than {self.max_rows} rows",
                    details={"max_rows": self.max_rows},
                )

            line_number = reader.line_num
            row_failed = False

            reference = values.get("statement_ref", "")
            if not reference:
                result.errors.append(RowError(line_number, "statementRef", "statementRef is required"))
                row_failed = True

            raw_date = values.get("statement_date", "")
            statement_date = parse_statement_date(raw_date)
            if statement_date is None:
                message = "statementDate is required" if not raw_date else f"'{raw_date}' is not a valid date"
                result.errors.append(RowError(line_number, "statementDate", message))
                row_failed = True

            amount = None
            raw_amount = values.get("amount", "")
            if raw_amount:
                try:
                    amount = parse_amount(raw_amount)
                except ValueError as e:
                    result.errors.append(RowError(line_number, "amount", str(e)))
                    row_failed = True

            if row_failed:
                continue

            result.lines.append(StatementLine(
                line_number=line_number,
                statement_ref=reference,
                statement_date=statement_date,
                amount=amount,
                description=values.get("description") or None,
            ))

        if row_count == 0:
            raise ValidationError("Statement contains no rows")

        logger.debug(
            f"Parsed statement: {len(result.lines)} lines, {len(result.errors)} errors",
            extra={"delimiter": result.delimiter}
        )
        return result

    def parse_or_raise(self, content: bytes) -> List[StatementLine]:
        """Parse and fail the whole batch if any row is invalid."""
        parsed = self.parse(content)
        if not parsed.is_valid:
            raise row_errors(
                f"Statement import rejected: {len(parsed.errors)} invalid row(s)",
                [e.to_dict() for e in parsed.errors],
            )
        return parsed.lines
