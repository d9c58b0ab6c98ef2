"""CSV holdings import.

Expected columns (case-insensitive, any order, extra columns ignored):
symbol, quantity, price, date. Each valid row becomes a buy transaction;
invalid rows are reported and skipped.
"""

import csv
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO

from coinfolio.services.exceptions import ValidationError
from coinfolio.services.market_data.coingecko_client import CoinGeckoClient

REQUIRED_COLUMNS = ("symbol", "quantity", "price", "date")

TEMPLATE = "symbol,quantity,price,date\nBTC,0.5,45000,2024-01-01\nETH,2.0,3000,2024-01-01\n"


@dataclass
class CsvTrade:
    line_number: int
    symbol: str
    coin_id: str
    quantity: Decimal
    price: Decimal
    date: datetime


@dataclass
class CsvImportResult:
    imported: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def decode_upload(content: bytes) -> str:
    """Decode uploaded bytes, trying UTF-8 (with or without BOM) then latin-1."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def _positive_decimal(raw: str | None, what: str) -> Decimal:
    try:
        value = Decimal((raw or "").strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid {what}") from None
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Invalid {what}")
    return value


def _parse_date(raw: str | None) -> datetime:
    try:
        parsed = datetime.fromisoformat((raw or "").strip())
    except ValueError:
        raise ValidationError("Invalid date") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def parse_row(row: dict[str, str | None], line_number: int) -> CsvTrade:
    """Validate one CSV row.

    Raises:
        ValidationError: Missing symbol, non-positive quantity or price, or an
            unparseable date.
    """
    symbol = (row.get("symbol") or "").strip()
    if not symbol:
        raise ValidationError("Missing symbol")
    return CsvTrade(
        line_number=line_number,
        symbol=symbol.upper(),
        coin_id=CoinGeckoClient.symbol_to_id(symbol),
        quantity=_positive_decimal(row.get("quantity"), "quantity"),
        price=_positive_decimal(row.get("price"), "price"),
        date=_parse_date(row.get("date")),
    )


def read_rows(text: str) -> list[tuple[int, dict[str, str | None]]]:
    """Split CSV text into (line number, row) pairs keyed by lower-case header.

    Raises:
        ValidationError: The header row lacks a required column.
    """
    reader = csv.DictReader(StringIO(text))
    headers = [h.strip().lower() for h in reader.fieldnames or []]
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    reader.fieldnames = headers

    rows = []
    for row in reader:
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        rows.append((reader.line_num, row))
    return rows
