import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional

from toy_ledger.errors import IngestError
from toy_ledger.models import (
    MAX_AMOUNT_EXPONENT,
    MAX_AMOUNT_FRACTION_DIGITS,
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """
    Lazily parse a CSV file of transactions.
    Raises IngestError on the first record (or I/O failure) that cannot be read.
    """
    try:
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                raise IngestError(f"{filepath} has no header row")
            reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]

            missing = [column for column in REQUIRED_COLUMNS if column not in reader.fieldnames]
            if missing:
                raise IngestError(f"{filepath} header is missing columns: {', '.join(missing)}")

            count = 0
            for row in reader:
                yield parse_row(row, reader.line_num)
                count += 1
            logger.info(f"Read {count} transactions from {filepath}")
    except OSError as e:
        raise IngestError(f"could not read {filepath}: {e}") from e
    except csv.Error as e:
        raise IngestError(f"malformed CSV in {filepath}: {e}") from e
    except UnicodeDecodeError as e:
        raise IngestError(f"{filepath} is not valid UTF-8: {e}") from e


def parse_row(row: Dict[Optional[str], Optional[str]], line_number: Optional[int] = None) -> Transaction:
    """Parse CSV row into Transaction."""
    if None in row:
        raise IngestError(f"too many fields in {row!r}", line_number)

    normalized = {k: (v.strip() if v is not None else "") for k, v in row.items()}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
    except ValueError:
        raise IngestError(f"unknown transaction type {normalized['type']!r}", line_number) from None

    client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID, line_number)
    transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID, line_number)

    amount = None
    amount_str = normalized.get("amount", "")
    if amount_str and transaction_type.is_funding:
        amount = _parse_amount(amount_str, line_number)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, field: str, maximum: int, line_number: Optional[int]) -> int:
    if not (value.isascii() and value.isdigit()):
        raise IngestError(f"invalid {field} {value!r}", line_number)
    parsed = int(value)
    if parsed > maximum:
        raise IngestError(f"{field} {parsed} out of range 0..{maximum}", line_number)
    return parsed


def _parse_amount(value: str, line_number: Optional[int]) -> Decimal:
    if "_" in value:
        raise IngestError(f"invalid amount {value!r}", line_number)
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise IngestError(f"invalid amount {value!r}", line_number) from None
    if not amount.is_finite() or amount < 0:
        raise IngestError(f"amount must be a non-negative number, got {value!r}", line_number)
    if amount.adjusted() > MAX_AMOUNT_EXPONENT or amount.as_tuple().exponent < -MAX_AMOUNT_FRACTION_DIGITS:
        raise IngestError(f"amount {value!r} out of range", line_number)
    return amount
