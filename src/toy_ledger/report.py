import csv
from decimal import Decimal, ROUND_DOWN
from typing import Iterable, List, TextIO

from toy_ledger.account import Account
from toy_ledger.models import LEDGER_CONTEXT

PRECISION = Decimal("0.0001")
FIELDNAMES = ["client", "available", "held", "total", "locked"]


def format_amount(value: Decimal) -> str:
    """
    Truncate (never round) to 4 decimal places, drop trailing zeros but
    keep at least one fractional digit: 1.5, 2.0, 1.1122.
    """
    truncated = value.quantize(PRECISION, rounding=ROUND_DOWN, context=LEDGER_CONTEXT)
    if truncated.is_zero():
        return "0.0"
    text = f"{truncated.normalize(LEDGER_CONTEXT):f}"
    if "." not in text:
        text += ".0"
    return text


def format_rows(accounts: Iterable[Account]) -> List[List[str]]:
    return [
        [
            str(account.client_id),
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            str(account.locked).lower(),
        ]
        for account in accounts
    ]


def write_accounts(accounts: Iterable[Account], sink: TextIO) -> None:
    # every row is formatted before the first byte reaches the sink
    rows = format_rows(accounts)
    csvwriter = csv.writer(sink, lineterminator="\n")
    csvwriter.writerow(FIELDNAMES)
    csvwriter.writerows(rows)
