from dataclasses import dataclass
from decimal import Context, Decimal, MAX_EMAX, MIN_EMIN
from enum import Enum
from typing import Optional

MAX_CLIENT_ID = 0xFFFF
MAX_TRANSACTION_ID = 0xFFFFFFFF

# amounts are bounded to the range of a double so that balances stay exact
# under LEDGER_CONTEXT
MAX_AMOUNT_EXPONENT = 308
MAX_AMOUNT_FRACTION_DIGITS = 340

LEDGER_CONTEXT = Context(prec=1000, Emax=MAX_EMAX, Emin=MIN_EMIN)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def is_funding(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None
    disputed: bool = False

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


class ProcessingStats:
    """Counters for one pass over the transaction stream."""

    def __init__(self):
        self.applied = 0
        self.skipped = 0

    def record_applied(self):
        self.applied += 1

    def record_skipped(self):
        self.skipped += 1

    def __repr__(self) -> str:
        return f"ProcessingStats(applied={self.applied}, skipped={self.skipped})"
