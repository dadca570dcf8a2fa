import logging
from dataclasses import replace
from decimal import Decimal, localcontext
from typing import Dict, Optional

from toy_ledger.config import LedgerConfig, LockedAccountPolicy, MissingAmountPolicy
from toy_ledger.errors import (
    AccountLockedError,
    ChargebackNotFoundError,
    ChargebackUndisputedError,
    DisputeNotFoundError,
    DuplicateTransactionError,
    InsufficientFundsError,
    InvariantViolation,
    MissingAmountError,
    ResolveNotFoundError,
    ResolveUndisputedError,
)
from toy_ledger.models import LEDGER_CONTEXT, Transaction, TransactionType

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class Account:
    """
    Balances of a single client plus the deposits and withdrawals that
    later disputes, resolves and chargebacks may refer to.

    Every handler validates before it mutates, so a rejected transaction
    leaves the account exactly as it found it.
    """

    def __init__(self, client_id: int, config: Optional[LedgerConfig] = None):
        self.client_id = client_id
        self.available = ZERO
        self.held = ZERO
        self.locked = False
        self._config = config or LedgerConfig()
        self._transactions: Dict[int, Transaction] = {}

    @property
    def total(self) -> Decimal:
        return LEDGER_CONTEXT.add(self.available, self.held)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Return a copy of a retained transaction, or None."""
        transaction = self._transactions.get(transaction_id)
        return replace(transaction) if transaction is not None else None

    def is_disputed(self, transaction_id: int) -> bool:
        transaction = self._transactions.get(transaction_id)
        return transaction is not None and transaction.disputed

    def apply(self, transaction: Transaction) -> None:
        """
        Apply one transaction.

        Raises an AccountError subclass when a business rule rejects it and
        InvariantViolation when the transaction was routed to the wrong account.
        """
        if transaction.client_id != self.client_id:
            raise InvariantViolation(
                f"{transaction!r} routed to account of client {self.client_id}"
            )

        if self.locked and self._config.locked_account == LockedAccountPolicy.REJECT:
            raise AccountLockedError(self.client_id, transaction.transaction_id)

        with localcontext(LEDGER_CONTEXT):
            match transaction.transaction_type:
                case TransactionType.DEPOSIT:
                    self._handle_deposit(transaction)
                case TransactionType.WITHDRAWAL:
                    self._handle_withdrawal(transaction)
                case TransactionType.DISPUTE:
                    self._handle_dispute(transaction)
                case TransactionType.RESOLVE:
                    self._handle_resolve(transaction)
                case TransactionType.CHARGEBACK:
                    self._handle_chargeback(transaction)
                case _:
                    raise InvariantViolation(f"unknown transaction type in {transaction!r}")

        logger.debug(f"Applied {transaction!r}")

    def _funding_amount(self, transaction: Transaction) -> Decimal:
        if transaction.amount is not None:
            return transaction.amount
        if self._config.missing_amount == MissingAmountPolicy.REJECT:
            raise MissingAmountError(self.client_id, transaction.transaction_id)
        return ZERO

    def _retain(self, transaction: Transaction, amount: Decimal) -> None:
        self._transactions[transaction.transaction_id] = replace(transaction, amount=amount, disputed=False)

    def _check_unused(self, transaction: Transaction) -> None:
        if transaction.transaction_id in self._transactions:
            raise DuplicateTransactionError(self.client_id, transaction.transaction_id)

    def _referenced(self, transaction_id: int) -> Optional[Transaction]:
        original = self._transactions.get(transaction_id)
        if original is not None and not original.transaction_type.is_funding:
            raise InvariantViolation(f"retained {original!r} is not a deposit or withdrawal")
        return original

    def _handle_deposit(self, transaction: Transaction) -> None:
        self._check_unused(transaction)
        amount = self._funding_amount(transaction)

        self.available += amount
        self._retain(transaction, amount)

    def _handle_withdrawal(self, transaction: Transaction) -> None:
        self._check_unused(transaction)
        amount = self._funding_amount(transaction)

        if self.available < amount:
            raise InsufficientFundsError(self.client_id, transaction.transaction_id)

        self.available -= amount
        self._retain(transaction, amount)

    def _handle_dispute(self, transaction: Transaction) -> None:
        original = self._referenced(transaction.transaction_id)
        if original is None:
            raise DisputeNotFoundError(self.client_id, transaction.transaction_id)

        if original.transaction_type == TransactionType.DEPOSIT:
            # available -> held, total unchanged
            self.available -= original.amount
            self.held += original.amount
        else:
            # the withdrawn amount is provisionally restored as held funds
            self.held += original.amount
        original.disputed = True

    def _handle_resolve(self, transaction: Transaction) -> None:
        original = self._referenced(transaction.transaction_id)
        if original is None:
            raise ResolveNotFoundError(self.client_id, transaction.transaction_id)
        if not original.disputed:
            raise ResolveUndisputedError(self.client_id, transaction.transaction_id)

        if original.transaction_type == TransactionType.DEPOSIT:
            self.held -= original.amount
            self.available += original.amount
        else:
            # withdrawal stands
            self.held -= original.amount
        original.disputed = False

    def _handle_chargeback(self, transaction: Transaction) -> None:
        original = self._referenced(transaction.transaction_id)
        if original is None:
            raise ChargebackNotFoundError(self.client_id, transaction.transaction_id)
        if not original.disputed:
            raise ChargebackUndisputedError(self.client_id, transaction.transaction_id)

        if original.transaction_type == TransactionType.DEPOSIT:
            self.held -= original.amount
        else:
            # withdrawal reversed
            self.held -= original.amount
            self.available += original.amount
        original.disputed = False
        self.locked = True

    def __repr__(self) -> str:
        return (
            f"Account(client={self.client_id}, available={self.available}, held={self.held}, "
            f"total={self.total}, locked={self.locked})"
        )
