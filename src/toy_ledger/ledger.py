import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Set, TextIO

from toy_ledger.account import Account
from toy_ledger.config import LedgerConfig
from toy_ledger.errors import AccountError, DuplicateTransactionError, LedgerError
from toy_ledger.models import ProcessingStats, Transaction
from toy_ledger.report import write_accounts

logger = logging.getLogger(__name__)


class LedgerBook:
    """
    Registry of client accounts built by folding a transaction stream.
    Accounts are created the first time their client id is seen and are
    never removed.
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self._config = config or LedgerConfig()
        self._accounts: Dict[int, Account] = {}
        self._funding_transaction_ids: Set[int] = set()
        self.stats = ProcessingStats()

    @classmethod
    def build(cls, transactions: Iterable[Transaction], config: Optional[LedgerConfig] = None) -> "LedgerBook":
        """
        Apply every transaction in order and return the resulting book.

        IngestError raised while iterating always propagates. A rejected
        transaction is skipped, or raised as LedgerError in strict mode.
        InvariantViolation always propagates.
        """
        book = cls(config)
        for transaction in transactions:
            book.process_transaction(transaction)

        logger.info(f"Applied: {book.stats.applied}, Skipped: {book.stats.skipped}, Accounts: {len(book)}")
        return book

    def process_transaction(self, transaction: Transaction) -> None:
        if transaction.transaction_type.is_funding:
            if transaction.transaction_id in self._funding_transaction_ids:
                raise DuplicateTransactionError(transaction.client_id, transaction.transaction_id)
            self._funding_transaction_ids.add(transaction.transaction_id)

        account = self.get_or_create_account(transaction.client_id)
        try:
            account.apply(transaction)
        except AccountError as e:
            if self._config.strict:
                raise LedgerError(e) from e
            logger.warning(f"Skipping {transaction!r}: {e.reason}")
            self.stats.record_skipped()
            return

        self.stats.record_applied()

    def get_or_create_account(self, client_id: int) -> Account:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = Account(client_id, self._config)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[Account]:
        return self._accounts.get(client_id)

    @property
    def accounts(self) -> Mapping[int, Account]:
        return MappingProxyType(self._accounts)

    def render(self, sink: TextIO) -> None:
        """Write the final balance report for every account to sink."""
        write_accounts(self, sink)

    def __iter__(self) -> Iterator[Account]:
        if self._config.sort_output:
            return iter([self._accounts[client_id] for client_id in sorted(self._accounts)])
        return iter(list(self._accounts.values()))

    def __len__(self) -> int:
        return len(self._accounts)
