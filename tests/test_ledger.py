import sys
import os
import io
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from toy_ledger.config import LedgerConfig
from toy_ledger.csv_reader import read_transactions
from toy_ledger.errors import DuplicateTransactionError, IngestError, InsufficientFundsError, InvariantViolation, LedgerError
from toy_ledger.ledger import LedgerBook
from toy_ledger.models import Transaction, TransactionType


def build_from_csv(tmp_path, lines, config=None):
    csv_file = tmp_path / "test.csv"
    csv_file.write_text('\n'.join(lines))
    return LedgerBook.build(read_transactions(str(csv_file)), config)


def render(book):
    sink = io.StringIO()
    book.render(sink)
    return sink.getvalue()


class TestLedgerBook:
    def test_basic_transactions(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "deposit, 1, 3, 2.0",
            "withdrawal, 1, 4, 1.5",
            "withdrawal, 2, 5, 3.0",
        ])

        assert len(book) == 2
        assert book.get_account(1).available == Decimal("1.5")
        assert book.get_account(1).held == Decimal("0")
        assert book.get_account(1).total == Decimal("1.5")
        assert book.get_account(2).available == Decimal("2.0")
        assert book.get_account(2).total == Decimal("2.0")

        assert render(book) == (
            "client,available,held,total,locked\n"
            "1,1.5,0.0,1.5,false\n"
            "2,2.0,0.0,2.0,false\n"
        )

    def test_dispute_resolve(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "resolve, 1, 1,",
        ])

        account = book.get_account(1)
        assert account.available == Decimal("100")
        assert account.held == Decimal("0")
        assert account.locked is False

    def test_chargeback(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "chargeback, 1, 1,",
        ])

        assert render(book) == "client,available,held,total,locked\n1,0.0,0.0,0.0,true\n"

    def test_non_strict_skips_overdraft(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "withdrawal, 1, 1, 5.0",
            "deposit, 1, 2, 3.0",
        ])

        assert book.get_account(1).available == Decimal("3.0")
        assert book.get_account(1).total == Decimal("3.0")
        assert book.stats.applied == 1
        assert book.stats.skipped == 1

    def test_strict_aborts_on_overdraft(self, tmp_path):
        with pytest.raises(LedgerError) as exc_info:
            build_from_csv(tmp_path, [
                "type, client, tx, amount",
                "withdrawal, 1, 1, 5.0",
                "deposit, 1, 2, 3.0",
            ], LedgerConfig(strict=True))

        assert isinstance(exc_info.value.error, InsufficientFundsError)
        assert isinstance(exc_info.value.__cause__, InsufficientFundsError)

    def test_strict_accepts_clean_stream(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 3.0",
            "withdrawal, 1, 2, 1.0",
        ], LedgerConfig(strict=True))

        assert book.get_account(1).available == Decimal("2.0")

    def test_skipped_transaction_is_logged(self, tmp_path, caplog):
        with caplog.at_level("WARNING"):
            build_from_csv(tmp_path, [
                "type, client, tx, amount",
                "dispute, 1, 9,",
            ])

        assert "client=1, tx=9" in caplog.text
        assert "disputed transaction not found" in caplog.text

    def test_account_created_even_if_every_event_fails(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "withdrawal, 7, 1, 5.0",
        ])

        assert render(book) == "client,available,held,total,locked\n7,0.0,0.0,0.0,false\n"

    def test_wrong_client_dispute_not_found(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 100.0",
            "dispute, 2, 1,",
        ])

        assert book.get_account(1).available == Decimal("100")
        assert book.get_account(1).held == Decimal("0")
        assert book.get_account(2).held == Decimal("0")

    def test_multiple_disputes_same_client(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 100.0",
            "deposit, 1, 2, 50.0",
            "dispute, 1, 1,",
            "dispute, 1, 2,",
            "resolve, 1, 1,",
            "chargeback, 1, 2,",
        ])

        # After resolve tx1: available=100, held=50
        # After chargeback tx2: available=100, held=0, total=100, locked=True
        account = book.get_account(1)
        assert account.available == Decimal("100")
        assert account.held == Decimal("0")
        assert account.total == Decimal("100")
        assert account.locked is True

    def test_decimal_precision(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 1.2345",
            "deposit, 1, 2, 0.0001",
            "withdrawal, 1, 3, 0.2346",
        ])

        assert book.get_account(1).available == Decimal("1.0000")

    def test_truncates_on_render(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 1, 1, 1.11223344",
        ])

        assert render(book) == "client,available,held,total,locked\n1,1.1122,0.0,1.1122,false\n"

    def test_render_is_repeatable(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 3, 1, 10.5",
            "deposit, 1, 2, 2.0",
            "dispute, 3, 1,",
            "withdrawal, 1, 3, 0.33333",
        ])

        assert render(book) == render(book)

    def test_render_sorted_by_client(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 3, 1, 1",
            "deposit, 1, 2, 1",
            "deposit, 2, 3, 1",
        ])

        assert [account.client_id for account in book] == [1, 2, 3]

    def test_render_unsorted_keeps_first_seen_order(self, tmp_path):
        book = build_from_csv(tmp_path, [
            "type, client, tx, amount",
            "deposit, 3, 1, 1",
            "deposit, 1, 2, 1",
            "deposit, 2, 3, 1",
        ], LedgerConfig(sort_output=False))

        assert [account.client_id for account in book] == [3, 1, 2]

    def test_ingest_error_is_fatal_in_lenient_mode(self, tmp_path):
        with pytest.raises(IngestError):
            build_from_csv(tmp_path, [
                "type, client, tx, amount",
                "deposit, 1, 1, 1.0",
                "deposit, one, 2, 1.0",
            ])

    def test_duplicate_transaction_id_is_fatal(self, tmp_path):
        with pytest.raises(DuplicateTransactionError):
            build_from_csv(tmp_path, [
                "type, client, tx, amount",
                "deposit, 1, 1, 1.0",
                "deposit, 2, 1, 1.0",
            ])

    def test_duplicate_of_skipped_transaction_is_fatal(self, tmp_path):
        with pytest.raises(DuplicateTransactionError):
            build_from_csv(tmp_path, [
                "type, client, tx, amount",
                "withdrawal, 1, 1, 5.0",
                "deposit, 1, 1, 1.0",
            ])


class TestLedgerBookInMemory:
    def test_build_from_any_iterable(self):
        transactions = [
            Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("2.0")),
            Transaction(TransactionType.WITHDRAWAL, 1, 2, Decimal("0.5")),
        ]

        book = LedgerBook.build(transactions)

        assert book.get_account(1).available == Decimal("1.5")
        assert book.get_account(2) is None

    def test_ingest_error_propagates_from_generator(self):
        def events():
            yield Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("2.0"))
            raise IngestError("broken record", 3)

        with pytest.raises(IngestError, match="line 3"):
            LedgerBook.build(events())

    def test_invariant_violation_not_caught(self):
        book = LedgerBook()
        account = book.get_or_create_account(1)
        account._transactions[5] = Transaction(TransactionType.DISPUTE, 1, 5)

        with pytest.raises(InvariantViolation):
            book.process_transaction(Transaction(TransactionType.RESOLVE, 1, 5))

    def test_accounts_view_is_read_only(self):
        book = LedgerBook.build([Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("1"))])

        with pytest.raises(TypeError):
            book.accounts[2] = None
        assert list(book.accounts) == [1]
