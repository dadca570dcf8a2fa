import argparse
import logging
import sys
from typing import Optional, Sequence

from toy_ledger.config import LedgerConfig
from toy_ledger.csv_reader import read_transactions
from toy_ledger.errors import IngestError, LedgerError
from toy_ledger.ledger import LedgerBook

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute final client balances from a CSV log of transactions and print them as CSV."
    )
    parser.add_argument("input", help="CSV file with columns type, client, tx, amount.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first rejected transaction instead of skipping it.",
    )
    parser.add_argument(
        "--reject-missing-amount",
        action="store_true",
        help="Reject deposits and withdrawals without an amount instead of treating them as zero.",
    )
    parser.add_argument(
        "--reject-locked",
        action="store_true",
        help="Reject transactions on accounts locked by a chargeback.",
    )
    parser.add_argument(
        "--unsorted",
        action="store_true",
        help="Print accounts in first-seen order instead of by client id.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    config = LedgerConfig.from_args(args)
    try:
        book = LedgerBook.build(read_transactions(args.input), config)
    except (IngestError, LedgerError) as e:
        logger.error(str(e))
        return 1

    book.render(sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
