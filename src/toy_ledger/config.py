import argparse
from dataclasses import dataclass
from enum import Enum


class MissingAmountPolicy(Enum):
    ZERO = "zero"
    REJECT = "reject"


class LockedAccountPolicy(Enum):
    PERMIT = "permit"
    REJECT = "reject"


@dataclass(frozen=True)
class LedgerConfig:
    """
    Run policy for building a ledger book.

    strict: abort on the first rejected transaction instead of skipping it.
    missing_amount: what a deposit/withdrawal without an amount means.
    locked_account: whether a charged-back account keeps accepting events.
    sort_output: render accounts ordered by client id.
    """

    strict: bool = False
    missing_amount: MissingAmountPolicy = MissingAmountPolicy.ZERO
    locked_account: LockedAccountPolicy = LockedAccountPolicy.PERMIT
    sort_output: bool = True

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "LedgerConfig":
        return cls(
            strict=args.strict,
            missing_amount=MissingAmountPolicy.REJECT if args.reject_missing_amount else MissingAmountPolicy.ZERO,
            locked_account=LockedAccountPolicy.REJECT if args.reject_locked else LockedAccountPolicy.PERMIT,
            sort_output=not args.unsorted,
        )
