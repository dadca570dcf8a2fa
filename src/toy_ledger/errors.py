from typing import Optional


class LedgerEngineError(Exception):
    """Base class for recoverable errors raised by the engine."""


class AccountError(LedgerEngineError):
    """
    Business-rule failure while applying a transaction to an account.
    The account is left untouched when one of these is raised.
    """

    reason = "transaction rejected"

    def __init__(self, client_id: int, transaction_id: int):
        self.client_id = client_id
        self.transaction_id = transaction_id
        super().__init__(f"client {client_id}, tx {transaction_id}: {self.reason}")


class InsufficientFundsError(AccountError):
    reason = "insufficient available funds"


class DisputeNotFoundError(AccountError):
    reason = "disputed transaction not found"


class ResolveNotFoundError(AccountError):
    reason = "resolved transaction not found"


class ResolveUndisputedError(AccountError):
    reason = "resolved transaction is not under dispute"


class ChargebackNotFoundError(AccountError):
    reason = "charged back transaction not found"


class ChargebackUndisputedError(AccountError):
    reason = "charged back transaction is not under dispute"


class MissingAmountError(AccountError):
    reason = "funding transaction has no amount"


class AccountLockedError(AccountError):
    reason = "account is locked"


class IngestError(LedgerEngineError):
    """Input could not be read or a record could not be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class LedgerError(LedgerEngineError):
    """Strict-mode abort caused by a business-rule failure."""

    def __init__(self, error: AccountError):
        self.error = error
        super().__init__(f"aborting on rejected transaction: {error}")


class InvariantViolation(RuntimeError):
    """
    Internal invariant broken (wrong-client routing, corrupt retained
    transaction, reused transaction id). Never caught by the engine.
    """


class DuplicateTransactionError(InvariantViolation):
    def __init__(self, client_id: int, transaction_id: int):
        self.client_id = client_id
        self.transaction_id = transaction_id
        super().__init__(f"client {client_id}: transaction id {transaction_id} used more than once")
