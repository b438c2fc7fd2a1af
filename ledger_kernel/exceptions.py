"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the reconciliation engine (import screens, collection desks,
report jobs) need to react differently to a malformed import row, a lost
record lock and a store outage. Matching on message text is brittle, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        committer.commit(staged, actor)
    except PartialCommitError as e:
        notify(f"{e.committed_count} of {e.total} rows were saved")
        api_response(code=e.code, committed=e.committed_count)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerError:

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidImportRowError
    |
    +-- NotFoundError
    |   +-- RecordNotFoundError
    |   +-- SettlementNotFoundError
    |
    +-- StoreError
    |   +-- PartialCommitError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- SettlementError
        +-- InvalidSettlementTransitionError
        +-- InstallmentsOutstandingError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|--------------------------------------
Validation      | VALIDATION_ERROR              | Bad input, rejected before any write
                | INVALID_IMPORT_ROW            | Import row missing id / bad balance
----------------|-------------------------------|--------------------------------------
Not found       | RECORD_NOT_FOUND              | Ledger record id doesn't exist
                | SETTLEMENT_NOT_FOUND          | Settlement id doesn't exist
----------------|-------------------------------|--------------------------------------
Store           | STORE_ERROR                   | Database rejected the operation
                | PARTIAL_COMMIT                | Batch chunk failed mid-commit
----------------|-------------------------------|--------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT      | Record changed under a settlement lock
----------------|-------------------------------|--------------------------------------
Settlement      | INVALID_SETTLEMENT_TRANSITION | Transition out of a terminal state
                | INSTALLMENTS_OUTSTANDING      | Finalize with unpaid installments

===============================================================================
HANDLING PATTERNS
===============================================================================

1. PARTIAL COMMITS ARE NOT ROLLED BACK:

    except PartialCommitError as e:
        # rows before chunk e.failed_chunk are persisted; re-running the
        # import is safe because unchanged rows are filtered out
        retry_later(e.committed_count)

2. LOST LOCKS ARE RETRYABLE:

    except OptimisticLockError as e:
        refresh_debtor_view()
        ask_user_to_retry(e.entity_id)

3. AUDIT WRITES NEVER RAISE. Their failures are logged at WARNING level.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "LEDGER_ERROR"


# Validation


class ValidationError(LedgerError):
    """Input rejected before any write was attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidImportRowError(ValidationError):
    """An imported row cannot be turned into a ledger record."""

    code: str = "INVALID_IMPORT_ROW"

    def __init__(self, row_number: int, reason: str):
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Import row {row_number} rejected: {reason}")


# Lookup failures


class NotFoundError(LedgerError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class RecordNotFoundError(NotFoundError):
    """Ledger record with given ID was not found."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, record_id: str, variant: str | None = None):
        self.record_id = record_id
        self.variant = variant
        suffix = f" ({variant})" if variant else ""
        super().__init__(f"Ledger record not found: {record_id}{suffix}")


class SettlementNotFoundError(NotFoundError):
    """Settlement with given ID was not found."""

    code: str = "SETTLEMENT_NOT_FOUND"

    def __init__(self, settlement_id: str):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement not found: {settlement_id}")


# Store failures


class StoreError(LedgerError):
    """The backing store rejected an operation. Message is the store's own."""

    code: str = "STORE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class PartialCommitError(StoreError):
    """A batch chunk failed after earlier chunks were already committed."""

    code: str = "PARTIAL_COMMIT"

    def __init__(
        self,
        committed_count: int,
        total: int,
        failed_chunk: int,
        store_message: str,
    ):
        self.committed_count = committed_count
        self.total = total
        self.failed_chunk = failed_chunk
        self.store_message = store_message
        super().__init__(
            f"Batch commit stopped at chunk {failed_chunk}: "
            f"{committed_count} of {total} records persisted ({store_message})",
            operation="batch_commit",
        )


# Concurrency


class ConcurrencyError(LedgerError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Settlement lifecycle


class SettlementError(LedgerError):
    """Base exception for settlement lifecycle errors."""

    code: str = "SETTLEMENT_ERROR"


class InvalidSettlementTransitionError(SettlementError):
    """Requested transition is not allowed from the current state."""

    code: str = "INVALID_SETTLEMENT_TRANSITION"

    def __init__(self, settlement_id: str, current_status: str, action: str):
        self.settlement_id = settlement_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} settlement {settlement_id} in status {current_status}"
        )


class InstallmentsOutstandingError(SettlementError):
    """Settlement still has unpaid installments."""

    code: str = "INSTALLMENTS_OUTSTANDING"

    def __init__(self, settlement_id: str, open_installment_ids: list[str]):
        self.settlement_id = settlement_id
        self.open_installment_ids = open_installment_ids
        super().__init__(
            f"Settlement {settlement_id} has {len(open_installment_ids)} "
            "unpaid installment(s)"
        )
