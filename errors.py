# Tourism Block Error Kinds
# Every failure a transaction can raise. Each carries a stable machine code
# that the API turns into the {"ok": false, "error": {...}} envelope.
#
# Everything except DispatchError aborts the transaction: the pending write
# set is discarded and nothing reaches the world state.


class ContractError(Exception):
    """Base class for transaction failures."""
    code = "contract_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ContractError, LookupError):
    code = "not_found"


class ConflictError(ContractError):
    code = "conflict"


class DecodeError(ContractError, ValueError):
    """Malformed base64, JSON, or record structure in a transaction argument."""
    code = "decode_error"

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class UnsupportedCategoryError(ContractError):
    code = "unsupported_category"


class CodeMismatchError(ContractError):
    code = "code_mismatch"


class PenaltyTierError(ContractError, IndexError):
    """Agreement has no penalty rule for the tier a verdict selected."""
    code = "penalty_tier_missing"


class InvalidStateError(ContractError):
    code = "invalid_state"


class StorageError(ContractError):
    code = "storage_error"


class MVCCConflictError(StorageError):
    """A key read by the transaction changed before it could commit."""
    code = "mvcc_conflict"


class DispatchError(ContractError):
    code = "dispatch_error"
