from typing import Optional


class OPStackError(Exception):
    """Base Exception for OP Stack operations."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class InvalidChainError(OPStackError):
    """Raised when an invalid chain is specified"""

    pass


class ReceiptContainsNoWithdrawalsError(OPStackError):
    """Raised when a receipt does not emit any `MessagePassed` event"""

    def __init__(self, transaction_hash: Optional[str] = None):
        super().__init__(
            f"The provided transaction receipt ({transaction_hash}) "
            "does not contain any withdrawals."
        )
        self.transaction_hash = transaction_hash


class InvalidWithdrawalHashError(OPStackError):
    """Raised when the withdrawal hash emitted on L2 does not match the recomputed one"""

    pass


class ContractReadError(OPStackError):
    """Raised when a contract read fails (RPC / transport failure or revert)"""

    pass


class ContractRevertError(ContractReadError):
    """Raised when a contract read reverts. `reason` holds the revert string."""

    def __init__(
        self,
        reason: str,
        function_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            f"`{function_name}` reverted: {reason}"
            if function_name
            else f"Execution reverted: {reason}",
            original_error=original_error,
        )
        self.reason = reason
        self.function_name = function_name


class UnclassifiedRevertError(ContractRevertError):
    """Raised when a revert reason is not one of the known portal messages"""

    @classmethod
    def from_revert(cls, error: ContractRevertError) -> "UnclassifiedRevertError":
        return cls(
            error.reason,
            function_name=error.function_name,
            original_error=error,
        )


class OutputNotProposedError(OPStackError):
    """Raised when no L2 output (or dispute game) covers the requested L2 block yet"""

    def __init__(self, l2_block_number: int):
        super().__init__(
            f"No output proposal covers L2 block {l2_block_number} yet."
        )
        self.l2_block_number = l2_block_number


class UnsupportedPortalVersionError(OPStackError):
    """Raised when the portal reports a version this library cannot handle"""

    pass


class PollingCancelledError(OPStackError):
    """Raised when polling is cancelled before a result was found"""

    pass
