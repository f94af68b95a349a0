"""
Ghost Pool Client Error Handling

All error codes and exception classes. Every error records the stage of the
request flow that produced it so callers can decide between retrying with a
fresh nonce and offset, or simply polling again.
"""

from __future__ import annotations
import builtins
from enum import Enum, IntEnum
from typing import Optional, Any


class ErrorCode(IntEnum):
    """Client error codes."""

    # 1xxx - General errors
    UNKNOWN_ERROR = 1000
    INTERNAL_ERROR = 1001
    CONFIGURATION_ERROR = 1002

    # 2xxx - Validation errors
    INVALID_PARAMETER = 2001
    INVALID_AMOUNT = 2002
    INVALID_SEED = 2003
    INVALID_ADDRESS = 2004

    # 3xxx - Cryptography errors
    CIPHER_UNAVAILABLE = 3001
    KEY_EXCHANGE_FAILED = 3002

    # 4xxx - Codec errors
    BUFFER_TOO_SHORT = 4001
    TAG_MISMATCH = 4002
    RESERVED_REGION_VIOLATION = 4003

    # 5xxx - Network errors (retryable)
    NETWORK_UNAVAILABLE = 5001
    RATE_LIMITED = 5002
    STALE_BLOCKHASH = 5003
    NOT_CONFIRMED = 5004

    # 6xxx - Protocol errors (not retryable)
    PROTOCOL_REJECTED = 6001
    SIMULATION_REJECTED = 6002
    INSUFFICIENT_FUNDS = 6003
    SIGNER_REJECTED = 6004
    CALLBACK_FAILED = 6005

    # 7xxx - Callback errors
    CALLBACK_TIMEOUT = 7001
    UNKNOWN_REQUEST = 7002


class Stage(str, Enum):
    """Request flow stage that raised an error."""
    CONFIG = "config"
    ENCRYPT = "encrypt"
    BUILD = "build"
    SIMULATE = "simulate"
    SUBMIT = "submit"
    CONFIRM = "confirm"
    AWAIT_CALLBACK = "await-callback"
    DECODE = "decode"


class GhostPoolError(Exception):
    """Base exception for all Ghost Pool client errors."""

    retryable: bool = False

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        stage: Optional[Stage] = None,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.stage = stage
        self.details = details
        prefix = f"[{code.value}]" if stage is None else f"[{code.value}:{stage.value}]"
        super().__init__(f"{prefix} {message}")

    def at_stage(self, stage: Stage) -> GhostPoolError:
        """Tag the error with a stage unless one is already recorded."""
        if self.stage is None:
            self.stage = stage
            self.args = (f"[{self.code.value}:{stage.value}] {self.message}",)
        return self

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for CLI output."""
        result = {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
            "stage": self.stage.value if self.stage else None,
            "retryable": self.retryable,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


# ==============================================================================
# General Errors (1xxx)
# ==============================================================================

class InternalError(GhostPoolError):
    def __init__(self, message: str = "Internal error", details: Any = None):
        super().__init__(ErrorCode.INTERNAL_ERROR, message, details=details)


class ConfigurationError(GhostPoolError):
    def __init__(self, problems: list):
        super().__init__(
            ErrorCode.CONFIGURATION_ERROR,
            "Invalid configuration: " + "; ".join(problems),
            Stage.CONFIG,
            {"problems": list(problems)}
        )
        self.problems = list(problems)


# ==============================================================================
# Validation Errors (2xxx)
# ==============================================================================

class ValidationError(GhostPoolError):
    """Bad input. Always names the offending field."""

    def __init__(
        self,
        field: str,
        message: str = "",
        stage: Optional[Stage] = None,
        code: ErrorCode = ErrorCode.INVALID_PARAMETER
    ):
        msg = f"Invalid {field}"
        if message:
            msg += f" - {message}"
        super().__init__(code, msg, stage, {"field": field})
        self.field = field


class InvalidAmountError(ValidationError):
    def __init__(self, amount: Any, stage: Stage = Stage.BUILD):
        super().__init__(
            "amount",
            f"must be a positive integer in the smallest unit, got {amount!r}",
            stage,
            ErrorCode.INVALID_AMOUNT,
        )


class InvalidSeedError(ValidationError):
    def __init__(self, message: str):
        super().__init__("seeds", message, code=ErrorCode.INVALID_SEED)


class InvalidAddressError(ValidationError):
    def __init__(self, field: str, message: str):
        super().__init__(field, message, code=ErrorCode.INVALID_ADDRESS)


# ==============================================================================
# Cryptography Errors (3xxx)
# ==============================================================================

class CryptoError(GhostPoolError):
    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CIPHER_UNAVAILABLE,
        stage: Stage = Stage.ENCRYPT
    ):
        super().__init__(code, message, stage)


# ==============================================================================
# Codec Errors (4xxx)
# ==============================================================================

class CodecError(GhostPoolError):
    """Pool record could not be decoded. Names the field being read."""

    def __init__(self, field: str, message: str, code: ErrorCode = ErrorCode.BUFFER_TOO_SHORT):
        super().__init__(code, f"{field}: {message}", Stage.DECODE, {"field": field})
        self.field = field


# ==============================================================================
# Network Errors (5xxx) - retryable
# ==============================================================================

class NetworkError(GhostPoolError):
    retryable = True

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK_UNAVAILABLE,
        stage: Optional[Stage] = None,
        details: Any = None
    ):
        super().__init__(code, message, stage, details)


class RateLimitedError(NetworkError):
    def __init__(self, message: str = "Rate limited by RPC endpoint", stage: Optional[Stage] = None):
        super().__init__(message, ErrorCode.RATE_LIMITED, stage)


class StaleBlockhashError(NetworkError):
    def __init__(self, message: str = "Blockhash not found or expired", stage: Optional[Stage] = None):
        super().__init__(message, ErrorCode.STALE_BLOCKHASH, stage)


class NotConfirmedError(NetworkError):
    def __init__(self, signature: str, stage: Stage = Stage.CONFIRM):
        super().__init__(
            f"Transaction {signature} was not confirmed",
            ErrorCode.NOT_CONFIRMED,
            stage,
            {"signature": signature}
        )


# ==============================================================================
# Protocol Errors (6xxx) - not retryable
# ==============================================================================

class ProtocolError(GhostPoolError):
    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PROTOCOL_REJECTED,
        stage: Optional[Stage] = None,
        details: Any = None
    ):
        super().__init__(code, message, stage, details)


class InsufficientFundsError(ProtocolError):
    def __init__(self, message: str = "Insufficient funds", stage: Optional[Stage] = None):
        super().__init__(message, ErrorCode.INSUFFICIENT_FUNDS, stage)


class SignerRejectedError(ProtocolError):
    def __init__(self, message: str = "Wallet rejected the signing request"):
        super().__init__(message, ErrorCode.SIGNER_REJECTED, Stage.SUBMIT)


class SimulationRejectedError(ProtocolError):
    def __init__(self, err: Any, logs: Optional[list] = None):
        super().__init__(
            f"Simulation rejected the request: {err}",
            ErrorCode.SIMULATION_REJECTED,
            Stage.SIMULATE,
            {"err": err, "logs": logs or []}
        )


class CallbackFailedError(ProtocolError):
    def __init__(self, request_id: int, err: Any):
        super().__init__(
            f"Computation {request_id} callback failed: {err}",
            ErrorCode.CALLBACK_FAILED,
            Stage.AWAIT_CALLBACK,
            {"request_id": request_id, "err": err}
        )


# ==============================================================================
# Callback Errors (7xxx)
# ==============================================================================

class CallbackTimeoutError(GhostPoolError, builtins.TimeoutError):
    """
    Callback not observed within the bound.

    The outcome is unknown, not failed: the remote side effect may still land.
    Poll again with the same request id.
    """

    def __init__(self, request_id: int, timeout: float):
        super().__init__(
            ErrorCode.CALLBACK_TIMEOUT,
            f"Outcome of computation {request_id} unknown after {timeout}s - poll again",
            Stage.AWAIT_CALLBACK,
            {"request_id": request_id, "timeout": timeout}
        )
        self.request_id = request_id
        self.timeout = timeout


class UnknownRequestError(GhostPoolError):
    def __init__(self, request_id: int):
        super().__init__(
            ErrorCode.UNKNOWN_REQUEST,
            f"No journal record for computation {request_id}",
            Stage.AWAIT_CALLBACK,
            {"request_id": request_id}
        )
