# netflow/core/errors.py

from typing import Optional, Dict, Any


class NetflowError(Exception):
    """Base class for all indexer errors. Carries optional logging context."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ParseError(NetflowError, ValueError):
    """A value could not be parsed into its canonical form."""


class AmountError(NetflowError, ArithmeticError):
    """Ledger arithmetic would lose precision or overflow."""


class ConfigError(NetflowError):
    """Unusable configuration. Fatal at startup only."""


class MalformedLogError(NetflowError):
    """A raw log cannot be decoded into a transfer. The log is skipped."""


class StorageError(NetflowError):
    """A storage transaction failed and was rolled back."""


class RpcError(NetflowError):
    def __init__(self, message: str, method: Optional[str] = None,
                 code: Optional[int] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.method = method
        self.code = code


class TransientRpcError(RpcError):
    """Connection failures, timeouts, 5xx, rate limits, node still syncing."""


class FatalRpcError(RpcError):
    """The request itself is bad. Retrying cannot help."""


class RpcRetriesExhausted(FatalRpcError):
    """Transient failures outlasted the retry budget for this cycle."""
