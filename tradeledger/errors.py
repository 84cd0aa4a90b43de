"""Error taxonomy shared by the decoder, explorer client, ledger and pipeline.

Retryable upstream failures (rate limit, server error, timeout) are retried by
the processor under its retry policy. Every other upstream or decoding failure
is terminal for the single item and never aborts a batch. Ledger failures are
fatal for the whole run.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(Enum):
    """How a failed item is treated by the retry policy."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    TERMINAL = "terminal"


class TradeLedgerError(Exception):
    """Base class for all tradeledger errors."""


# --- amount decoding ---

class AmountError(TradeLedgerError, ValueError):
    """Raw on-chain amount could not be turned into a decimal."""


class MalformedAmount(AmountError):
    pass


class InvalidDecimals(AmountError):
    pass


# --- upstream explorer ---

class UpstreamError(TradeLedgerError):
    kind: FailureKind = FailureKind.TERMINAL

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimited(UpstreamError):
    kind = FailureKind.RATE_LIMITED


class UpstreamServerError(UpstreamError):
    kind = FailureKind.SERVER_ERROR


class UpstreamTimeout(UpstreamError):
    kind = FailureKind.TIMEOUT


class UpstreamUnavailable(UpstreamError):
    """Connection failure or a non-retryable HTTP status."""


class MalformedResponse(UpstreamError):
    """Body was not JSON or did not match the documented shape."""


# --- ledger ---

class LedgerError(TradeLedgerError):
    pass


class LedgerWriteError(LedgerError):
    pass


class LedgerFormatError(LedgerError):
    pass


def failure_kind(exc: BaseException) -> FailureKind:
    """Classify any exception raised while processing one item."""
    if isinstance(exc, UpstreamError):
        return exc.kind
    return FailureKind.TERMINAL
