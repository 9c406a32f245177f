"""
Exception hierarchy shared by decoders, controllers and bus backends.

Every public operation either returns a structured result or raises one of
these. Bus failures are never retried here; they are surfaced as-is.
"""


class BoardError(Exception):
    """Base class for all board-management errors."""


class TransactionError(BoardError):
    """The bus collaborator failed to complete a read or write."""


class RegulatorSequenceError(TransactionError):
    """A step of the regulator voltage-change sequence failed.

    The regulator output may be left mid-transition: every step before
    ``step`` has already been applied to the device.
    """

    def __init__(self, regulator: str, step: str, cause: BaseException):
        self.regulator = regulator
        self.step = step
        self.cause = cause
        super().__init__(
            f"Regulator {regulator!r}: step {step!r} failed ({cause}). "
            "Output may be left mid-transition."
        )


class FormatError(BoardError):
    """Decoded byte stream violates an expected layout invariant."""


class OutOfBounds(FormatError):
    """A read or seek would go past the end of the buffer."""


class ChecksumError(FormatError):
    """A record or header checksum does not match its data."""


class ValidationError(BoardError):
    """Caller-supplied value rejected before any hardware mutation."""


class CatalogConfigError(BoardError):
    """Raised when a catalog or register-map YAML config is invalid or incomplete."""
