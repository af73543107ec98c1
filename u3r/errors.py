"""Error types for the U3R relayer agent."""


class U3RError(Exception):
    """Base exception for the relayer agent."""
    pass


class CodecError(U3RError, ValueError):
    """Raised when a value cannot be encoded for the U3R contract."""
    pass


class InvalidAddressWidth(CodecError):
    """Raised when an address is not exactly 20 bytes."""
    pass


class InvalidIntegerWidth(CodecError):
    """Raised when a value does not fit its declared ABI width."""
    pass


class SignatureFormatError(CodecError):
    """Raised when v, r or s is outside the valid secp256k1 range."""
    pass


class SessionError(U3RError):
    """Raised when the chain session is missing or cannot connect."""
    pass


class RelayError(U3RError):
    """Raised when a relayed swap transaction fails on-chain."""

    def __init__(self, message: str, tx_hash: str | None = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class StaleQuoteEstimate(UserWarning):
    """Issued when a quote is built from pool state older than allowed.

    Advisory only: the contract computes the authoritative amount.
    """
    pass
