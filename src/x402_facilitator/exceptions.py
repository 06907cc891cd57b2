"""
x402 facilitator exception hierarchy
"""

SETTLEMENT_ABORTED_PREFIX = "Settlement aborted: "


class X402Error(Exception):
    """x402 base exception"""

    pass


class MalformedRequestError(X402Error):
    """Request is missing or carries an invalid payload / requirements"""

    pass


class ValidationFailedError(X402Error):
    """Scheme rejected the payment authorization"""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class SettlementAbortedError(X402Error):
    """Settlement was aborted by a before-settle hook.

    The message always starts with ``SETTLEMENT_ABORTED_PREFIX`` so transport
    layers can tell an expected abort from an unexpected failure.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"{SETTLEMENT_ABORTED_PREFIX}{reason}")


def is_settlement_abort(error: BaseException) -> bool:
    """Return True if *error* is a settlement abort signal."""
    return isinstance(error, SettlementAbortedError) or str(error).startswith(
        SETTLEMENT_ABORTED_PREFIX
    )


def abort_reason(error: BaseException) -> str:
    """Strip the abort prefix from an abort signal's message."""
    if isinstance(error, SettlementAbortedError):
        return error.reason
    message = str(error)
    if message.startswith(SETTLEMENT_ABORTED_PREFIX):
        return message[len(SETTLEMENT_ABORTED_PREFIX) :]
    return message


class ChainCallFailedError(X402Error):
    """An on-chain RPC call or transaction failed"""

    def __init__(self, network: str, cause: BaseException | str):
        self.network = network
        self.cause = cause
        super().__init__(f"Chain call failed on {network}: {cause}")


class TransactionTimeoutError(ChainCallFailedError):
    """Timed out waiting for a transaction receipt"""

    pass


class ConfigurationError(X402Error):
    """Configuration-related error"""

    pass


class UnknownNetworkError(ConfigurationError):
    """No chain client is configured for the network"""

    def __init__(self, network: str):
        self.network = network
        super().__init__(f"No client configured for network: {network}")


class DuplicateNetworkError(ConfigurationError):
    """A chain client is already registered for the network"""

    def __init__(self, network: str):
        self.network = network
        super().__init__(f"Network already registered: {network}")


class SchemeAlreadyRegisteredError(ConfigurationError):
    """A scheme is already bound to the (scheme, network) pair"""

    def __init__(self, scheme: str, network: str):
        self.scheme = scheme
        self.network = network
        super().__init__(f"Scheme {scheme!r} already registered for network {network}")


class SchemeNotFoundError(ConfigurationError):
    """No scheme is registered for the (scheme, network) pair"""

    def __init__(self, scheme: str, network: str):
        self.scheme = scheme
        self.network = network
        super().__init__(f"No scheme {scheme!r} registered for network {network}")
