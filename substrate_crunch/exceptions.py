"""
Custom exceptions for substrate-crunch
"""


class CrunchError(Exception):
    """Base exception for substrate-crunch"""
    pass


class NodeConnectionError(CrunchError):
    """Connection to the substrate node could not be opened or was lost"""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Connection error for {url}: {message}")


class RpcError(CrunchError):
    """JSON-RPC call answered with an error object"""

    def __init__(self, method: str, code: int, message: str):
        self.method = method
        self.code = code
        super().__init__(f"RPC error for {method} ({code}): {message}")


class SubscriptionFinished(CrunchError):
    """Node side closed the event subscription"""

    def __init__(self, message: str = "Subscription finished"):
        super().__init__(message)


class NotificationError(CrunchError):
    """Outbound notification could not be delivered"""
    pass


class ExternalApiError(CrunchError):
    """HTTP collaborator failure"""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"External API error for {url}: {message}")


class StorageKeyError(CrunchError, ValueError):
    """Storage key too short to embed an account id"""

    def __init__(self, key: bytes):
        self.key = key
        super().__init__(f"Storage key of {len(key)} bytes does not embed a 32 byte account id")


class UnsupportedRuntimeError(CrunchError):
    """Connected chain is not one of the supported runtimes"""

    def __init__(self, token_symbol: str):
        self.token_symbol = token_symbol
        super().__init__(f"Runtime with token symbol '{token_symbol}' is not supported")
