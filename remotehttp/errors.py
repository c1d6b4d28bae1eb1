"""Custom error types for remotehttp."""


class RemoteHttpError(Exception):
    """Base class for all remotehttp errors."""


class TransportConfigurationError(RemoteHttpError):
    """Raised when a channel is constructed without its required peer."""


class ControllerStateError(RemoteHttpError):
    """Raised when a request controller receives a second terminal action."""


class RemoteNetworkError(RemoteHttpError):
    """Raised on the interceptor side when the resolver errored the request."""

    name: str
    message: str

    def __init__(self, name: str, message: str) -> None:
        """Initialize a relayed network failure.

        :param name: Error name reported by the resolver.
        :param message: Error message reported by the resolver.
        """
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}" if message else name)
