"""Error taxonomy shared by the token, API and widget layers."""


class SpotRemoteError(Exception):
    pass


class AuthError(SpotRemoteError):
    """Credentials are missing or could not be refreshed."""


class NotYetAvailable(SpotRemoteError):
    """Settings were not delivered within the requested timeout."""


class ApiError(SpotRemoteError):
    Unauthorized: type["UnauthorizedError"]
    Transport: type["TransportError"]
    Remote: type["RemoteError"]


class UnauthorizedError(ApiError):
    """Still unauthorized after one refresh-and-retry cycle."""


class TransportError(ApiError):
    """Timeout, DNS failure, connection reset and similar."""


class RemoteError(ApiError):
    def __init__(self, status: int, message: str = ""):
        self.status = status
        self.message = message or f"Spotify API error: {status}"
        super().__init__(self.message)


ApiError.Unauthorized = UnauthorizedError
ApiError.Transport = TransportError
ApiError.Remote = RemoteError
