from __future__ import annotations


class AirbrakeError(RuntimeError):
    pass


class ConfigurationError(AirbrakeError):
    pass


class MissingCredentialError(ConfigurationError):
    pass


class InvalidResourceError(AirbrakeError, ValueError):
    def __init__(self, resource: str) -> None:
        super().__init__(f"Unrecognized resource: {resource!r}")
        self.resource = resource


class ServerError(AirbrakeError):
    def __init__(self, message: str, *, status: int, url: str) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class MalformedResponseError(AirbrakeError):
    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url
