from __future__ import annotations

from .client import AirbrakeClient
from .config import ClientConfig, load_client_config
from .errors import (
    AirbrakeError,
    ConfigurationError,
    InvalidResourceError,
    MalformedResponseError,
    MissingCredentialError,
    ServerError,
)
from .models import Deploy, ErrorGroup, Notice, NoticeStub, Project
from .version import __version__

__all__ = [
    "__version__",
    "AirbrakeClient",
    "AirbrakeError",
    "ClientConfig",
    "ConfigurationError",
    "Deploy",
    "ErrorGroup",
    "InvalidResourceError",
    "MalformedResponseError",
    "MissingCredentialError",
    "Notice",
    "NoticeStub",
    "Project",
    "ServerError",
    "load_client_config",
]
