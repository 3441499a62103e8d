"""helmpush.cm — ChartMuseum registry client."""

from helmpush.cm.client import (
    AccessClient, ClientConfig, registry_error, check_response,
    CLIENT_ID_HEADER, CLIENT_SECRET_HEADER,
)

__all__ = [
    "AccessClient", "ClientConfig", "registry_error", "check_response",
    "CLIENT_ID_HEADER", "CLIENT_SECRET_HEADER",
]
