"""Transport implementations."""

from .base import Transport
from .http import HttpTransport
from .mock import MockTransport

__all__ = [
    "HttpTransport",
    "MockTransport",
    "Transport",
]
