"""Configuration: frozen Host describing an OpenAI-compatible provider."""

from __future__ import annotations

from dataclasses import dataclass
import os
from urllib.parse import urlparse

from dotenv import load_dotenv

from parley.errors import ConfigurationError

_BASE_URL_ENV = "PARLEY_BASE_URL"
_API_KEY_ENV = "PARLEY_API_KEY"
_MODEL_ENV = "PARLEY_MODEL"
_USE_MOCK_ENV = "PARLEY_USE_MOCK"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Host:
    """Immutable description of where and how to reach the provider.

    Example:
        host = Host.external("https://api.groq.com/openai", api_key="...", default_model="llama3-8b")
        local = Host.local("http://localhost:8080")
    """

    base_url: str
    api_key: str | None = None
    default_model: str | None = None
    use_mock: bool = False
    #: Per-request timeout handed to the HTTP client.
    timeout_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate the endpoint and normalize the trailing slash."""
        parsed = urlparse(self.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(
                f"base_url must be an http(s) URL, got {self.base_url!r}",
                hint="Pass a URL such as 'http://localhost:8080'.",
            )
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

        if self.api_key is not None and not self.api_key.strip():
            raise ConfigurationError(
                "api_key must not be blank",
                hint=f"Omit api_key for local hosts or set {_API_KEY_ENV}.",
            )
        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This bounds each provider round-trip in seconds.",
            )

    @classmethod
    def local(cls, base_url: str, *, default_model: str | None = None) -> Host:
        """A locally running server that needs no API key."""
        return cls(base_url=base_url, default_model=default_model)

    @classmethod
    def external(
        cls, base_url: str, *, api_key: str, default_model: str | None = None
    ) -> Host:
        """A hosted service that authenticates with a bearer key."""
        return cls(base_url=base_url, api_key=api_key, default_model=default_model)

    @classmethod
    def from_env(cls) -> Host:
        """Resolve a Host from ``PARLEY_*`` variables (``.env`` files included)."""
        load_dotenv()

        use_mock = os.environ.get(_USE_MOCK_ENV, "").strip().lower() in _TRUTHY
        base_url = os.environ.get(_BASE_URL_ENV)
        if not base_url:
            if not use_mock:
                raise ConfigurationError(
                    "No provider base URL configured",
                    hint=f"Set {_BASE_URL_ENV} or {_USE_MOCK_ENV}=1.",
                )
            base_url = "http://mock.invalid"

        return cls(
            base_url=base_url,
            api_key=os.environ.get(_API_KEY_ENV) or None,
            default_model=os.environ.get(_MODEL_ENV) or None,
            use_mock=use_mock,
        )

    @property
    def chat_completions_url(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Host(base_url={self.base_url!r}, default_model={self.default_model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
