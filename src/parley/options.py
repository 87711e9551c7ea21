"""Per-call generation options."""

from __future__ import annotations

from dataclasses import dataclass

from parley.errors import ConfigurationError


@dataclass(frozen=True)
class GenerationOptions:
    """Optional tuning for a single ``respond`` call."""

    #: Lower values make the model more deterministic.
    temperature: float | None = None
    #: Hard limit on the model's output tokens.
    max_tokens: int | None = None
    #: Overrides the session's default model for this call only.
    model: str | None = None

    def __post_init__(self) -> None:
        """Validate option shapes early for clear errors."""
        if self.temperature is not None and (
            isinstance(self.temperature, bool)
            or not isinstance(self.temperature, (int, float))
            or not 0 <= self.temperature <= 2
        ):
            raise ConfigurationError(
                f"temperature must be a number between 0 and 2, got {self.temperature!r}",
                hint="Pass temperature=0.2 for focused answers.",
            )

        if self.max_tokens is not None and (
            isinstance(self.max_tokens, bool)
            or not isinstance(self.max_tokens, int)
            or self.max_tokens <= 0
        ):
            raise ConfigurationError(
                "max_tokens must be a positive integer",
                hint="Pass max_tokens=1024 or leave it unset.",
            )

        if self.model is not None and (
            not isinstance(self.model, str) or not self.model.strip()
        ):
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Leave model unset to use the session default.",
            )
