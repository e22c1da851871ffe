"""Rating engine exceptions.

Anything raised from here that crosses the offload boundary is turned into an
``ERROR`` response carrying ``str(exc)``, so messages are written for the
person reading that response.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..schemas.validation import DeterminismValidationResult


class RatingEngineError(Exception):
    """Base exception for the rating engine."""


class InvalidRatingRequestError(RatingEngineError):
    """Request is structurally invalid (unknown message type, malformed payload)."""


class RatingComputationError(RatingEngineError):
    """A calculation hit a numeric fault such as a zero divisor."""


class ScheduleConfigurationError(RatingEngineError):
    """Schedule rating categories are configured with inverted bounds."""

    def __init__(self, categories: list[str]) -> None:
        self.categories = categories
        super().__init__(
            "Schedule category bounds are inverted (maxCredit > maxDebit) for: "
            + ", ".join(categories)
        )


class VersionLifecycleError(RatingEngineError):
    """Illegal rate program version transition or edit."""


class VersionNotFoundError(VersionLifecycleError):
    """Rate program version does not exist."""


class PublishValidationError(VersionLifecycleError):
    """Version failed determinism validation and cannot be published."""

    def __init__(self, validation: "DeterminismValidationResult") -> None:
        self.validation = validation
        messages = "; ".join(issue.message for issue in validation.errors)
        super().__init__(
            f"Cannot publish: determinism validation failed. {messages}"
        )


class RatingRequestTimeoutError(RatingEngineError):
    """No response arrived within the caller's wait limit."""
