"""Exception hierarchy shared across battlewatch modules."""

from __future__ import annotations


class BattlewatchError(Exception):
    """Base exception for battlewatch errors."""


class ConfigError(BattlewatchError, ValueError):
    """Raised when the configuration file is missing or invalid."""


class FeedError(BattlewatchError):
    """Transport-level failure talking to the event feed."""


class FeedQueryError(FeedError):
    """The feed answered but reported GraphQL errors or an unexpected shape."""


class DeliveryError(BattlewatchError):
    """A notification channel refused or failed to deliver a message.

    Attributes:
        description: Free-form reason reported by the channel
        error_code: Structured code when the channel provides one
        retry_after: Seconds the channel asked us to wait, if any
    """

    def __init__(
        self,
        description: str,
        *,
        error_code: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(description)
        self.description = description
        self.error_code = error_code
        self.retry_after = retry_after


__all__ = [
    "BattlewatchError",
    "ConfigError",
    "DeliveryError",
    "FeedError",
    "FeedQueryError",
]
