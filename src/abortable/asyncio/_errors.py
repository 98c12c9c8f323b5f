# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Exceptions raised by abortable operations."""

from typing import Any


class AbortError(Exception):
    """An operation was aborted with a reason that is not an exception.

    When an operation is aborted with an exception instance as the reason, that
    exception is raised as is. Any other reason (including `None`, and `StopIteration`
    instances, which futures refuse) is wrapped in this exception, and can be
    retrieved using the [`reason`][abortable.asyncio.AbortError.reason] attribute.
    """

    def __init__(self, reason: Any = None) -> None:
        """Initialize this exception.

        Args:
            reason: The reason passed when aborting the operation.
        """
        super().__init__("Aborted" if reason is None else f"Aborted: {reason!r}")
        self.reason: Any = reason
        """The reason passed when aborting the operation."""


class RetryExhaustedError(Exception):
    """A retry loop finished without an outcome from the retried operation."""

    def __init__(self, message: str = "Retry failed") -> None:
        """Initialize this exception.

        Args:
            message: The error message.
        """
        super().__init__(message)


def as_exception(reason: Any) -> BaseException:
    """Get the exception to raise for an abort reason.

    Args:
        reason: The reason passed when aborting.

    `StopIteration` can't be raised through futures, so it is wrapped too.

    Returns:
        The `reason` itself if it is an exception instance, otherwise an
            [`AbortError`][abortable.asyncio.AbortError] wrapping it.
    """
    if isinstance(reason, BaseException) and not isinstance(reason, StopIteration):
        return reason
    return AbortError(reason)
