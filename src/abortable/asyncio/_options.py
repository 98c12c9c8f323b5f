# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Retry configuration."""

import dataclasses
import datetime
import enum


class RetryDelayType(enum.Enum):
    """How the delay between retries grows."""

    FIXED = "fixed"
    """Always wait the same base delay."""

    EXPONENTIAL = "exponential"
    """Wait the base delay multiplied by the number of failed attempts so far.

    The delay is capped by
    [`max_retry_delay`][abortable.asyncio.RetryOptions.max_retry_delay].
    """


@dataclasses.dataclass(frozen=True, kw_only=True)
class RetryOptions:
    """Options to control how an operation is retried.

    Instances are immutable, use [`dataclasses.replace`][] to derive new options from
    existing ones.

    Example:
        ```python
        import dataclasses
        import datetime

        options = RetryOptions(max_retries=5, retry_delay=datetime.timedelta(seconds=2))
        fixed = dataclasses.replace(options, retry_delay_type=RetryDelayType.FIXED)
        ```
    """

    max_retries: int = 3
    """The maximum number of attempts, including the first one."""

    retry_delay_type: RetryDelayType = RetryDelayType.EXPONENTIAL
    """The formula used to calculate the delay between attempts."""

    retry_delay: datetime.timedelta = datetime.timedelta(seconds=1)
    """The base delay between attempts."""

    max_retry_delay: datetime.timedelta | None = datetime.timedelta(minutes=1)
    """The maximum delay between attempts, or `None` to never cap it."""

    def __post_init__(self) -> None:
        """Validate the options.

        Raises:
            ValueError: If any of the options is out of range.
        """
        if isinstance(self.retry_delay_type, str):
            # Allow plain strings, as in `RetryOptions(retry_delay_type="fixed")`
            object.__setattr__(
                self, "retry_delay_type", RetryDelayType(self.retry_delay_type)
            )
        if self.max_retries < 1:
            raise ValueError(f"The max_retries ({self.max_retries}) must be at least 1")
        if self.retry_delay < datetime.timedelta(0):
            raise ValueError(f"The retry_delay ({self.retry_delay}) can't be negative")
        if (
            self.max_retry_delay is not None
            and self.max_retry_delay < datetime.timedelta(0)
        ):
            raise ValueError(
                f"The max_retry_delay ({self.max_retry_delay}) can't be negative"
            )

    def backoff(self, retries: int) -> datetime.timedelta:
        """Calculate the delay to wait before the next attempt.

        Args:
            retries: How many attempts failed so far (starting at 1).

        Returns:
            The time to wait before the next attempt.
        """
        if self.retry_delay_type is RetryDelayType.FIXED:
            return self.retry_delay
        delay = self.retry_delay * retries
        if self.max_retry_delay is None:
            return delay
        return min(delay, self.max_retry_delay)
