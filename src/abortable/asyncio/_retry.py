# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Module implementing the `RetryOperator` and `RetryCall` classes."""


import asyncio
import collections.abc
import datetime
import enum
import functools
from typing import Any, Generic, ParamSpec, Self, TypeVar

from typing_extensions import override

from ..logging import get_public_logger
from ._errors import RetryExhaustedError, as_exception
from ._options import RetryOptions
from ._signal import Abortable
from ._util import TaskCreator, cancel_and_await, delay

_logger = get_public_logger(__name__)

ParamsT = ParamSpec("ParamsT")
"""The parameters of the retried operation."""

ReturnT = TypeVar("ReturnT")
"""The type of the value produced by the retried operation."""


class RetryState(enum.Enum):
    """The state of a retry loop."""

    RUNNING = "running"
    """Waiting for an attempt to finish."""

    BACKOFF = "backoff"
    """Waiting before making a new attempt."""

    SUCCEEDED = "succeeded"
    """An attempt succeeded."""

    FAILED = "failed"
    """The last permitted attempt failed."""

    ABORTED = "aborted"
    """The loop was aborted or cancelled before an attempt succeeded."""


class RetryCall(Abortable, Generic[ReturnT]):
    """A running retry loop.

    Instances are normally created by calling a
    [`RetryOperator`][abortable.asyncio.RetryOperator]. The loop starts as soon as the
    instance is created, and the instance can be awaited to get its outcome, which is
    one of:

    * The value produced by the first successful attempt.
    * The exception raised by the last permitted attempt. Exceptions raised by
      previous attempts are never reported.
    * The reason given to [`abort()`][abortable.asyncio.RetryCall.abort].

    Attempts are made strictly one after the other, waiting between them as configured
    in the [`RetryOptions`][abortable.asyncio.RetryOptions].

    Aborting stops the loop: no more attempts are made, and a pending wait between
    attempts is interrupted. An attempt that is already running is not cancelled, but
    its outcome is ignored.
    """

    def __init__(
        self,
        operation: collections.abc.Callable[[], collections.abc.Awaitable[ReturnT]],
        options: RetryOptions,
        *,
        task_creator: TaskCreator = asyncio,
        unique_id: str | None = None,
    ) -> None:
        """Start the retry loop.

        This must be called from a running event loop.

        Args:
            operation: The function starting one attempt of the operation.
            options: How to retry the operation.
            task_creator: The object that will be used to create the tasks running the
                loop. Usually one of: the [`asyncio`]() module, an
                [`asyncio.AbstractEventLoop`]() or an [`asyncio.TaskGroup`]().
            unique_id: The string to uniquely identify this instance. If `None`,
                a string based on `hex(id(self))` will be used. This is used in
                `__repr__` and `__str__` methods, mainly for debugging purposes.
        """
        # [2:] is used to remove the '0x' prefix from the hex representation of the id,
        # as it doesn't add any uniqueness to the string.
        self._unique_id: str = hex(id(self))[2:] if unique_id is None else unique_id
        self._operation = operation
        self._options: RetryOptions = options
        self._task_creator: TaskCreator = task_creator
        self._state: RetryState = RetryState.RUNNING
        self._attempts: int = 0
        self._retries: int = 0

        self._result: asyncio.Future[ReturnT] = (
            asyncio.get_running_loop().create_future()
        )
        """The outcome of the loop, settled only once."""
        self._result.add_done_callback(self._on_result_done)

        self._task: asyncio.Task[None] = task_creator.create_task(
            self._run(), name=f"{self}:loop"
        )
        """The task running the loop."""
        self._task.add_done_callback(self._on_loop_done)

    @property
    def unique_id(self) -> str:
        """The unique ID of this instance."""
        return self._unique_id

    @property
    def options(self) -> RetryOptions:
        """The options controlling this loop."""
        return self._options

    @property
    def state(self) -> RetryState:
        """The current state of this loop."""
        return self._state

    @property
    def attempts(self) -> int:
        """The number of attempts started so far."""
        return self._attempts

    @property
    def retries(self) -> int:
        """The number of failed attempts that were followed by a retry."""
        return self._retries

    @property
    def is_aborted(self) -> bool:
        """Whether this loop was aborted or cancelled."""
        return self._state is RetryState.ABORTED

    def done(self) -> bool:
        """Tell if this loop is settled.

        Returns:
            Whether the outcome of this loop is already decided.
        """
        return self._result.done()

    def add_done_callback(
        self, callback: collections.abc.Callable[[Self], Any]
    ) -> None:
        """Add a function to be called when this loop is settled.

        The callback is scheduled in the event loop, as with
        [`asyncio.Future.add_done_callback`][].

        Args:
            callback: The function to call, it receives this instance.
        """
        self._result.add_done_callback(lambda _: callback(self))

    @override
    def abort(self, reason: Any = None) -> None:
        """Abort this loop.

        Whoever awaits this instance will get the `reason` raised, unless the loop is
        already settled, in which case this is a no-op.

        Args:
            reason: The reason for aborting. If it is an exception instance it will be
                raised as is, otherwise it will be wrapped in an
                [`AbortError`][abortable.asyncio.AbortError].
        """
        if self._result.done():
            return
        _logger.debug(
            "%s: aborting in state %s with reason %r", self, self._state.value, reason
        )
        self._result.set_exception(as_exception(reason))
        self._state = RetryState.ABORTED

    async def _run(self) -> None:
        max_retries = self._options.max_retries
        while self._retries < max_retries:
            if self._result.done():
                break
            self._attempts += 1
            try:
                value = await self._operation()
            except Exception as error:  # pylint: disable=broad-except
                if self._result.done():
                    break
                if self._retries == max_retries - 1:
                    self._state = RetryState.FAILED
                    self._result.set_exception(error)
                    return
                self._retries += 1
                backoff = self._options.backoff(self._retries)
                _logger.debug(
                    "%s: attempt %s failed with %r, retrying in %s",
                    self,
                    self._attempts,
                    error,
                    backoff,
                )
                await self._backoff(backoff)
            else:
                if not self._result.done():
                    self._state = RetryState.SUCCEEDED
                    self._result.set_result(value)
                return

        if not self._result.done():
            self._state = RetryState.FAILED
            self._result.set_exception(RetryExhaustedError())

    async def _backoff(self, duration: datetime.timedelta) -> None:
        """Wait before the next attempt, unless the loop is settled in the meantime."""
        self._state = RetryState.BACKOFF
        sleeper = self._task_creator.create_task(
            delay(duration), name=f"{self}:backoff"
        )
        try:
            await asyncio.wait(
                (sleeper, self._result), return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            await cancel_and_await(sleeper)
        if not self._result.done():
            self._state = RetryState.RUNNING

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if self._result.done():
            return
        if task.cancelled():
            self._result.cancel()
        elif (error := task.exception()) is not None:
            self._state = RetryState.FAILED
            self._result.set_exception(error)

    def _on_result_done(self, result: asyncio.Future[ReturnT]) -> None:
        # Happens when the task awaiting this instance is cancelled.
        if result.cancelled():
            self._state = RetryState.ABORTED

    def __await__(self) -> collections.abc.Generator[Any, None, ReturnT]:
        """Await the outcome of this loop.

        Returns:
            An implementation-specific generator for the awaitable.
        """
        return self._result.__await__()

    def __repr__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        return (
            f"{type(self).__name__}<{self._unique_id} {self._state.value} "
            f"attempts={self._attempts}/{self._options.max_retries}>"
        )

    def __str__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        return f"{type(self).__name__}:{self._unique_id}"


class RetryOperator(Abortable, Generic[ParamsT, ReturnT]):
    """A retryable version of an asynchronous operation.

    Calling the operator with the operation's arguments starts a new retry loop and
    returns a [`RetryCall`][abortable.asyncio.RetryCall] to await it or abort it.

    The operator also has its own [`abort()`][abortable.asyncio.RetryOperator.abort]
    method, but it only reaches the most recently started loop, if it is still
    running. When calling the operator concurrently, use the
    [`abort()`][abortable.asyncio.RetryCall.abort] method of each returned call
    instead.

    Example:
        ```python
        import datetime

        async def fetch(url: str) -> bytes:
            ...

        async def main() -> None:
            fetch_retrying = make_retryable(
                fetch,
                RetryOptions(max_retries=5, retry_delay=datetime.timedelta(seconds=2)),
            )
            call = fetch_retrying("https://example.com")
            asyncio.get_running_loop().call_later(30, call.abort, "too slow")
            print(await call)
        ```
    """

    def __init__(
        self,
        operation: collections.abc.Callable[
            ParamsT, collections.abc.Awaitable[ReturnT]
        ],
        options: RetryOptions | None = None,
        *,
        task_creator: TaskCreator = asyncio,
        unique_id: str | None = None,
    ) -> None:
        """Initialize this operator.

        Args:
            operation: The function starting one attempt of the operation.
            options: How to retry the operation. If `None`, the default
                [`RetryOptions`][abortable.asyncio.RetryOptions] are used.
            task_creator: The object that will be used to create the tasks running the
                loops.
            unique_id: The string to uniquely identify this instance. If `None`,
                a string based on `hex(id(self))` will be used. Loops started by this
                operator are identified as `f"{unique_id}:{n}"`.
        """
        self._unique_id: str = hex(id(self))[2:] if unique_id is None else unique_id
        self._operation = operation
        self._options: RetryOptions = RetryOptions() if options is None else options
        self._task_creator: TaskCreator = task_creator
        self._started: int = 0
        self._current: RetryCall[ReturnT] | None = None
        """The most recently started loop, while it is running."""

    @property
    def unique_id(self) -> str:
        """The unique ID of this instance."""
        return self._unique_id

    @property
    def options(self) -> RetryOptions:
        """The options used for all loops started by this operator."""
        return self._options

    @property
    def current(self) -> RetryCall[ReturnT] | None:
        """The most recently started loop, if it is still running.

        This is the loop [`abort()`][abortable.asyncio.RetryOperator.abort] would abort.
        """
        return self._current

    def __call__(
        self, *args: ParamsT.args, **kwargs: ParamsT.kwargs
    ) -> RetryCall[ReturnT]:
        """Start a new retry loop.

        Args:
            *args: Positional arguments to pass to the operation on each attempt.
            **kwargs: Keyword arguments to pass to the operation on each attempt.

        Returns:
            The new loop.
        """
        self._started += 1
        call = RetryCall(
            functools.partial(self._operation, *args, **kwargs),
            self._options,
            task_creator=self._task_creator,
            unique_id=f"{self._unique_id}:{self._started}",
        )
        self._current = call
        call.add_done_callback(self._unbind)
        return call

    @override
    def abort(self, reason: Any = None) -> None:
        """Abort the most recently started loop.

        This is a no-op if that loop is already settled or if no loop was started.

        Args:
            reason: The reason for aborting. If it is an exception instance it will be
                raised as is, otherwise it will be wrapped in an
                [`AbortError`][abortable.asyncio.AbortError].
        """
        call, self._current = self._current, None
        if call is not None:
            call.abort(reason)

    def _unbind(self, call: RetryCall[ReturnT]) -> None:
        if self._current is call:
            self._current = None

    def __repr__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        return (
            f"{type(self).__name__}<{self._unique_id} "
            f"operation={self._operation!r} options={self._options!r}>"
        )

    def __str__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        return f"{type(self).__name__}:{self._unique_id}"


def make_retryable(
    operation: collections.abc.Callable[ParamsT, collections.abc.Awaitable[ReturnT]],
    options: RetryOptions | None = None,
    *,
    task_creator: TaskCreator = asyncio,
    unique_id: str | None = None,
) -> RetryOperator[ParamsT, ReturnT]:
    """Make an asynchronous operation retryable.

    This is a shortcut for creating a
    [`RetryOperator`][abortable.asyncio.RetryOperator], check its documentation for
    details.

    Args:
        operation: The function starting one attempt of the operation.
        options: How to retry the operation.
        task_creator: The object that will be used to create the tasks running the
            loops.
        unique_id: The string to uniquely identify the returned operator.

    Returns:
        The retryable operation.
    """
    return RetryOperator(
        operation, options, task_creator=task_creator, unique_id=unique_id
    )


def retryable(
    options: RetryOptions | None = None,
    *,
    task_creator: TaskCreator = asyncio,
) -> collections.abc.Callable[
    [collections.abc.Callable[ParamsT, collections.abc.Awaitable[ReturnT]]],
    RetryOperator[ParamsT, ReturnT],
]:
    """Make an asynchronous function retryable, as a decorator.

    Example:
        ```python
        @retryable(RetryOptions(max_retries=5))
        async def fetch(url: str) -> bytes:
            ...

        async def main() -> None:
            print(await fetch("https://example.com"))
        ```

    Args:
        options: How to retry the operation.
        task_creator: The object that will be used to create the tasks running the
            loops.

    Returns:
        A decorator turning a function into a
            [`RetryOperator`][abortable.asyncio.RetryOperator].
    """

    def decorator(
        operation: collections.abc.Callable[
            ParamsT, collections.abc.Awaitable[ReturnT]
        ],
    ) -> RetryOperator[ParamsT, ReturnT]:
        operator = RetryOperator(operation, options, task_creator=task_creator)
        functools.update_wrapper(operator, operation)
        return operator

    return decorator
