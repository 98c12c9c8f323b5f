# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Module implementing the `Cancellable` class."""


import asyncio
import collections.abc
from typing import Any, Generic, TypeVar

from typing_extensions import override

from ..logging import get_public_logger
from ._errors import as_exception
from ._signal import Abortable, AbortSignal
from ._util import TaskCreator

_logger = get_public_logger(__name__)

ReturnT = TypeVar("ReturnT")
"""The type of the value produced by a computation."""

Computation = collections.abc.Callable[
    [AbortSignal], collections.abc.Awaitable[ReturnT]
]
"""A function starting a computation that can observe an abort signal."""


class Cancellable(Abortable, Generic[ReturnT]):
    """A computation that can be abandoned before it finishes.

    The computation starts running in its own task as soon as the instance is
    created, and the instance can be awaited to get its outcome. At any time the
    computation can be [aborted][abortable.asyncio.Cancellable.abort], making
    whoever awaits this instance get the abort reason instead.

    The computation and the abort request race each other: whatever happens first
    settles this instance, and the other outcome is silently dropped. Aborting does
    not cancel the task running the computation, it only triggers the
    [`signal`][abortable.asyncio.Cancellable.signal] the computation received, so it
    can stop early if it wants to.

    If the computation never finishes and it is never aborted, awaiting this instance
    will wait forever. Use [`asyncio.timeout`][] or call
    [`abort()`][abortable.asyncio.Cancellable.abort] from a timer to put a limit to
    it.

    Example:
        ```python
        import asyncio

        async def compute(signal: AbortSignal) -> int:
            for _ in range(10):
                signal.raise_if_aborted()
                await asyncio.sleep(1)
            return 42

        async def main() -> None:
            cancellable = make_cancellable(compute)
            asyncio.get_running_loop().call_later(5, cancellable.abort, "too slow")
            try:
                print(await cancellable)
            except AbortError as error:
                print(f"Gave up: {error.reason}")
        ```
    """

    def __init__(
        self,
        computation: Computation[ReturnT],
        *,
        task_creator: TaskCreator = asyncio,
        unique_id: str | None = None,
    ) -> None:
        """Start the computation.

        This must be called from a running event loop.

        Args:
            computation: The function starting the computation. It receives the
                signal that will be triggered if this instance is aborted.
            task_creator: The object that will be used to create the task running the
                computation. Usually one of: the [`asyncio`]() module, an
                [`asyncio.AbstractEventLoop`]() or an [`asyncio.TaskGroup`]().
            unique_id: The string to uniquely identify this instance. If `None`,
                a string based on `hex(id(self))` will be used. This is used in
                `__repr__` and `__str__` methods, mainly for debugging purposes.
        """
        # [2:] is used to remove the '0x' prefix from the hex representation of the id,
        # as it doesn't add any uniqueness to the string.
        self._unique_id: str = hex(id(self))[2:] if unique_id is None else unique_id
        self._signal: AbortSignal = AbortSignal()
        self._aborted: bool = False

        self._result: asyncio.Future[ReturnT] = (
            asyncio.get_running_loop().create_future()
        )
        """The outcome of the race between the computation and the abort request."""
        self._result.add_done_callback(self._on_result_done)

        self._task: asyncio.Task[None] = task_creator.create_task(
            self._run(computation), name=f"{self}:computation"
        )
        """The task running the computation.

        It is kept referenced until it finishes, even after losing the race.
        """
        self._task.add_done_callback(self._on_computation_done)

    @property
    def unique_id(self) -> str:
        """The unique ID of this instance."""
        return self._unique_id

    @property
    def signal(self) -> AbortSignal:
        """The signal given to the computation."""
        return self._signal

    @property
    def is_aborted(self) -> bool:
        """Whether this instance was settled by an abort request."""
        return self._aborted

    def done(self) -> bool:
        """Tell if this instance is settled.

        Returns:
            Whether the outcome of this instance is already decided.
        """
        return self._result.done()

    @override
    def abort(self, reason: Any = None) -> None:
        """Abort the computation.

        Whoever awaits this instance will get the `reason` raised, unless the
        computation already finished, in which case this is a no-op.

        Args:
            reason: The reason for aborting. If it is an exception instance it will be
                raised as is, otherwise it will be wrapped in an
                [`AbortError`][abortable.asyncio.AbortError].
        """
        if self._result.done():
            return
        _logger.debug("%s: aborting with reason %r", self, reason)
        self._result.set_exception(as_exception(reason))
        self._aborted = True
        self._signal.abort(reason)

    async def _run(self, computation: Computation[ReturnT]) -> None:
        # Failures are delivered only through the result, so the task itself never
        # fails and task groups don't see them.
        try:
            value = await computation(self._signal)
        except Exception as error:  # pylint: disable=broad-except
            if self._result.done():
                _logger.debug(
                    "%s: discarding late failure of an abandoned computation: %r",
                    self,
                    error,
                )
                return
            self._result.set_exception(error)
        else:
            if not self._result.done():
                self._result.set_result(value)

    def _on_computation_done(self, task: asyncio.Task[None]) -> None:
        if self._result.done():
            return
        if task.cancelled():
            self._result.cancel()
        elif (error := task.exception()) is not None:
            self._result.set_exception(error)

    def _on_result_done(self, result: asyncio.Future[ReturnT]) -> None:
        # Happens when the task awaiting this instance is cancelled.
        if result.cancelled():
            self._signal.abort(asyncio.CancelledError(f"{self} was cancelled"))

    def __await__(self) -> collections.abc.Generator[Any, None, ReturnT]:
        """Await the outcome of this instance.

        Returns:
            An implementation-specific generator for the awaitable.
        """
        return self._result.__await__()

    def __repr__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        if self._aborted:
            details = "aborted"
        elif self._result.done():
            details = "done"
        else:
            details = "running"
        return f"{type(self).__name__}<{self._unique_id} {details}>"

    def __str__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        return f"{type(self).__name__}:{self._unique_id}"


def make_cancellable(
    computation: Computation[ReturnT],
    *,
    task_creator: TaskCreator = asyncio,
    unique_id: str | None = None,
) -> Cancellable[ReturnT]:
    """Start a computation that can be aborted.

    This is a shortcut for creating a [`Cancellable`][abortable.asyncio.Cancellable],
    check its documentation for details.

    Args:
        computation: The function starting the computation. It receives the signal
            that will be triggered if the computation is aborted.
        task_creator: The object that will be used to create the task running the
            computation.
        unique_id: The string to uniquely identify the returned instance.

    Returns:
        An awaitable handle to the computation, which can be aborted.
    """
    return Cancellable(computation, task_creator=task_creator, unique_id=unique_id)
