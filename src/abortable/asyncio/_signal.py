# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Module implementing the `Abortable` and `AbortSignal` classes."""


import abc
import asyncio
from typing import Any

from typing_extensions import override

from ._errors import as_exception


class Abortable(abc.ABC):
    """An operation that can be aborted from the outside.

    Aborting is always advisory: the work already started is not interrupted, but
    its outcome will not be observed anymore.
    """

    @abc.abstractmethod
    def abort(self, reason: Any = None) -> None:
        """Abort this operation.

        Aborting an operation that already finished is a no-op.

        Args:
            reason: The reason for aborting. If it is an exception instance it will be
                raised as is to whoever is waiting for the operation, otherwise it
                will be wrapped in an [`AbortError`][abortable.asyncio.AbortError].
        """


class AbortSignal(Abortable):
    """A cooperative abort token.

    Computations receive a signal so they can check if nobody is interested in their
    outcome anymore and stop early.

    Only the first call to [`abort()`][abortable.asyncio.AbortSignal.abort] has any
    effect, further calls are ignored and the original reason is kept.

    Example:
        ```python
        async def download(signal: AbortSignal) -> bytes:
            chunks: list[bytes] = []
            async for chunk in stream():
                signal.raise_if_aborted()
                chunks.append(chunk)
            return b"".join(chunks)
        ```
    """

    def __init__(self) -> None:
        """Initialize this signal."""
        self._event: asyncio.Event = asyncio.Event()
        self._reason: Any = None

    @property
    def aborted(self) -> bool:
        """Whether this signal was triggered."""
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        """The reason given when the signal was triggered, if any."""
        return self._reason

    @override
    def abort(self, reason: Any = None) -> None:
        """Trigger this signal.

        Args:
            reason: The reason for aborting.
        """
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_aborted(self) -> None:
        """Raise the abort reason if this signal was triggered.

        Raises:
            BaseException: The abort reason, converted to an exception if necessary.
        """
        if self._event.is_set():
            raise as_exception(self._reason)

    async def wait(self) -> None:
        """Wait until this signal is triggered."""
        await self._event.wait()

    def __repr__(self) -> str:
        """Return a string representation of this instance.

        Returns:
            A string representation of this instance.
        """
        if not self.aborted:
            return f"{type(self).__name__}<not aborted>"
        return f"{type(self).__name__}<aborted reason={self._reason!r}>"
