# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Abortable async operations.

This module provides tools to stop waiting for asyncio computations that are no longer
needed, and to retry fallible asynchronous operations.

The module provides the following classes and functions:

- [make_cancellable][abortable.asyncio.make_cancellable]: A function that starts a
  computation that can be aborted, returning a
  [Cancellable][abortable.asyncio.Cancellable].
- [make_retryable][abortable.asyncio.make_retryable]: A function that makes an
  asynchronous operation retryable, returning a
  [RetryOperator][abortable.asyncio.RetryOperator]. Each call to the operator
  starts a [RetryCall][abortable.asyncio.RetryCall] that can be aborted.
- [retryable][abortable.asyncio.retryable]: The decorator version of
  `make_retryable`.
- [RetryOptions][abortable.asyncio.RetryOptions]: The options controlling how an
  operation is retried.
- [AbortSignal][abortable.asyncio.AbortSignal]: A token computations can use to find
  out they were aborted.
- [delay][abortable.asyncio.delay]: A function that waits for some time.
- [cancel_and_await][abortable.asyncio.cancel_and_await]: A function that cancels a
  task and waits for it to finish, handling `CancelledError` exceptions.
- [TaskCreator][abortable.asyncio.TaskCreator]: A protocol for creating tasks.
"""

from ._cancellable import Cancellable, Computation, make_cancellable
from ._errors import AbortError, RetryExhaustedError
from ._options import RetryDelayType, RetryOptions
from ._retry import RetryCall, RetryOperator, RetryState, make_retryable, retryable
from ._signal import Abortable, AbortSignal
from ._util import TaskCreator, TaskReturnT, cancel_and_await, delay

__all__ = [
    "AbortError",
    "AbortSignal",
    "Abortable",
    "Cancellable",
    "Computation",
    "RetryCall",
    "RetryDelayType",
    "RetryExhaustedError",
    "RetryOperator",
    "RetryOptions",
    "RetryState",
    "TaskCreator",
    "TaskReturnT",
    "cancel_and_await",
    "delay",
    "make_cancellable",
    "make_retryable",
    "retryable",
]
