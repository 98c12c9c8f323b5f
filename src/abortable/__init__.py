# License: MIT
# Copyright © 2024 Frequenz Energy-as-a-Service GmbH

"""Cancellable computations and retries for asyncio.

The tools live in the [`abortable.asyncio`][abortable.asyncio] module, and the most
commonly used ones are re-exported here for convenience.
"""

from .asyncio import (
    AbortError,
    AbortSignal,
    Cancellable,
    RetryCall,
    RetryDelayType,
    RetryExhaustedError,
    RetryOperator,
    RetryOptions,
    delay,
    make_cancellable,
    make_retryable,
    retryable,
)

__all__ = [
    "AbortError",
    "AbortSignal",
    "Cancellable",
    "RetryCall",
    "RetryDelayType",
    "RetryExhaustedError",
    "RetryOperator",
    "RetryOptions",
    "delay",
    "make_cancellable",
    "make_retryable",
    "retryable",
]
