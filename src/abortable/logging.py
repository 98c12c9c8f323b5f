# License: MIT
# Copyright © 2023 Frequenz Energy-as-a-Service GmbH

"""Logging tools.

Loggers used by this package are named after the public module containing the code
that logs, so all the logging from `abortable.asyncio` can be configured using the
`abortable.asyncio` logger, without knowing about its private modules:

```python
import logging

logging.getLogger("abortable.asyncio").setLevel(logging.DEBUG)
```
"""

import logging


def get_public_logger(module_name: str) -> logging.Logger:
    """Get a logger for the public module containing the given module name.

    * Modules are considered private if they start with `_`.
    * All modules inside a private module are also considered private, even if they
      don't start with `_`.
    * If there is no leading public part, the root logger is returned.

    Example:
        Here are a few examples of how this function will resolve module names:

        * `abortable.asyncio` -> `abortable.asyncio`
        * `abortable.asyncio._retry` -> `abortable.asyncio`
        * `abortable._private.asyncio` -> `abortable`
        * `_private` -> `root`

    Args:
        module_name: The fully qualified name of the module to get the logger for
            (normally the `__name__` built-in variable).

    Returns:
        The logger for the public module containing the given module name.
    """
    public_parts: list[str] = []
    for part in module_name.split("."):
        if part.startswith("_"):
            break
        public_parts.append(part)
    return logging.getLogger(".".join(public_parts))
