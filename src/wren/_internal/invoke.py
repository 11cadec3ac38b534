"""Invoke helper: call sync or async callables uniformly.

Handlers and event listeners can be ``def`` or ``async def``. Anything
that calls user code goes through ``invoke`` so the coroutine check
lives in one place::

    result = await invoke(listener, event)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
