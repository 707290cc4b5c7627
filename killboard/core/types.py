"""Type aliases for dynamic data structures throughout the application.

All types defined here should be JSON-serializable to support logging,
API responses and event stream payloads.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

# JSON-compatible type that represents any valid JSON value
type JsonValue = (
    dict[str, "JsonValue"] | list["JsonValue"] | str | int | float | bool | None
)

# A single row returned by the store, keyed by column name
type Row = dict[str, Any]

# ASGI primitives, following https://asgi.readthedocs.io/en/latest/specs/www.html
type AsgiScope = MutableMapping[str, Any]
type AsgiMessage = MutableMapping[str, Any]
type AsgiReceive = Callable[[], Awaitable[AsgiMessage]]
type AsgiSend = Callable[[AsgiMessage], Awaitable[None]]
