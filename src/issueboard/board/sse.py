"""Parsing of the Server-Sent Events stream emitted by the API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator


@dataclass
class ServerSentEvent:
    """One dispatched SSE event."""

    event: str = "message"
    data: str = ""

    def json(self) -> Any:
        """Decode the data field as JSON. Empty data decodes to {}."""
        return json.loads(self.data) if self.data else {}


async def iter_sse(lines: AsyncIterable[str]) -> AsyncIterator[ServerSentEvent]:
    """Group raw stream lines into events.

    A blank line dispatches the event collected so far. Comment lines
    (leading ':') and unknown fields are ignored.
    """
    event = "message"
    data: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield ServerSentEvent(event=event, data="\n".join(data))
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield ServerSentEvent(event=event, data="\n".join(data))
