"""Board package - Client-side Kanban board synchronized over the event stream."""

from issueboard.board.client import DEFAULT_TIMEOUT, IssueBoardClient
from issueboard.board.controller import COLUMNS, BoardController, DragState, MoveFailedError
from issueboard.board.sse import ServerSentEvent, iter_sse

__all__ = [
    "COLUMNS",
    "DEFAULT_TIMEOUT",
    "BoardController",
    "DragState",
    "IssueBoardClient",
    "MoveFailedError",
    "ServerSentEvent",
    "iter_sse",
]
