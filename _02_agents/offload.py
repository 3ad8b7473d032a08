"""Background search offload.

Expensive searches can run on a background worker (a thread or a separate
process) so the asyncio loop driving the game stays responsive. The worker
only sees plain-dict messages:

    request:  {"id": 7, "action": "hintSearch", "payload": {...}}
    response: {"id": 7, "result": {...}}  or  {"id": 7, "error": "..."}

Ids increase monotonically per channel and match replies to the awaiting
coroutine. When the worker does not answer within the timeout, cannot be
reached, or answers with an error, the same request is computed in-process
instead. Replies that arrive after their request gave up are dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import multiprocessing
import queue
import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from _01_simulator import rules, state
from _01_simulator.actions import move_to_dict
from _01_simulator.exceptions import NumberBattleError, OffloadError

from .hints import HINT_SEARCH_DEPTH, HintAnalyzer
from .outcomes import MoveClassifier
from .solver.search import SearchConfig, SearchEngine
from .strength import Strength, StrengthPolicy
from .tablebase.endgame import TablebaseEntry
from .tablebase.storage import TablebaseStore, parse_artifact

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0
LOCAL_REQUEST_ID = 0

ReplyHandler = Callable[[dict[str, Any]], None]


class OffloadAction(str, Enum):
    HINT_SEARCH = "hintSearch"
    CHOOSE_MOVE = "chooseMove"
    ANALYZE_MOVES = "analyzeMoves"


class OffloadRequest(BaseModel):
    id: int
    action: OffloadAction
    payload: dict[str, Any] = Field(default_factory=dict)


class OffloadResponse(BaseModel):
    id: int
    result: Any = None
    error: str | None = None


@dataclass
class OffloadConfig:
    """Configuration for the offload channel."""

    backend: str = "thread"  # "thread" or "process"
    timeout: float = DEFAULT_TIMEOUT
    search_depth: int = HINT_SEARCH_DEPTH


# =============================================================================
# Request Handling (runs on the worker, or locally as the fallback)
# =============================================================================

class OffloadContext:
    """Everything a worker needs to answer requests."""

    def __init__(self, store: TablebaseStore | None = None, search: SearchEngine | None = None) -> None:
        self.store = store or TablebaseStore()
        self.search = search or SearchEngine()
        self.classifier = MoveClassifier(self.store, self.search)
        self.hints = HintAnalyzer(self.classifier, self.search)

    @classmethod
    def from_artifact(cls, artifact: Mapping[str, object] | None, search_depth: int = HINT_SEARCH_DEPTH) -> OffloadContext:
        """Context for a separate process; ``artifact`` is the JSON-shaped table."""
        store = TablebaseStore.from_entries(parse_artifact(artifact)) if artifact else TablebaseStore()
        return cls(store, SearchEngine(SearchConfig(default_depth=search_depth)))


def _hint_search(payload: Mapping[str, Any], context: OffloadContext) -> dict[str, Any]:
    game_state = state.State.from_dict(payload["state"])
    turn = payload.get("turn", rules.PLAYER)
    rules.opponent(turn)
    depth = int(payload.get("depth", context.search.config.default_depth))
    return context.hints.best_line(game_state, turn, depth).to_dict()


def _choose_move(payload: Mapping[str, Any], context: OffloadContext) -> dict[str, Any]:
    game_state = state.State.from_dict(payload["state"])
    actor = payload.get("actor", rules.AI)
    rules.opponent(actor)
    rng = random.Random(payload.get("seed"))
    policy = StrengthPolicy(Strength.parse(payload.get("strength")), context.classifier, rng=rng)
    move = policy.choose(game_state, actor)
    return {"move": move_to_dict(move) if move is not None else None}


def _analyze_moves(payload: Mapping[str, Any], context: OffloadContext) -> list[dict[str, Any]]:
    game_state = state.State.from_dict(payload["state"])
    acting_side = payload.get("actingSide", rules.PLAYER)
    perspective_side = payload.get("perspectiveSide", acting_side)
    return [entry.to_dict() for entry in context.hints.analyze_moves(game_state, acting_side, perspective_side)]


_HANDLERS: dict[OffloadAction, Callable[[Mapping[str, Any], OffloadContext], Any]] = {
    OffloadAction.HINT_SEARCH: _hint_search,
    OffloadAction.CHOOSE_MOVE: _choose_move,
    OffloadAction.ANALYZE_MOVES: _analyze_moves,
}


def handle_request(message: Mapping[str, Any], context: OffloadContext) -> dict[str, Any]:
    """Answer one request message with a response message.

    Never raises for bad input; problems are reported as ``{"id", "error"}``.
    """
    request_id = message.get("id") if isinstance(message, Mapping) else None
    if not isinstance(request_id, int):
        request_id = LOCAL_REQUEST_ID
    try:
        request = OffloadRequest.model_validate(message)
        result = _HANDLERS[request.action](request.payload, context)
    except (ValidationError, NumberBattleError, KeyError, TypeError, ValueError) as exc:
        return OffloadResponse(id=request_id, error=f"{type(exc).__name__}: {exc}").model_dump(exclude_none=True)
    return OffloadResponse(id=request.id, result=result).model_dump()


# =============================================================================
# Workers
# =============================================================================

class OffloadWorker(ABC):
    """Message-passing worker. Replies are delivered on a worker thread."""

    def __init__(self) -> None:
        self._reply_handler: ReplyHandler | None = None

    def set_reply_handler(self, handler: ReplyHandler) -> None:
        self._reply_handler = handler

    def _deliver(self, reply: dict[str, Any]) -> None:
        if self._reply_handler is not None:
            self._reply_handler(reply)

    @abstractmethod
    def send(self, message: dict[str, Any]) -> None:
        """Queue a request; raises ``OffloadError`` when the worker is gone."""

    @abstractmethod
    def close(self) -> None:
        ...


class ThreadWorker(OffloadWorker):
    """Answers requests on a daemon thread sharing the read-only store."""

    def __init__(self, context: OffloadContext) -> None:
        super().__init__()
        self._context = context
        self._inbox: queue.Queue[dict[str, Any] | None] = queue.Queue()
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._run, name="number-battle-offload", daemon=True)
        self._thread.start()

    def send(self, message: dict[str, Any]) -> None:
        if self._closed.is_set():
            raise OffloadError(message.get("id", LOCAL_REQUEST_ID), "worker is closed")
        self._inbox.put(message)

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._inbox.put(None)

    def _run(self) -> None:
        while True:
            message = self._inbox.get()
            if message is None:
                break
            self._deliver(handle_request(message, self._context))


def _process_main(inbox: Any, outbox: Any, artifact: Mapping[str, object] | None, search_depth: int) -> None:
    context = OffloadContext.from_artifact(artifact, search_depth)
    while True:
        message = inbox.get()
        if message is None:
            break
        outbox.put(handle_request(message, context))
    outbox.put(None)


class ProcessWorker(OffloadWorker):
    """Answers requests in a separate process.

    The table crosses the boundary once, as its JSON-shaped artifact; the
    child process rebuilds its own store from it.
    """

    def __init__(
        self,
        entries: Mapping[str, TablebaseEntry] | None = None,
        search_depth: int = HINT_SEARCH_DEPTH,
    ) -> None:
        super().__init__()
        artifact = {key: entry.to_dict() for key, entry in entries.items()} if entries else None
        mp = multiprocessing.get_context("spawn")
        self._inbox = mp.Queue()
        self._outbox = mp.Queue()
        self._process = mp.Process(
            target=_process_main,
            args=(self._inbox, self._outbox, artifact, search_depth),
            name="number-battle-offload",
            daemon=True,
        )
        self._process.start()
        self._reader = threading.Thread(target=self._read_replies, name="number-battle-offload-reader", daemon=True)
        self._reader.start()

    def send(self, message: dict[str, Any]) -> None:
        if not self._process.is_alive():
            raise OffloadError(message.get("id", LOCAL_REQUEST_ID), "worker process is not running")
        self._inbox.put(message)

    def close(self) -> None:
        if self._process.is_alive():
            self._inbox.put(None)
            self._process.join(timeout=2.0)
        if self._process.is_alive():
            logger.warning("Offload process did not exit; terminating")
            self._process.terminate()
            self._outbox.put(None)

    def _read_replies(self) -> None:
        while True:
            reply = self._outbox.get()
            if reply is None:
                break
            self._deliver(reply)


# =============================================================================
# Channel
# =============================================================================

class SearchOffload:
    """Request/response channel to a worker with a synchronous fallback.

    Args:
        worker: Background worker, or ``None`` to always compute in-process.
        context: Context for in-process computation.
        timeout: Seconds to wait for a reply before computing locally.
    """

    def __init__(
        self,
        worker: OffloadWorker | None,
        context: OffloadContext,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.worker = worker
        self.context = context
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[OffloadResponse]] = {}
        self._lock = threading.Lock()
        self.fallbacks = 0
        if worker is not None:
            worker.set_reply_handler(self._on_reply)

    @classmethod
    def create(cls, config: OffloadConfig, store: TablebaseStore) -> SearchOffload:
        """Build a channel with the configured backend around ``store``."""
        context = OffloadContext(store, SearchEngine(SearchConfig(default_depth=config.search_depth)))
        if config.backend == "process":
            worker: OffloadWorker = ProcessWorker(store.entries(), config.search_depth)
        elif config.backend == "thread":
            worker = ThreadWorker(context)
        else:
            raise ValueError(f"Unknown offload backend: {config.backend!r}")
        logger.info("Search offload started (%s backend, %.1fs timeout)", config.backend, config.timeout)
        return cls(worker, context, config.timeout)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    async def request(self, action: OffloadAction | str, payload: Mapping[str, Any]) -> Any:
        """Send one request and await its result.

        Raises:
            OffloadError: If the request itself is invalid, so that even the
                in-process computation fails.
        """
        action = OffloadAction(action)
        if self.worker is None:
            return self._run_local(action, payload)

        request_id = next(self._ids)
        future: asyncio.Future[OffloadResponse] = asyncio.get_running_loop().create_future()
        with self._lock:
            self._pending[request_id] = future

        message = OffloadRequest(id=request_id, action=action, payload=dict(payload)).model_dump(mode="json")
        try:
            self.worker.send(message)
        except (OffloadError, OSError, ValueError) as exc:
            with self._lock:
                self._pending.pop(request_id, None)
            logger.warning("Offload dispatch of request %d failed (%s); computing locally", request_id, exc)
            return self._run_local(action, payload)

        try:
            response = await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Offload request %d (%s) timed out after %.1fs; computing locally",
                request_id,
                action.value,
                self.timeout,
            )
            return self._run_local(action, payload)
        finally:
            with self._lock:
                self._pending.pop(request_id, None)

        if response.error is not None:
            logger.warning("Offload request %d failed on worker: %s; computing locally", request_id, response.error)
            return self._run_local(action, payload)
        return response.result

    def _on_reply(self, message: dict[str, Any]) -> None:
        try:
            response = OffloadResponse.model_validate(message)
        except ValidationError:
            logger.warning("Dropping malformed offload reply: %r", message)
            return
        with self._lock:
            future = self._pending.pop(response.id, None)
        if future is None:
            logger.debug("Ignoring late offload reply %d", response.id)
            return
        try:
            future.get_loop().call_soon_threadsafe(_resolve, future, response)
        except RuntimeError:
            logger.debug("Event loop closed before offload reply %d arrived", response.id)

    def _run_local(self, action: OffloadAction, payload: Mapping[str, Any]) -> Any:
        self.fallbacks += 1
        reply = handle_request({"id": LOCAL_REQUEST_ID, "action": action.value, "payload": dict(payload)}, self.context)
        if reply.get("error") is not None:
            raise OffloadError(LOCAL_REQUEST_ID, reply["error"])
        return reply["result"]

    # Convenience wrappers

    async def hint_search(self, game_state: state.State, turn: str, depth: int = HINT_SEARCH_DEPTH) -> dict[str, Any]:
        payload = {"state": game_state.to_dict(), "turn": turn, "depth": depth}
        return await self.request(OffloadAction.HINT_SEARCH, payload)

    async def choose_move(
        self, game_state: state.State, actor: str, strength: Strength | str, seed: int | None = None
    ) -> dict[str, Any] | None:
        payload = {
            "state": game_state.to_dict(),
            "actor": actor,
            "strength": Strength.parse(strength).value,
            "seed": seed,
        }
        result = await self.request(OffloadAction.CHOOSE_MOVE, payload)
        return result["move"]

    async def analyze_moves(
        self, game_state: state.State, acting_side: str, perspective_side: str | None = None
    ) -> list[dict[str, Any]]:
        payload = {
            "state": game_state.to_dict(),
            "actingSide": acting_side,
            "perspectiveSide": perspective_side or acting_side,
        }
        return await self.request(OffloadAction.ANALYZE_MOVES, payload)

    def close(self) -> None:
        if self.worker is not None:
            self.worker.close()


def _resolve(future: asyncio.Future[OffloadResponse], response: OffloadResponse) -> None:
    if not future.done():
        future.set_result(response)


__all__ = [
    "DEFAULT_TIMEOUT",
    "OffloadAction",
    "OffloadConfig",
    "OffloadContext",
    "OffloadRequest",
    "OffloadResponse",
    "OffloadWorker",
    "ProcessWorker",
    "SearchOffload",
    "ThreadWorker",
    "handle_request",
]
