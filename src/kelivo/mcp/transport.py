"""In-memory client transport that feeds a local server engine directly.

Messages sent by the client are queued and handled by a single asyncio
worker task, one at a time and in send order, so the engine never sees two
dispatches at once. Responses go to ``on_message`` callbacks and to
``messages()`` iterators.

Usage:
    transport = LocalInMemoryClientTransport(create_fetch_server())
    transport.on_message(print)
    transport.send({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    await transport.flush()
    transport.close()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from ..rpc.types import is_noop
from .engine import LocalMcpServer

logger = logging.getLogger(__name__)

_STOP = object()

MessageCallback = Callable[[Any], None]
CloseCallback = Callable[[], None]


def _deliverable(response: Any) -> Any:
    """Drop what must never reach a peer: None, no-op envelopes, empty batches."""
    if response is None:
        return None
    if isinstance(response, list):
        kept = [item for item in response if item is not None and not is_noop(item)]
        return kept or None
    if is_noop(response):
        return None
    return response


class LocalInMemoryClientTransport:
    """Client transport relaying JSON-RPC messages to an in-process engine."""

    def __init__(self, server: LocalMcpServer) -> None:
        self._server = server
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._listeners: list[MessageCallback] = []
        self._close_listeners: list[CloseCallback] = []
        self._subscribers: list[asyncio.Queue[Any]] = []
        self._closed = False
        self._closed_event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: Any) -> None:
        """Submit a message; returns immediately. Ignored once closed."""
        if self._closed:
            return
        self._queue.put_nowait(message)
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._run())

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        """Register a response callback. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def on_close(self, callback: CloseCallback) -> None:
        if self._closed:
            callback()
            return
        self._close_listeners.append(callback)

    async def messages(self) -> AsyncIterator[Any]:
        """Iterate over responses until the transport closes."""
        if self._closed:
            return
        queue: asyncio.Queue[Any] = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _STOP:
                    return
                yield item
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    async def flush(self) -> None:
        """Wait until every message sent so far has been handled."""
        await self._queue.join()

    async def wait_closed(self) -> None:
        await self._closed_event.wait()

    def close(self) -> None:
        """Close the transport and the engine. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._server.close()
        except Exception:
            logger.exception("Error closing local MCP server")

        # Let an in-flight dispatch finish; its result is discarded.
        if self._worker is not None:
            self._queue.put_nowait(_STOP)
        for queue in self._subscribers:
            queue.put_nowait(_STOP)
        for callback in self._close_listeners:
            try:
                callback()
            except Exception:
                logger.exception("Transport close callback failed")
        self._close_listeners.clear()
        self._closed_event.set()

    async def __aenter__(self) -> "LocalInMemoryClientTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                if message is _STOP:
                    self._discard_pending()
                    return
                if self._closed:
                    continue
                response = await self._server.handle_message(message)
                if self._closed:
                    continue
                self._deliver(response)
            except Exception:
                logger.exception("Local MCP server failed to handle message")
            finally:
                self._queue.task_done()

    def _discard_pending(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    def _deliver(self, response: Any) -> None:
        payload = _deliverable(response)
        if payload is None:
            return
        for callback in list(self._listeners):
            try:
                callback(payload)
            except Exception:
                logger.exception("Transport message callback failed")
        for queue in self._subscribers:
            queue.put_nowait(payload)
