"""ASGI middleware binding each request to a :class:`RequestScope`."""

from __future__ import annotations

import asyncio
import logging
import time

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.services.request_scope import RequestScope

logger = logging.getLogger(__name__)

REQUEST_SCOPE_KEY = "request_scope"
TIMEOUT_MESSAGE = "request timed out"


class RequestScopeMiddleware:
    """Create the request scope, cancel it on client disconnect, log each access.

    The (small) request body is buffered up front so the connection can be
    watched for ``http.disconnect`` while the handler runs.
    """

    def __init__(self, app: ASGIApp, timeout: float) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_scope = RequestScope(self.timeout)
        scope.setdefault("state", {})[REQUEST_SCOPE_KEY] = request_scope

        chunks: list[bytes] = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                request_scope.cancel()
                return
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        body = b"".join(chunks)

        disconnected = asyncio.Event()
        body_sent = False

        async def replay_receive() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def watch_disconnect() -> None:
            while True:
                message = await receive()
                if message["type"] == "http.disconnect":
                    if not response_done:
                        logger.warning("%s %s abandoned: client disconnected", scope["method"], scope["path"])
                    request_scope.cancel()
                    disconnected.set()
                    return

        status = 500
        response_done = False

        async def send_with_status(message: Message) -> None:
            nonlocal status, response_done
            if message["type"] == "http.response.start":
                status = message["status"]
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                response_done = True
            await send(message)

        started = time.perf_counter()
        watcher = asyncio.create_task(watch_disconnect())
        try:
            await self.app(scope, replay_receive, send_with_status)
        finally:
            watcher.cancel()
            request_scope.cancel()
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info("%s %s -> %s (%.1f ms)", scope["method"], scope["path"], status, elapsed_ms)


def request_scope_of(request: Request) -> RequestScope:
    return request.state.request_scope
