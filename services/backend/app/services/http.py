"""Outbound HTTP for the provider and aggregator hops.

Sessions built by :func:`scoped_session` register every connection they use
with the active :class:`RequestScope`, so a cancelled or expired request
tears down the socket of the call in flight.
"""

from __future__ import annotations

from typing import Any, Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from app.services.errors import RequestCancelled, UpstreamDecodeError, UpstreamTransportError
from app.services.request_scope import RequestScope, active_scope


class _ScopedConnectionMixin:
    def connect(self) -> None:
        super().connect()  # type: ignore[misc]
        scope = active_scope()
        if scope is not None:
            scope.track(self)  # type: ignore[arg-type]

    def request(self, *args: Any, **kwargs: Any) -> Any:
        scope = active_scope()
        if scope is not None:
            scope.track(self)  # type: ignore[arg-type]
        return super().request(*args, **kwargs)  # type: ignore[misc]


class ScopedHTTPConnection(_ScopedConnectionMixin, HTTPConnection):
    pass


class ScopedHTTPSConnection(_ScopedConnectionMixin, HTTPSConnection):
    pass


class ScopedHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = ScopedHTTPConnection


class ScopedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = ScopedHTTPSConnection


class ScopedHTTPAdapter(HTTPAdapter):
    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": ScopedHTTPConnectionPool,
            "https": ScopedHTTPSConnectionPool,
        }


def scoped_session() -> requests.Session:
    session = requests.Session()
    adapter = ScopedHTTPAdapter()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def transport_error(url: str, exc: requests.RequestException, scope: RequestScope) -> UpstreamTransportError:
    """Wrap a failed call; calls torn down by the scope surface as :class:`RequestCancelled`."""
    if scope.expired:
        return RequestCancelled(f"request to {url} aborted: inbound request is over")
    return UpstreamTransportError(f"request to {url} failed: {exc}")


def get_json(
    session: requests.Session,
    url: str,
    *,
    scope: RequestScope,
    params: Mapping[str, str] | None = None,
) -> Any:
    """GET ``url`` and decode its JSON body within the request's remaining budget."""
    with scope.hop() as timeout:
        try:
            response = session.get(url, params=params, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise transport_error(url, exc, scope) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamDecodeError(f"invalid JSON body from {url}: {exc}") from exc
