"""Starlette request adapter for the framework-agnostic HTTP layer."""

from __future__ import annotations

from starlette.requests import Request

from ..http.types import HTTPRequestContext


class FastAPIAdapter:
    """HTTPAdapter over a Starlette/FastAPI request."""

    def __init__(self, request: Request) -> None:
        self._request = request

    def get_header(self, name: str) -> str | None:
        return self._request.headers.get(name)

    def get_method(self) -> str:
        return self._request.method

    def get_path(self) -> str:
        return self._request.url.path

    def get_url(self) -> str:
        return str(self._request.url)

    def get_accept_header(self) -> str:
        return self._request.headers.get("accept", "")

    def get_user_agent(self) -> str:
        return self._request.headers.get("user-agent", "")


def request_context(request: Request) -> HTTPRequestContext:
    adapter = FastAPIAdapter(request)
    return HTTPRequestContext(
        adapter=adapter,
        path=adapter.get_path(),
        method=adapter.get_method(),
    )
