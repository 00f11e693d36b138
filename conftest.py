"""
Shared test fixtures
Fake management API served through httpx.MockTransport
"""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from middleware_console import ConsoleClient, ConsoleConfig

API_URL = "http://backend.test"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Routes (method, path) to canned responses and records every request"""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Union[httpx.Response, Handler]]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, status: int = 200, json_body: Any = None, handler: Handler = None):
        """Register a response; several registrations for one route are served in order"""
        if handler is None:
            def handler(request, status=status, body=json_body):
                if body is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=body)
        self.routes.setdefault((method.upper(), path), []).append(handler)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def bodies(self, method: str, path: str) -> List[Any]:
        return [json.loads(r.content) if r.content else None for r in self.calls(method, path)]

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def console(self) -> ConsoleClient:
        return ConsoleClient(ConsoleConfig(api_url=API_URL), client=self.http_client())


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def console(backend):
    return backend.console()
