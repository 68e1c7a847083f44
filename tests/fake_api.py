"""In-process users API the bridge forwards calls to during tests."""

import asyncio
from typing import Any, Dict, List

from aiohttp import web
from aiohttp.test_utils import TestServer

USERS = {
    1: {"id": 1, "name": "Alice Johnson", "email": "alice@example.com"},
    5: {"id": 5, "name": "Bob Smith", "email": "bob@example.com"},
}
SLOW_DELAY = 0.5


class FakeUsersAPI:
    """Records every request it receives"""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.server = None

    async def _record(self, request: web.Request) -> None:
        body = await request.text()
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "query": dict(request.query),
            "headers": dict(request.headers),
            "body": body,
        })

    async def list_users(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"users": list(USERS.values())})

    async def get_user(self, request: web.Request) -> web.Response:
        await self._record(request)
        user = USERS.get(int(request.match_info["id"]))
        if user is None:
            return web.json_response({"error": "User not found"}, status=404)
        return web.json_response({"user": user})

    async def create_user(self, request: web.Request) -> web.Response:
        await self._record(request)
        payload = await request.json()
        return web.json_response({"message": "User created successfully", "user": {"id": 7, **payload}}, status=201)

    async def health(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(text="ok")

    async def slow(self, request: web.Request) -> web.Response:
        await self._record(request)
        await asyncio.sleep(SLOW_DELAY)
        return web.json_response({"slow": True})

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/users", self.list_users)
        app.router.add_get("/users/{id}", self.get_user)
        app.router.add_post("/users", self.create_user)
        app.router.add_get("/health", self.health)
        app.router.add_get("/slow", self.slow)
        return app

    async def start(self) -> str:
        self.server = TestServer(self.app())
        await self.server.start_server()
        return str(self.server.make_url("")).rstrip("/")

    async def close(self) -> None:
        if self.server is not None:
            await self.server.close()
