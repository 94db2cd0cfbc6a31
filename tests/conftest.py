"""Pytest configuration and fixtures."""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from config import settings
from services.api import RentXClient


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch) -> None:
    """Set up test environment variables"""
    monkeypatch.setenv('BOT_TOKEN', 'test_token_123456')
    monkeypatch.setenv('ADMIN_CHAT_IDS', '123456789,987654321')
    monkeypatch.setenv('API_BASE_URL', 'http://localhost:8090/api')
    monkeypatch.setenv('API_FORMAT', 'lines')
    monkeypatch.setenv('REQUEST_TIMEOUT', '5')
    monkeypatch.delenv('MAX_IMAGE_BYTES', raising=False)
    monkeypatch.delenv('CURRENCY_SYMBOL', raising=False)
    settings.reload()


@dataclass
class StoredListing:
    id: int
    user_id: int
    name: str
    description: str
    payment: int
    image_path: str


@dataclass
class FakeBackend:
    """In-memory stand-in for the RentX HTTP backend.

    Responses reproduce the backend's plain-text bodies byte for byte.
    """

    base_url: str = ""
    users: Dict[str, Tuple[int, str]] = field(default_factory=dict)
    listings: List[StoredListing] = field(default_factory=list)
    images: Dict[str, bytes] = field(default_factory=dict)
    requests: List[Tuple[str, str]] = field(default_factory=list)
    overrides: Dict[str, Tuple[int, str]] = field(default_factory=dict)
    signin_body: str | None = None
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _listing_ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def add_user(self, email: str, password: str) -> int:
        user_id = next(self._ids)
        self.users[email] = (user_id, password)
        return user_id

    def add_listing(self, user_id: int, name: str, description: str, payment: int, image_path: str) -> StoredListing:
        listing = StoredListing(next(self._listing_ids), user_id, name, description, payment, image_path)
        self.listings.append(listing)
        return listing

    def respond(self, path: str, status: int, body: str) -> None:
        """Answer every request to ``path`` with a fixed status and body."""
        self.overrides[path] = (status, body)

    def paths(self, method: str | None = None) -> List[str]:
        return [path for verb, path in self.requests if method is None or verb == method]

    @web.middleware
    async def _record(self, request: web.Request, handler):
        self.requests.append((request.method, request.path))
        if request.path in self.overrides:
            status, body = self.overrides[request.path]
            return web.Response(status=status, text=body)
        return await handler(request)

    async def list_all(self, request: web.Request) -> web.Response:
        lines = [
            f"ID: {item.id}, Name: {item.name}, Description: {item.description}, "
            f"Payment: {item.payment}, Image: {item.image_path}\n"
            for item in self.listings
        ]
        return web.Response(text="".join(lines))

    async def dashboard(self, request: web.Request) -> web.Response:
        raw = request.match_info["user_id"]
        if not raw.isdigit():
            return web.Response(status=400, text="Invalid userID\n")
        user_id = int(raw)
        lines = [
            f"ID: {item.id}, Name: {item.name}, Desc: {item.description}, "
            f"Payment: {item.payment}, Image: {item.image_path}\n"
            for item in self.listings
            if item.user_id == user_id
        ]
        return web.Response(text="".join(lines))

    async def signup(self, request: web.Request) -> web.Response:
        form = await request.post()
        email = form.get("email", "")
        if email in self.users:
            return web.Response(
                status=500,
                text="Signup failed: constraint failed: UNIQUE constraint failed: users.email (2067)\n",
            )
        self.add_user(email, form.get("password", ""))
        return web.Response(text="Signup successful\n")

    async def signin(self, request: web.Request) -> web.Response:
        form = await request.post()
        record = self.users.get(form.get("email", ""))
        if record is None or record[1] != form.get("password"):
            return web.Response(status=401, text="Invalid credentials\n")
        if self.signin_body is not None:
            return web.Response(text=self.signin_body)
        return web.Response(text=f"Login successful. UserID: {record[0]}")

    async def create(self, request: web.Request) -> web.Response:
        form = await request.post()
        try:
            user_id = int(form.get("user_id", ""))
        except ValueError:
            return web.Response(status=400, text="Invalid user_id\n")
        try:
            payment = int(form.get("paymentPerDay", ""))
        except ValueError:
            return web.Response(status=400, text="Invalid paymentPerDay\n")
        image = form.get("image")
        if not isinstance(image, web.FileField):
            return web.Response(status=400, text="Image upload error: http: no such file\n")
        path = f"uploads/{user_id}_{image.filename.replace(' ', '_')}"
        self.images[path] = image.file.read()
        self.add_listing(user_id, form.get("name", ""), form.get("description", ""), payment, path)
        return web.Response(text="Listing created\n")

    async def image(self, request: web.Request) -> web.Response:
        path = f"uploads/{request.match_info['name']}"
        if path not in self.images:
            return web.Response(status=404, text="404 page not found\n")
        return web.Response(body=self.images[path], content_type="image/jpeg")

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._record])
        app.router.add_get("/api/", self.list_all)
        app.router.add_get("/api/dashboard/{user_id}", self.dashboard)
        app.router.add_post("/api/signup", self.signup)
        app.router.add_post("/api/signin", self.signin)
        app.router.add_post("/api/create", self.create)
        app.router.add_get("/api/uploads/{name}", self.image)
        return app


@pytest_asyncio.fixture
async def backend():
    """Running fake backend; ``backend.base_url`` points at its API root."""
    fake = FakeBackend()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("/api"))
    try:
        yield fake
    finally:
        await server.close()


@pytest_asyncio.fixture
async def api_client(backend):
    client = RentXClient(base_url=backend.base_url)
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def sample_feed() -> str:
    """Listing feed as the backend writes it"""
    return (
        "ID: 1, Name: Bike, Description: Fast, Payment: 100, Image: uploads/1_bike.jpg\n"
        "ID: 2, Name: Tent, Description: Sleeps four, Payment: 250, Image: uploads/2_tent.png\n"
    )
