"""HTTP client for the RentX backend."""
from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import Optional, Tuple

import aiohttp

from config import settings
from models import Listing, User
from services.codec import Codec, extract_user_id, get_codec
from services.errors import HTTPStatusError, ResponseFormatError, TransportError

logger = logging.getLogger(__name__)


class RentXClient:
    """Issues the backend requests and decodes their text responses."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        codec: Optional[Codec] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self.session = session
        self._owns_session = session is None
        self._codec = codec

    @property
    def base_url(self) -> str:
        return self._base_url or settings.API_BASE_URL

    @property
    def codec(self) -> Codec:
        return self._codec or get_codec(settings.API_FORMAT)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=settings.REQUEST_TIMEOUT)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        failure_message: str,
        **kwargs,
    ) -> Tuple[bytes, str]:
        """Send a request and return the raw body with its charset.

        Raises :class:`TransportError` when no response arrives and
        :class:`HTTPStatusError` for any non-2xx status.
        """
        session = await self._get_session()
        url = self.url_for(path)
        logger.info("%s %s", method, url)

        try:
            async with session.request(method, url, **kwargs) as response:
                body = await response.read()
                charset = response.charset or "utf-8"
                status = response.status
        except asyncio.TimeoutError as exc:
            logger.warning("Timeout on %s %s", method, url)
            raise TransportError(failure_message) from exc
        except aiohttp.ClientError as exc:
            logger.warning("Request %s %s failed: %s", method, url, exc)
            logger.debug("Request error details", exc_info=True)
            raise TransportError(failure_message) from exc

        if not 200 <= status < 300:
            text = body.decode(charset, errors="replace")
            logger.warning("%s %s returned status %s: %s", method, url, status, text.strip())
            raise HTTPStatusError(status, text, failure_message)

        return body, charset

    async def _request_text(self, method: str, path: str, failure_message: str, **kwargs) -> str:
        body, charset = await self._request(method, path, failure_message, **kwargs)
        return body.decode(charset, errors="replace")

    async def fetch_listings(self) -> Tuple[Listing, ...]:
        """Fetch the public listing feed."""
        text = await self._request_text("GET", "/", "Failed to fetch listings")
        listings = self.codec.listings(text)
        logger.info("Fetched %s listings", len(listings))
        return listings

    async def fetch_dashboard_listings(self, user_id: str) -> Tuple[Listing, ...]:
        """Fetch the listings owned by ``user_id``."""
        text = await self._request_text(
            "GET",
            f"/dashboard/{user_id}",
            "Failed to fetch dashboard listings",
        )
        listings = self.codec.dashboard(text)
        logger.info("Fetched %s listings for user %s", len(listings), user_id)
        return listings

    async def signup(self, name: str, email: str, password: str) -> str:
        data = {"name": name, "email": email, "password": password}
        return await self._request_text("POST", "/signup", "Signup failed", data=data)

    async def signin(self, email: str, password: str) -> User:
        data = {"email": email, "password": password}
        text = await self._request_text("POST", "/signin", "Signin failed", data=data)
        user_id = extract_user_id(text)
        if user_id is None:
            logger.warning("Signin response without user id: %r", text)
            raise ResponseFormatError("Invalid login response")
        return User(id=user_id, email=email)

    async def create_listing(
        self,
        user_id: str,
        name: str,
        description: str,
        payment_per_day: str,
        image: bytes,
        filename: str,
    ) -> str:
        form = aiohttp.FormData()
        form.add_field("user_id", user_id)
        form.add_field("name", name)
        form.add_field("description", description)
        form.add_field("paymentPerDay", payment_per_day)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        form.add_field("image", image, filename=filename, content_type=content_type)
        return await self._request_text("POST", "/create", "Create listing failed", data=form)

    async def fetch_image(self, path: str) -> bytes:
        """Download a listing image referenced by its server-relative path."""
        body, _ = await self._request("GET", path, "Could not load image")
        return body


__all__ = ["RentXClient"]
