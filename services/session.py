"""Per-chat client sessions: user actions, requests and state updates."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from config import settings
from models import Listing, ListingForm, User
from services import store
from services.api import RentXClient
from services.errors import RentXError, ValidationError
from services.store import ClientState, Tab, View

logger = logging.getLogger(__name__)

LISTINGS_FAILED = "Could not load listings."
DASHBOARD_FAILED = "Could not load your listings."


def require_complete(form) -> None:
    """Raise :class:`ValidationError` naming the first empty field."""
    missing = form.next_field()
    if missing is not None:
        raise ValidationError(f"{missing.label} is required")


def check_image_size(data: bytes) -> None:
    limit = settings.MAX_IMAGE_BYTES
    if len(data) > limit:
        raise ValidationError(f"Image is too large (limit {limit / (1 << 20):g} MB)")


def listing_submission(state: ClientState) -> Tuple[User, ListingForm]:
    """User and form for a create request, or :class:`ValidationError`."""
    if state.user is None:
        raise ValidationError(store.LOGIN_REQUIRED)
    form = state.listing_form
    if not form.has_image:
        raise ValidationError(store.IMAGE_REQUIRED)
    require_complete(form)
    return state.user, form


class Session:
    """Holds one chat's :class:`ClientState` and runs its actions.

    Every action applies a pure transition from :mod:`services.store`,
    optionally awaits a backend call, and folds the result back into the
    state. Fetch results are applied only if no newer fetch or signout
    happened while they were in flight.
    """

    def __init__(self, client: RentXClient, chat_id: Optional[int] = None) -> None:
        self.client = client
        self.chat_id = chat_id
        self.state = ClientState()

    @property
    def visible_listings(self) -> Tuple[Listing, ...]:
        return store.visible_listings(self.state)

    async def refresh(self) -> None:
        """Fetch whatever the current view and tab display."""
        target = store.fetch_target(self.state)
        if target is Tab.ALL:
            await self.fetch_listings()
        elif target is Tab.MY:
            await self.fetch_dashboard_listings()

    async def fetch_listings(self) -> None:
        self.state, generation = store.begin_fetch(self.state)
        try:
            listings = await self.client.fetch_listings()
        except RentXError as exc:
            logger.warning("Error fetching listings for chat %s: %s", self.chat_id, exc)
            self.state = store.fetch_failed(self.state, LISTINGS_FAILED, generation)
            return
        self.state = store.listings_loaded(self.state, listings, generation)

    async def fetch_dashboard_listings(self) -> None:
        user = self.state.user
        if user is None:
            return
        self.state, generation = store.begin_fetch(self.state)
        try:
            listings = await self.client.fetch_dashboard_listings(user.id)
        except RentXError as exc:
            logger.warning("Error fetching dashboard listings for chat %s: %s", self.chat_id, exc)
            self.state = store.fetch_failed(self.state, DASHBOARD_FAILED, generation)
            return
        self.state = store.dashboard_listings_loaded(self.state, listings, generation)

    async def navigate(self, view: View) -> None:
        previous = self.state
        self.state = store.navigate(self.state, view)
        if self.state.view is not previous.view:
            await self.refresh()

    async def select_tab(self, tab: Tab) -> None:
        previous = self.state
        self.state = store.select_tab(self.state, tab)
        if self.state.tab is not previous.tab:
            await self.refresh()

    async def submit_field(self, value: str) -> None:
        """Fill the next empty field of the active form.

        The form is submitted as soon as it is complete.
        """
        form = self.state.active_form()
        if form is None:
            return
        field = form.next_field()
        if field is None:
            if self.state.view is View.CREATE and not form.has_image:
                self.state = store.set_error(self.state, store.IMAGE_REQUIRED)
            return
        try:
            form = form.set_field(field.name, value)
        except ValueError as exc:
            self.state = store.set_error(self.state, str(exc))
            return
        self.state = store.clear_error(store.update_form(self.state, form))
        if not form.is_complete():
            return
        # the listing form also waits for its photo
        if self.state.view is View.CREATE and not form.has_image:
            return
        await self.submit()

    async def submit(self) -> bool:
        """Submit the active form."""
        view = self.state.view
        if view is View.SIGNUP:
            return await self.signup()
        if view is View.SIGNIN:
            return await self.signin()
        if view is View.CREATE:
            return await self.create_listing()
        return False

    async def signup(self) -> bool:
        form = self.state.signup_form
        try:
            require_complete(form)
        except ValidationError as exc:
            self.state = store.set_error(self.state, str(exc))
            return False
        self.state = store.clear_error(self.state)
        try:
            await self.client.signup(form.name, form.email, form.password)
        except RentXError as exc:
            logger.warning("Signup error for %s: %s", form.email, exc)
            self.state = store.set_error(self.state, str(exc))
            return False
        logger.info("Signup succeeded for %s", form.email)
        self.state = store.signup_succeeded(self.state)
        return True

    async def signin(self) -> bool:
        form = self.state.signin_form
        try:
            require_complete(form)
        except ValidationError as exc:
            self.state = store.set_error(self.state, str(exc))
            return False
        self.state = store.clear_error(self.state)
        try:
            user = await self.client.signin(form.email, form.password)
        except RentXError as exc:
            logger.warning("Signin error for %s: %s", form.email, exc)
            self.state = store.set_error(self.state, str(exc))
            return False
        logger.info("User %s signed in as %s", user.id, user.email)
        self.state = store.signin_succeeded(self.state, user)
        await self.fetch_dashboard_listings()
        return True

    async def attach_image(
        self,
        data: bytes,
        filename: str,
        preview_file_id: Optional[str] = None,
    ) -> None:
        if self.state.view is not View.CREATE:
            return
        try:
            check_image_size(data)
        except ValidationError as exc:
            self.state = store.set_error(self.state, str(exc))
            return
        form = self.state.listing_form.attach_image(data, filename, preview_file_id)
        self.state = store.clear_error(store.update_form(self.state, form))
        if form.is_complete():
            await self.create_listing()

    async def create_listing(self) -> bool:
        try:
            user, form = listing_submission(self.state)
        except ValidationError as exc:
            self.state = store.set_error(self.state, str(exc))
            return False

        self.state = store.clear_error(self.state)
        try:
            await self.client.create_listing(
                user_id=user.id,
                name=form.name,
                description=form.description,
                payment_per_day=form.payment_per_day,
                image=form.image,
                filename=form.image_name or "image.jpg",
            )
        except RentXError as exc:
            logger.warning("Create listing error for user %s: %s", user.id, exc)
            self.state = store.set_error(self.state, str(exc))
            return False

        logger.info("Listing %r created for user %s", form.name, user.id)
        if self.state.user is None:
            return True
        self.state = store.listing_created(self.state)
        await self.fetch_dashboard_listings()
        return True

    async def clear_form(self) -> None:
        self.state = store.form_cleared(self.state)

    async def cancel(self) -> None:
        previous = self.state
        self.state = store.cancel_form(self.state)
        if self.state.view is not previous.view:
            await self.refresh()

    def signout(self) -> None:
        """Forget the user locally; the backend is not told."""
        if self.state.user is not None:
            logger.info("User %s signed out", self.state.user.id)
        self.state = store.signed_out(self.state)

    async def load_image(self, listing_id: str) -> Optional[Tuple[Listing, bytes]]:
        """Download the image of the visible listing with ``listing_id``."""
        listing = next(
            (item for item in self.visible_listings if item.id == listing_id),
            None,
        )
        if listing is None or not listing.image:
            return None
        try:
            data = await self.client.fetch_image(listing.image)
        except RentXError as exc:
            logger.debug("Image %s unavailable: %s", listing.image, exc)
            return None
        return listing, data


class SessionRegistry:
    """Sessions keyed by chat id, created on first use."""

    def __init__(self, client: RentXClient) -> None:
        self.client = client
        self._sessions: Dict[int, Session] = {}

    def get(self, chat_id: int) -> Session:
        session = self._sessions.get(chat_id)
        if session is None:
            session = Session(self.client, chat_id=chat_id)
            self._sessions[chat_id] = session
        return session

    def drop(self, chat_id: int) -> None:
        self._sessions.pop(chat_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._sessions


__all__ = [
    "DASHBOARD_FAILED",
    "LISTINGS_FAILED",
    "Session",
    "SessionRegistry",
    "check_image_size",
    "listing_submission",
    "require_complete",
]
