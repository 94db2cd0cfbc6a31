"""Client state and its transition functions.

All functions here are pure: they take a :class:`ClientState` and return a
new one. Request side effects live in :mod:`services.session`.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from models import Listing, ListingForm, SigninForm, SignupForm, User

LOGIN_REQUIRED = "You must be logged in to create listing"
IMAGE_REQUIRED = "Please select an image"
SIGNUP_NOTICE = "Signup successful! Please login."
LISTING_NOTICE = "Listing created!"


class View(str, Enum):
    DASHBOARD = "dashboard"
    SIGNUP = "signup"
    SIGNIN = "signin"
    CREATE = "create"


class Tab(str, Enum):
    ALL = "all"
    MY = "my"


FORM_VIEWS = frozenset({View.SIGNUP, View.SIGNIN, View.CREATE})


@dataclass(frozen=True, slots=True)
class ClientState:
    view: View = View.DASHBOARD
    tab: Tab = Tab.ALL
    user: Optional[User] = None
    error: str = ""
    notice: str = ""
    listings: Tuple[Listing, ...] = ()
    dashboard_listings: Tuple[Listing, ...] = ()
    signup_form: SignupForm = field(default_factory=SignupForm)
    signin_form: SigninForm = field(default_factory=SigninForm)
    listing_form: ListingForm = field(default_factory=ListingForm)
    generation: int = 0

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    def active_form(self):
        if self.view is View.SIGNUP:
            return self.signup_form
        if self.view is View.SIGNIN:
            return self.signin_form
        if self.view is View.CREATE:
            return self.listing_form
        return None


def _replace(state: ClientState, **changes) -> ClientState:
    return dataclasses.replace(state, **changes)


def navigate(state: ClientState, view: View) -> ClientState:
    """Switch screens. Forms are reachable only from the dashboard."""
    view = View(view)
    if view is state.view:
        return state
    if view is View.DASHBOARD:
        return _replace(state, view=view, error="", notice="")
    if state.view is not View.DASHBOARD:
        return state
    if view is View.CREATE and not state.signed_in:
        return set_error(state, LOGIN_REQUIRED)
    if view in (View.SIGNIN, View.SIGNUP) and state.signed_in:
        return state
    return _replace(state, view=view, error="", notice="")


def select_tab(state: ClientState, tab: Tab) -> ClientState:
    tab = Tab(tab)
    if tab is Tab.MY and not state.signed_in:
        return state
    return _replace(state, tab=tab, notice="")


def set_error(state: ClientState, message: str) -> ClientState:
    return _replace(state, error=message, notice="")


def clear_error(state: ClientState) -> ClientState:
    if not state.error:
        return state
    return _replace(state, error="")


def update_form(state: ClientState, form) -> ClientState:
    """Store an edited copy of the active form."""
    if isinstance(form, SignupForm):
        return _replace(state, signup_form=form)
    if isinstance(form, SigninForm):
        return _replace(state, signin_form=form)
    if isinstance(form, ListingForm):
        return _replace(state, listing_form=form)
    raise TypeError(f"Unsupported form: {type(form).__name__}")


def signup_succeeded(state: ClientState) -> ClientState:
    return _replace(
        state,
        view=View.SIGNIN,
        signup_form=SignupForm(),
        error="",
        notice=SIGNUP_NOTICE,
    )


def signin_succeeded(state: ClientState, user: User) -> ClientState:
    return _replace(
        state,
        user=user,
        signin_form=SigninForm(),
        view=View.DASHBOARD,
        tab=Tab.MY,
        error="",
        notice="",
    )


def listing_created(state: ClientState) -> ClientState:
    return _replace(
        state,
        listing_form=ListingForm(),
        view=View.DASHBOARD,
        tab=Tab.MY,
        error="",
        notice=LISTING_NOTICE,
    )


def signed_out(state: ClientState) -> ClientState:
    """Drop the user and every cached collection; in-flight fetches go stale."""
    return ClientState(generation=state.generation + 1)


def cancel_form(state: ClientState) -> ClientState:
    """Leave a form screen, discarding what was typed so far."""
    if state.view not in FORM_VIEWS:
        return state
    return _replace(
        state,
        view=View.DASHBOARD,
        signup_form=SignupForm(),
        signin_form=SigninForm(),
        listing_form=ListingForm(),
        error="",
        notice="",
    )


def form_cleared(state: ClientState) -> ClientState:
    """Empty the text fields of the active form so it can be filled again."""
    form = state.active_form()
    if form is None:
        return state
    return _replace(update_form(state, form.cleared()), error="", notice="")


def begin_fetch(state: ClientState) -> Tuple[ClientState, int]:
    """Open a new request generation; older responses become stale."""
    generation = state.generation + 1
    return _replace(state, generation=generation, error=""), generation


def listings_loaded(state: ClientState, listings: Tuple[Listing, ...], generation: int) -> ClientState:
    if generation != state.generation:
        return state
    return _replace(state, listings=tuple(listings))


def dashboard_listings_loaded(
    state: ClientState,
    listings: Tuple[Listing, ...],
    generation: int,
) -> ClientState:
    if generation != state.generation or not state.signed_in:
        return state
    return _replace(state, dashboard_listings=tuple(listings))


def fetch_failed(state: ClientState, message: str, generation: int) -> ClientState:
    if generation != state.generation:
        return state
    return set_error(state, message)


def visible_listings(state: ClientState) -> Tuple[Listing, ...]:
    """Collection shown on the dashboard for the active tab."""
    if state.tab is Tab.ALL:
        return state.listings
    if state.signed_in:
        return state.dashboard_listings
    return ()


def fetch_target(state: ClientState) -> Optional[Tab]:
    """Collection the dashboard needs for the current view and tab."""
    if state.view is not View.DASHBOARD:
        return None
    if state.tab is Tab.ALL:
        return Tab.ALL
    if state.signed_in:
        return Tab.MY
    return None


__all__ = [
    "ClientState",
    "FORM_VIEWS",
    "IMAGE_REQUIRED",
    "LOGIN_REQUIRED",
    "Tab",
    "View",
    "begin_fetch",
    "cancel_form",
    "clear_error",
    "dashboard_listings_loaded",
    "fetch_failed",
    "fetch_target",
    "form_cleared",
    "listing_created",
    "listings_loaded",
    "navigate",
    "select_tab",
    "set_error",
    "signed_out",
    "signin_succeeded",
    "signup_succeeded",
    "update_form",
    "visible_listings",
]
