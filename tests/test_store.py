"""Tests for the pure state transitions."""
from __future__ import annotations

import dataclasses

from models import Listing, ListingForm, SignupForm, User
from services import store
from services.store import ClientState, Tab, View

USER = User(id="1", email="alice@example.com")
BIKE = Listing("1", "Bike", "Fast", "100", "uploads/1_bike.jpg")
TENT = Listing("2", "Tent", "Sleeps four", "250", None)


def signed_in(**changes) -> ClientState:
    state = store.signin_succeeded(ClientState(), USER)
    return dataclasses.replace(state, **changes)


class TestNavigation:
    def test_initial_state(self):
        state = ClientState()

        assert state.view is View.DASHBOARD
        assert state.tab is Tab.ALL
        assert state.user is None
        assert state.listings == ()

    def test_dashboard_to_forms(self):
        assert store.navigate(ClientState(), View.SIGNIN).view is View.SIGNIN
        assert store.navigate(ClientState(), View.SIGNUP).view is View.SIGNUP
        assert store.navigate(signed_in(), View.CREATE).view is View.CREATE

    def test_navigate_accepts_plain_strings(self):
        assert store.navigate(ClientState(), "signup").view is View.SIGNUP

    def test_create_requires_user(self):
        state = store.navigate(ClientState(), View.CREATE)

        assert state.view is View.DASHBOARD
        assert state.error == store.LOGIN_REQUIRED

    def test_forms_are_not_chained(self):
        state = store.navigate(ClientState(), View.SIGNIN)

        assert store.navigate(state, View.SIGNUP) is state

    def test_navigation_clears_messages(self):
        state = dataclasses.replace(ClientState(), error="boom", notice="yay")

        state = store.navigate(state, View.SIGNIN)

        assert state.error == ""
        assert state.notice == ""

    def test_errors_never_change_view(self):
        state = store.navigate(ClientState(), View.SIGNUP)

        state = store.set_error(state, "Signup failed")

        assert state.view is View.SIGNUP
        assert state.error == "Signup failed"

    def test_my_tab_requires_user(self):
        state = ClientState()

        assert store.select_tab(state, Tab.MY) is state
        assert store.select_tab(signed_in(tab=Tab.ALL), Tab.MY).tab is Tab.MY


class TestAuthTransitions:
    def test_signup_success_goes_to_signin(self):
        state = dataclasses.replace(
            ClientState(view=View.SIGNUP),
            signup_form=SignupForm(name="Alice", email="a@example.com", password="pw"),
        )

        state = store.signup_succeeded(state)

        assert state.view is View.SIGNIN
        assert state.signup_form == SignupForm()
        assert state.notice == "Signup successful! Please login."

    def test_signin_success_shows_my_listings(self):
        state = store.signin_succeeded(ClientState(view=View.SIGNIN), USER)

        assert state.user == USER
        assert state.view is View.DASHBOARD
        assert state.tab is Tab.MY

    def test_signout_clears_everything(self):
        state = signed_in(listings=(BIKE,), dashboard_listings=(TENT,), generation=4)

        state = store.signed_out(state)

        assert state.user is None
        assert state.listings == ()
        assert state.dashboard_listings == ()
        assert state.view is View.DASHBOARD
        assert state.tab is Tab.ALL
        assert state.generation == 5


class TestListingForm:
    def test_listing_created_resets_form_and_releases_image(self):
        form = ListingForm(name="Bike", description="Fast", payment_per_day="100").attach_image(
            b"data", "bike.jpg", "file-1"
        )
        state = signed_in(view=View.CREATE, listing_form=form)

        state = store.listing_created(state)

        assert state.listing_form == ListingForm()
        assert not state.listing_form.has_image
        assert state.view is View.DASHBOARD
        assert state.tab is Tab.MY
        assert state.notice == "Listing created!"

    def test_cancel_form_returns_to_dashboard(self):
        state = signed_in(view=View.CREATE, listing_form=ListingForm(name="Bike"), listings=(BIKE,))

        state = store.cancel_form(state)

        assert state.view is View.DASHBOARD
        assert state.listing_form == ListingForm()
        assert state.listings == (BIKE,)

    def test_form_cleared_empties_active_form(self):
        state = dataclasses.replace(
            ClientState(view=View.SIGNUP),
            signup_form=SignupForm(name="Alice", email="a@example.com", password="pw"),
        )

        state = store.form_cleared(state)

        assert state.signup_form == SignupForm()

    def test_update_form_routes_by_type(self):
        state = store.update_form(ClientState(), SignupForm(name="Alice"))

        assert state.signup_form.name == "Alice"


class TestFetchFencing:
    def test_begin_fetch_bumps_generation(self):
        state, token = store.begin_fetch(dataclasses.replace(ClientState(), error="old"))

        assert token == 1
        assert state.generation == 1
        assert state.error == ""

    def test_current_response_is_applied(self):
        state, token = store.begin_fetch(ClientState())

        state = store.listings_loaded(state, (BIKE, BIKE), token)

        assert state.listings == (BIKE, BIKE)

    def test_stale_response_is_dropped(self):
        state, first = store.begin_fetch(ClientState())
        state, second = store.begin_fetch(state)

        after_stale = store.listings_loaded(state, (BIKE,), first)
        after_fresh = store.listings_loaded(after_stale, (TENT,), second)

        assert after_stale.listings == ()
        assert after_fresh.listings == (TENT,)

    def test_response_after_signout_is_dropped(self):
        state, token = store.begin_fetch(signed_in())
        state = store.signed_out(state)

        state = store.dashboard_listings_loaded(state, (BIKE,), token)

        assert state.dashboard_listings == ()

    def test_stale_failure_is_dropped(self):
        state, first = store.begin_fetch(ClientState())
        state, _ = store.begin_fetch(state)

        assert store.fetch_failed(state, "Could not load listings.", first).error == ""

    def test_fetch_target(self):
        assert store.fetch_target(ClientState()) is Tab.ALL
        assert store.fetch_target(signed_in()) is Tab.MY
        assert store.fetch_target(ClientState(tab=Tab.MY)) is None
        assert store.fetch_target(ClientState(view=View.SIGNIN)) is None

    def test_visible_listings(self):
        state = signed_in(listings=(BIKE,), dashboard_listings=(TENT,))

        assert store.visible_listings(state) == (TENT,)
        assert store.visible_listings(dataclasses.replace(state, tab=Tab.ALL)) == (BIKE,)
        assert store.visible_listings(ClientState(tab=Tab.MY, dashboard_listings=(TENT,))) == ()
