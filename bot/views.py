"""Rendering of client state into Telegram screens."""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from models import Listing
from services.store import ClientState, Tab, View, visible_listings

TELEGRAM_MAX_LENGTH = 4096
MAX_PHOTO_BUTTONS = 24
MAX_CALLBACK_DATA = 64
MAX_FIELD_LENGTH = 300
MAX_MESSAGE_LENGTH = 1000
MAX_DESCRIPTION_LENGTH = 600
TITLE = "🏠 <b>RentX MVP</b>"


FORM_TITLES = {
    View.SIGNUP: "Sign Up",
    View.SIGNIN: "Sign In",
    View.CREATE: "Create Listing",
}


@dataclass(frozen=True, slots=True)
class Screen:
    text: str
    keyboard: InlineKeyboardMarkup


def _button(text: str, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=data)


def clip(text: str, limit: int) -> str:
    """Shorten ``text`` to at most ``limit`` characters, marking the cut with ``…``."""
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def fit_message(text: str, limit: int = TELEGRAM_MAX_LENGTH) -> str:
    """Cut ``text`` at a line break so it stays within ``limit``.

    Lines are never split, so HTML tags opened on a line stay balanced.
    """
    if len(text) <= limit:
        return text
    cut = text.rfind("\n", 0, limit - 1)
    return text[:cut if cut > 0 else 0] + "…"


def _status_lines(state: ClientState) -> list[str]:
    lines = []
    if state.error:
        lines.append(f"❌ <b>Error:</b> {escape(clip(state.error, MAX_MESSAGE_LENGTH))}")
    if state.notice:
        lines.append(f"✅ {escape(clip(state.notice, MAX_MESSAGE_LENGTH))}")
    return lines


def format_listing(listing: Listing, currency: str) -> str:
    name = escape(clip(listing.name or "", MAX_FIELD_LENGTH))
    description = escape(clip(listing.description or "", MAX_DESCRIPTION_LENGTH))
    payment = escape(clip(listing.payment_per_day or "", MAX_FIELD_LENGTH))
    return (
        f"<b>{name}</b>\n"
        f"{description}\n"
        f"💰 Payment/day: {escape(currency)}{payment}"
    )


def _more_tail(count: int) -> str:
    return f"\n\n<i>…and {count} more</i>"


def _fit_listings(head: str, blocks: Sequence[str], limit: int = TELEGRAM_MAX_LENGTH) -> str:
    """Join listing blocks under ``head`` without passing Telegram's limit."""
    text = head
    for index, block in enumerate(blocks):
        candidate = f"{text}\n\n{block}"
        left_after = len(blocks) - index - 1
        reserve = len(_more_tail(left_after)) if left_after else 0
        if len(candidate) + reserve > limit:
            return text + _more_tail(len(blocks) - index)
        text = candidate
    return text


def _dashboard_keyboard(state: ClientState, listings: Sequence[Listing]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    def tab_label(tab: Tab, label: str) -> str:
        return f"• {label} •" if state.tab is tab else label

    tabs = [_button(tab_label(Tab.ALL, "All Listings"), "tab:all")]
    if state.signed_in:
        tabs.append(_button(tab_label(Tab.MY, "My Listings"), "tab:my"))
    builder.row(*tabs)

    photo_buttons = [
        _button(f"🖼 {index + 1}", f"img:{listing.id}")
        for index, listing in enumerate(listings[:MAX_PHOTO_BUTTONS])
        if listing.image and listing.id
        and len(f"img:{listing.id}".encode()) <= MAX_CALLBACK_DATA
    ]
    for start in range(0, len(photo_buttons), 6):
        builder.row(*photo_buttons[start:start + 6])

    if state.signed_in:
        builder.row(
            _button("➕ Create Listing", "nav:create"),
            _button("🚪 Sign Out", "act:signout"),
        )
    else:
        builder.row(
            _button("🔑 Sign In", "nav:signin"),
            _button("📝 Sign Up", "nav:signup"),
        )
    builder.row(_button("🔄 Refresh", "act:refresh"))
    return builder.as_markup()


def render_dashboard(state: ClientState, currency: str) -> Screen:
    header = [TITLE]
    if state.user is not None:
        header.append(f"👤 {escape(clip(state.user.email, MAX_FIELD_LENGTH))}")
    header.extend(_status_lines(state))

    listings = visible_listings(state)
    if state.tab is Tab.ALL:
        heading = "<b>All Listings</b>"
        empty = "No listings found."
    else:
        heading = "<b>My Listings</b>"
        empty = "You have no listings yet."

    head = "\n".join(header) + "\n\n" + heading
    if state.tab is Tab.MY and not state.signed_in:
        text = head
    elif not listings:
        text = f"{head}\n\n<i>{empty}</i>"
    else:
        blocks = [
            f"{index + 1}. {format_listing(listing, currency)}"
            for index, listing in enumerate(listings)
        ]
        text = _fit_listings(head, blocks)

    return Screen(text=text, keyboard=_dashboard_keyboard(state, listings))


def render_form(state: ClientState) -> Screen:
    form = state.active_form()
    lines = [TITLE, "", f"📝 <b>{FORM_TITLES[state.view]}</b>"]
    lines.extend(_status_lines(state))
    lines.append("")

    for field, value in form.filled():
        shown = clip("•" * len(value) if field.secret else value, MAX_FIELD_LENGTH)
        lines.append(f"{field.label}: {escape(shown)}")

    builder = InlineKeyboardBuilder()
    pending = form.next_field()
    waiting_for_photo = state.view is View.CREATE and not form.has_image

    if state.view is View.CREATE and form.has_image:
        lines.append(f"Image: {escape(clip(form.image_name or 'photo', MAX_FIELD_LENGTH))} ✅")
        if form.preview_file_id:
            builder.row(_button("👁 Preview", "act:preview"))

    if pending is not None:
        lines.append("")
        lines.append(f"➡️ Send <b>{escape(pending.label)}</b>")
    elif waiting_for_photo:
        lines.append("")
        lines.append("📷 Send a photo of the item")

    if state.view is View.CREATE and pending is not None and not form.has_image:
        lines.append("<i>You can send the photo at any time.</i>")

    if pending is None:
        builder.row(
            _button("✅ Submit", "act:submit"),
            _button("🧹 Start over", "act:clear"),
        )
    builder.row(_button("✖️ Cancel", "act:cancel"))
    return Screen(text="\n".join(lines), keyboard=builder.as_markup())


def render(state: ClientState, currency: str = "৳") -> Screen:
    """Screen for the current view, never longer than Telegram allows."""
    if state.view is View.DASHBOARD:
        screen = render_dashboard(state, currency)
    else:
        screen = render_form(state)
    return Screen(text=fit_message(screen.text), keyboard=screen.keyboard)


__all__ = [
    "Screen",
    "TELEGRAM_MAX_LENGTH",
    "clip",
    "fit_message",
    "format_listing",
    "render",
    "render_dashboard",
    "render_form",
]
