"""Telegram command handlers for the bot."""
from __future__ import annotations

import logging
import posixpath
from html import escape
from typing import Dict

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import KICKED, ChatMemberUpdatedFilter, Command, CommandStart
from aiogram.types import BufferedInputFile, CallbackQuery, ChatMemberUpdated, ErrorEvent, Message

from bot.filters import InView
from bot.views import Screen, render
from config import settings
from services.api import RentXClient
from services.session import Session, SessionRegistry
from services.store import FORM_VIEWS, Tab, View

logger = logging.getLogger(__name__)
router = Router()
client = RentXClient()
sessions = SessionRegistry(client)

GENERIC_ERROR = "Something went wrong. Please try again."

_screen_refs: Dict[int, int] = {}


def _register_screen(chat_id: int, message: Message) -> None:
    _screen_refs[chat_id] = message.message_id


def _build_screen(session: Session) -> Screen:
    return render(session.state, currency=settings.CURRENCY_SYMBOL)


async def _delete_message_safe(bot: Bot, chat_id: int | None, message_id: int | None) -> None:
    if chat_id is None or message_id is None:
        return
    try:
        await bot.delete_message(chat_id, message_id)
    except TelegramBadRequest:
        logger.debug("Message %s in chat %s already gone", message_id, chat_id)


async def _send_screen(bot: Bot, session: Session) -> None:
    """Replace the chat's screen message with a freshly sent one."""
    chat_id = session.chat_id
    await _delete_message_safe(bot, chat_id, _screen_refs.pop(chat_id, None))
    screen = _build_screen(session)
    sent = await bot.send_message(
        chat_id=chat_id,
        text=screen.text,
        reply_markup=screen.keyboard,
        disable_web_page_preview=True,
    )
    _register_screen(chat_id, sent)


async def _show(bot: Bot, session: Session) -> None:
    """Re-render the session, editing the last screen message when possible."""
    chat_id = session.chat_id
    message_id = _screen_refs.get(chat_id)
    if message_id is None:
        await _send_screen(bot, session)
        return

    screen = _build_screen(session)
    try:
        await bot.edit_message_text(
            chat_id=chat_id,
            message_id=message_id,
            text=screen.text,
            reply_markup=screen.keyboard,
            disable_web_page_preview=True,
        )
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc).lower():
            return
        logger.debug("Could not edit screen in chat %s: %s", chat_id, exc)
        await _send_screen(bot, session)


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """
    Handler for /start command

    Args:
        message: Incoming message
    """
    chat_id = message.chat.id
    logger.info("Chat %s opened the client", chat_id)

    session = sessions.get(chat_id)
    if session.state.view in FORM_VIEWS:
        await session.cancel()
    else:
        await session.refresh()
    await _send_screen(message.bot, session)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message) -> None:
    session = sessions.get(message.chat.id)
    await session.cancel()
    await _send_screen(message.bot, session)


@router.message(Command("signout"))
async def cmd_signout(message: Message) -> None:
    session = sessions.get(message.chat.id)
    session.signout()
    await session.refresh()
    await _send_screen(message.bot, session)


@router.callback_query(F.data.startswith("nav:"))
async def nav_callback(call: CallbackQuery) -> None:
    """Navigation buttons on the dashboard."""
    if call.message is None:
        await call.answer()
        return
    try:
        view = View(call.data.split(":", 1)[1])
    except ValueError:
        await call.answer("Unknown screen", show_alert=True)
        return

    session = sessions.get(call.message.chat.id)
    _register_screen(session.chat_id, call.message)
    await call.answer()
    await session.navigate(view)
    await _show(call.bot, session)


@router.callback_query(F.data.startswith("tab:"))
async def tab_callback(call: CallbackQuery) -> None:
    if call.message is None:
        await call.answer()
        return
    try:
        tab = Tab(call.data.split(":", 1)[1])
    except ValueError:
        await call.answer("Unknown tab", show_alert=True)
        return

    session = sessions.get(call.message.chat.id)
    _register_screen(session.chat_id, call.message)
    await call.answer()
    await session.select_tab(tab)
    await _show(call.bot, session)


@router.callback_query(F.data.startswith("act:"))
async def action_callback(call: CallbackQuery) -> None:
    """Buttons that act on the current screen."""
    if call.message is None:
        await call.answer()
        return

    action = call.data.split(":", 1)[1]
    session = sessions.get(call.message.chat.id)
    _register_screen(session.chat_id, call.message)

    if action == "preview":
        file_id = session.state.listing_form.preview_file_id
        await call.answer()
        if file_id:
            await call.message.answer_photo(file_id, caption="Preview")
        return

    await call.answer()
    if action == "refresh":
        await session.refresh()
    elif action == "signout":
        session.signout()
        await session.refresh()
    elif action == "cancel":
        await session.cancel()
    elif action == "submit":
        await session.submit()
    elif action == "clear":
        await session.clear_form()
    else:
        logger.debug("Ignoring unknown action %r", action)
        return
    await _show(call.bot, session)


@router.callback_query(F.data.startswith("img:"))
async def image_callback(call: CallbackQuery) -> None:
    """Send the photo of a listing shown on the dashboard."""
    if call.message is None:
        await call.answer()
        return
    listing_id = call.data.split(":", 1)[1]
    if not listing_id:
        await call.answer("Unknown listing", show_alert=True)
        return

    session = sessions.get(call.message.chat.id)
    result = await session.load_image(listing_id)
    if result is None:
        await call.answer("Image unavailable")
        return

    listing, data = result
    await call.answer()
    filename = posixpath.basename(listing.image or "") or "image.jpg"
    await call.message.answer_photo(
        BufferedInputFile(data, filename=filename),
        caption=f"<b>{escape(listing.name or '')}</b>",
    )


@router.message(InView(sessions, View.CREATE), F.photo)
async def photo_input(message: Message) -> None:
    """Attach a photo to the listing being created."""
    session = sessions.get(message.chat.id)
    photo = message.photo[-1]
    buffer = await message.bot.download(photo)
    await session.attach_image(
        buffer.getvalue(),
        filename=f"{photo.file_unique_id}.jpg",
        preview_file_id=photo.file_id,
    )
    await _show(message.bot, session)


@router.message(InView(sessions, View.CREATE), F.document.mime_type.startswith("image/"))
async def image_document_input(message: Message) -> None:
    """Attach an image sent as a file, keeping its original name."""
    session = sessions.get(message.chat.id)
    document = message.document
    buffer = await message.bot.download(document)
    await session.attach_image(
        buffer.getvalue(),
        filename=document.file_name or f"{document.file_unique_id}.jpg",
    )
    await _show(message.bot, session)


@router.message(InView(sessions, *FORM_VIEWS), F.text)
async def form_input(message: Message) -> None:
    """Feed plain text into the next empty field of the active form."""
    session = sessions.get(message.chat.id)
    await session.submit_field(message.text)
    # typed values (passwords included) do not stay in the chat history
    await _delete_message_safe(message.bot, message.chat.id, message.message_id)
    await _show(message.bot, session)


@router.my_chat_member(ChatMemberUpdatedFilter(member_status_changed=KICKED))
async def bot_blocked(event: ChatMemberUpdated) -> None:
    """Forget a chat that blocked the bot; /start recreates its session."""
    chat_id = event.chat.id
    sessions.drop(chat_id)
    _screen_refs.pop(chat_id, None)
    logger.info("Chat %s blocked the bot, session dropped", chat_id)


@router.errors()
async def on_error(event: ErrorEvent) -> bool:
    """Log unexpected failures and tell the user the action stopped."""
    logger.error("Unhandled error while processing update", exc_info=event.exception)

    update = event.update
    message = update.message
    if message is None and update.callback_query is not None:
        message = update.callback_query.message
    if message is not None:
        try:
            await message.answer(f"❌ {GENERIC_ERROR}")
        except TelegramBadRequest:
            logger.debug("Could not report error to chat %s", message.chat.id)
    return True


async def shutdown() -> None:
    """Release the HTTP session used for backend calls."""
    await client.close()
