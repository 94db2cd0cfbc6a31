"""
Filters for bot handlers
"""
from typing import Union

from aiogram.filters import Filter
from aiogram.types import CallbackQuery, Message

from services.session import SessionRegistry
from services.store import View


class InView(Filter):
    """Filter to check which screen the chat's session is on"""

    def __init__(self, registry: SessionRegistry, *views: View) -> None:
        self._registry = registry
        self._views = frozenset(View(view) for view in views)

    async def __call__(self, event: Union[Message, CallbackQuery]) -> bool:
        """
        Check if the chat has a session showing one of the views

        Args:
            event: Message or CallbackQuery event

        Returns:
            True if the session's current view matches, False otherwise
        """
        message = event.message if isinstance(event, CallbackQuery) else event
        if message is None:
            return False
        chat_id = message.chat.id
        if chat_id not in self._registry:
            return False
        return self._registry.get(chat_id).state.view in self._views
