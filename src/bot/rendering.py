"""Turn core Reply objects into Telegram messages."""

from typing import List, Optional, Sequence, Union

import structlog
from telegram import (
    CallbackQuery,
    ForceReply,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InputFile,
    Message,
)
from telegram.error import BadRequest

from ..conversation.base import Reply

logger = structlog.get_logger()

Markup = Union[InlineKeyboardMarkup, ForceReply, None]


def to_markup(reply: Reply) -> Markup:
    """Inline keyboard if the reply has buttons, else a force-reply if asked."""
    if reply.buttons:
        return InlineKeyboardMarkup(
            [
                [InlineKeyboardButton(b.text, callback_data=b.payload) for b in row]
                for row in reply.buttons
            ]
        )
    if reply.force_reply:
        return ForceReply(input_field_placeholder=reply.placeholder)
    return None


async def send_replies(message: Message, replies: Sequence[Reply]) -> List[Message]:
    """Send each reply into the chat of ``message``."""
    sent = []
    for reply in replies:
        sent.append(await _send(message, reply))
    return sent


async def answer_callback(query: CallbackQuery, replies: Sequence[Reply]) -> None:
    """Render replies to a button press.

    A reply flagged ``edit`` replaces the message carrying the button, as long
    as the new markup is an inline keyboard (Telegram cannot edit a message
    into a force-reply).
    """
    for reply in replies:
        markup = to_markup(reply)
        can_edit = reply.edit and reply.document is None and not isinstance(
            markup, ForceReply
        )
        if can_edit:
            try:
                await query.edit_message_text(
                    reply.text, parse_mode="HTML", reply_markup=markup
                )
                continue
            except BadRequest as e:
                # Identical content or a message too old to edit
                logger.debug("Edit failed, sending instead", error=str(e))
        await _send(query.message, reply)


async def _send(message: Optional[Message], reply: Reply) -> Message:
    if message is None:
        raise ValueError("No message to reply to")
    if reply.document is not None:
        return await message.reply_document(
            document=InputFile(reply.document, filename=reply.filename),
            caption=reply.text,
            parse_mode="HTML",
        )
    return await message.reply_text(
        reply.text,
        parse_mode="HTML",
        reply_markup=to_markup(reply),
    )
