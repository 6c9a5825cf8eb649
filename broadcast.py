import asyncio
import logging
from dataclasses import dataclass


@dataclass
class BroadcastResult:
    sent: int = 0
    failed: int = 0


def collect_recipients(log) -> list:
    """Chats to reach: every active guest, plus +1s whose handle belongs to a known chat."""
    recipients = []
    seen = set()

    def add(chat_id):
        if chat_id not in seen:
            seen.add(chat_id)
            recipients.append(chat_id)

    active = log.active()
    for record in active:
        add(record.chat_id)
    for record in active:
        if not record.avec_username:
            continue
        chat_id = log.handle_chats.get(record.avec_username.lower())
        if chat_id is not None:
            add(chat_id)
    return recipients


async def broadcast(bot, recipients, from_chat_id, message_id, delay=0.04) -> BroadcastResult:
    result = BroadcastResult()
    for chat_id in recipients:
        try:
            await bot.copy_message(chat_id=chat_id, from_chat_id=from_chat_id, message_id=message_id)
        except Exception as e:
            logging.error(f"Failed to deliver broadcast to {chat_id}: {e}")
            result.failed += 1
            continue
        result.sent += 1
        if delay:
            await asyncio.sleep(delay)
    logging.info(f"Broadcast finished: sent={result.sent}, failed={result.failed}")
    return result
