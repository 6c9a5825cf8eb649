import logging
from pathlib import Path

import messages


class PartyInfo:
    """Optional informational text and picture about the event."""

    def __init__(self, text_path=None, image_path=None):
        self.text_path = Path(text_path) if text_path else None
        self.image_path = Path(image_path) if image_path else None

    def _read_text(self):
        if not self.text_path or not self.text_path.is_file():
            return None
        try:
            content = self.text_path.read_text(encoding="utf-8")
        except OSError as e:
            logging.error(f"Failed to read party info {self.text_path}: {e}")
            return None
        return content if content.strip() else None

    def has_image(self):
        return bool(self.image_path and self.image_path.is_file())

    def available(self):
        return self._read_text() is not None or self.has_image()

    async def send(self, bot, chat_id, lang):
        if self.has_image():
            with self.image_path.open("rb") as photo:
                await bot.send_photo(chat_id, photo=photo)
        content = self._read_text()
        if content is None:
            await bot.send_message(chat_id, messages.text(messages.PARTY_INFO_UNAVAILABLE, lang))
            return
        await bot.send_message(chat_id, content)
