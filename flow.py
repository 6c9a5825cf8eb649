import logging

from telegram import ReplyKeyboardMarkup

import messages
from models import GuestRecord, GuestStatus, Step
from validation import (
    clean_handle,
    is_cancel_avec,
    is_skip,
    looks_like_real_name,
    normalize_handle,
    normalize_language,
    normalize_name,
    parse_yes_no,
)


class RegistrationFlow:
    """Walks one chat at a time through the signup questions.

    The session says where the chat is; each on_* handler validates one
    answer, re-prompts when it is not usable, and otherwise moves the
    session on. save_and_confirm and sign_out are the only writers.
    """

    def __init__(self, bot, repo, auth, party_info):
        self.bot = bot
        self.repo = repo
        self.auth = auth
        self.party_info = party_info

    async def _send(self, chat_id, entry, lang, reply_markup=None, **kwargs):
        await self.bot.send_message(chat_id, messages.text(entry, lang, **kwargs), reply_markup=reply_markup)

    def _is_super_admin(self, session):
        return self.auth.is_super_admin(session.user_id, session.username)

    # Menus

    async def ask_language(self, chat_id, session, retry=False):
        rows = [["fi", "en"]]
        if self._is_super_admin(session):
            rows.append([messages.broadcast_label(session.lang)])
        keyboard = ReplyKeyboardMarkup(rows, resize_keyboard=True, one_time_keyboard=True)
        prompt = messages.CHOOSE_LANGUAGE_AGAIN if retry else messages.CHOOSE_LANGUAGE
        await self.bot.send_message(chat_id, prompt, reply_markup=keyboard)

    async def send_action_menu(self, chat_id, session):
        sign_up, info = messages.action_labels(session.lang)
        first_row = [sign_up]
        if self.party_info.available():
            first_row.append(info)
        rows = [first_row]
        if self._is_super_admin(session):
            rows.append([messages.export_label(session.lang), messages.broadcast_label(session.lang)])
        keyboard = ReplyKeyboardMarkup(rows, resize_keyboard=True, one_time_keyboard=False)
        await self._send(chat_id, messages.WHAT_TO_DO, session.lang, keyboard)

    async def send_completed_menu(self, chat_id, session):
        change_avec, remove_signup = messages.completed_menu_labels(session.lang)
        row = [change_avec, remove_signup]
        if self._is_super_admin(session):
            row += [messages.export_label(session.lang), messages.broadcast_label(session.lang)]
        keyboard = ReplyKeyboardMarkup([row, ["/start"]], resize_keyboard=True, one_time_keyboard=False)
        await self._send(chat_id, messages.SIGNED_UP_MENU, session.lang, keyboard)

    # Entry points

    async def start(self, chat_id, session):
        latest = await self.repo.latest_for(session.user_id or 0, chat_id)
        if latest is not None and latest.is_active:
            if session.step != Step.COMPLETED or not _session_matches(session, latest):
                logging.info(f"Restoring signup of chat {chat_id} from the guest log")
                session.restore(latest)
            await self.send_completed_menu(chat_id, session)
            return

        session.reset()
        await self.ask_language(chat_id, session)

    async def begin_change_avec(self, chat_id, session):
        if session.step != Step.COMPLETED:
            await self._send(chat_id, messages.FINISH_SIGNUP_FIRST, session.lang)
            return
        session.step = Step.CHANGE_AVEC_NAME
        await self._send(chat_id, messages.ASK_CHANGE_AVEC, session.lang)

    async def dispatch(self, chat_id, session, text):
        handlers = {
            Step.ASK_LANGUAGE: self.on_language,
            Step.ASK_ACTION: self.on_action,
            Step.ASK_FULL_NAME: self.on_full_name,
            Step.ASK_PLUS_ONE: self.on_plus_one,
            Step.ASK_AVEC_NAME: self.on_avec_name,
            Step.ASK_AVEC_HANDLE: self.on_avec_handle,
            Step.CHANGE_AVEC_NAME: self.on_change_avec_name,
            Step.CHANGE_AVEC_HANDLE: self.on_change_avec_handle,
        }
        handler = handlers.get(session.step)
        if handler is None:
            await self.send_completed_menu(chat_id, session)
            return
        await handler(chat_id, session, text)

    # Steps

    async def on_language(self, chat_id, session, text):
        lang = normalize_language(text)
        if lang is None:
            await self.ask_language(chat_id, session, retry=True)
            return
        session.language = lang
        session.step = Step.ASK_ACTION
        await self.send_action_menu(chat_id, session)

    async def on_action(self, chat_id, session, text):
        if messages.is_action_sign_up(session.lang, text):
            session.step = Step.ASK_FULL_NAME
            await self._send(chat_id, messages.ASK_FULL_NAME, session.lang)
            return
        if messages.is_action_party_info(session.lang, text) and self.party_info.available():
            await self.party_info.send(self.bot, chat_id, session.lang)
        await self.send_action_menu(chat_id, session)

    async def on_full_name(self, chat_id, session, text):
        if not looks_like_real_name(text):
            await self._send(chat_id, messages.INVALID_FULL_NAME, session.lang)
            return
        session.full_name = normalize_name(text)
        session.step = Step.ASK_PLUS_ONE
        keyboard = ReplyKeyboardMarkup(
            [list(messages.YES_NO.get(session.lang, messages.YES_NO["en"]))],
            resize_keyboard=True,
            one_time_keyboard=True,
        )
        await self._send(chat_id, messages.ASK_PLUS_ONE, session.lang, keyboard)

    async def on_plus_one(self, chat_id, session, text):
        yes = parse_yes_no(session.lang, text)
        if yes is None:
            await self._send(chat_id, messages.INVALID_YES_NO, session.lang)
            return
        session.wants_plus_one = yes
        if not yes:
            await self.save_and_confirm(chat_id, session)
            return
        session.step = Step.ASK_AVEC_NAME
        await self._send(chat_id, messages.ASK_AVEC_NAME, session.lang)

    async def on_avec_name(self, chat_id, session, text):
        await self._avec_name(chat_id, session, text, Step.ASK_AVEC_HANDLE, messages.INVALID_AVEC_NAME)

    async def on_change_avec_name(self, chat_id, session, text):
        await self._avec_name(chat_id, session, text, Step.CHANGE_AVEC_HANDLE, messages.INVALID_CHANGE_AVEC_NAME)

    async def _avec_name(self, chat_id, session, text, next_step, invalid):
        if is_cancel_avec(session.lang, text):
            session.clear_avec()
            await self.save_and_confirm(chat_id, session)
            return
        if not looks_like_real_name(text):
            await self._send(chat_id, invalid, session.lang)
            return
        session.wants_plus_one = True
        session.avec_full_name = normalize_name(text)
        session.step = next_step
        await self._send(chat_id, messages.ASK_AVEC_HANDLE, session.lang)

    async def on_avec_handle(self, chat_id, session, text):
        await self._avec_handle(chat_id, session, text)

    async def on_change_avec_handle(self, chat_id, session, text):
        await self._avec_handle(chat_id, session, text)

    async def _avec_handle(self, chat_id, session, text):
        if is_skip(text):
            session.avec_username = None
            await self.save_and_confirm(chat_id, session)
            return
        handle = normalize_handle(text)
        if handle is None:
            await self._send(chat_id, messages.INVALID_HANDLE, session.lang)
            return
        session.avec_username = handle
        await self.save_and_confirm(chat_id, session)

    async def on_contact(self, chat_id, session, first_name, last_name=None):
        """Use a shared contact card as the +1 name. Returns False when not asked for one."""
        next_steps = {
            Step.ASK_AVEC_NAME: Step.ASK_AVEC_HANDLE,
            Step.CHANGE_AVEC_NAME: Step.CHANGE_AVEC_HANDLE,
        }
        if session.step not in next_steps:
            return False
        full_name = f"{first_name or ''} {last_name or ''}".strip()
        session.wants_plus_one = True
        session.avec_full_name = normalize_name(full_name)
        session.step = next_steps[session.step]
        await self._send(chat_id, messages.ASK_AVEC_HANDLE, session.lang)
        return True

    # Writers

    async def save_and_confirm(self, chat_id, session):
        session.step = Step.COMPLETED
        record = GuestRecord(
            chat_id=chat_id,
            user_id=session.user_id or 0,
            timestamp=self.repo.now(),
            language=session.lang,
            full_name=session.full_name or "",
            avec_full_name=session.avec_full_name if session.wants_plus_one else None,
            telegram_username=session.username,
            avec_username=session.avec_username if session.wants_plus_one else None,
            status=GuestStatus.ACTIVE,
        )
        await self.repo.append(record)
        logging.info(f"Saved signup for chat {chat_id} (user {record.user_id}), avec={bool(record.avec_full_name)}")

        # Someone may have named this guest as their +1; a guest cannot be both.
        own_handle = clean_handle(session.username)
        if own_handle:
            await self.repo.remove_avec_by_handle(own_handle)

        await self._send(
            chat_id,
            messages.SIGNUP_SAVED,
            session.lang,
            name=record.full_name,
            avec=record.avec_full_name or messages.NO_AVEC,
            language=record.language,
        )
        await self.send_completed_menu(chat_id, session)

    async def sign_out(self, chat_id, session):
        record = GuestRecord(
            chat_id=chat_id,
            user_id=session.user_id or 0,
            timestamp=self.repo.now(),
            language=session.lang,
            full_name=session.full_name or "",
            telegram_username=session.username,
            status=GuestStatus.DELETED,
        )
        await self.repo.append(record)
        logging.info(f"Removed signup for chat {chat_id} (user {record.user_id})")

        await self._send(chat_id, messages.SIGNUP_REMOVED, session.lang)
        session.step = Step.COMPLETED
        session.clear_avec()
        keyboard = ReplyKeyboardMarkup([["/start"]], resize_keyboard=True, one_time_keyboard=False)
        await self._send(chat_id, messages.START_OVER, session.lang, keyboard)


def _session_matches(session, record):
    return (
        session.full_name == record.full_name
        and session.language == record.language
        and (session.avec_full_name if session.wants_plus_one else None) == record.avec_full_name
    )
