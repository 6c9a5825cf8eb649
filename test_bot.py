import unittest
import tempfile
import os
from unittest.mock import MagicMock, AsyncMock
from auth import Authorizer
from bot import (
    avec,
    broadcast_command,
    export_command,
    group_admins_command,
    info,
    remove_me,
    start,
    text_message,
    track_update,
    whoami,
)
from config import Config
from flow import RegistrationFlow
from group_admins import GroupAdminStore
from info import PartyInfo
from models import GuestRecord, GuestStatus, SessionStore, Step
from repository import GuestRepository
import messages

GROUP = -1001234567890
ADMIN_ID = 1


class BotTestCase(unittest.IsolatedAsyncioTestCase):
    """Real stores on a temp dir, a mocked Telegram bot."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.repo = GuestRepository(os.path.join(self.tmp.name, "rsvps.jsonl"))
        self.group_admins = GroupAdminStore(os.path.join(self.tmp.name, "group_admins.json"))
        self.auth = Authorizer(GROUP, self.group_admins, admin_user_id=ADMIN_ID)
        self.sessions = SessionStore()

        self.bot = MagicMock()
        self.bot.send_message = AsyncMock()
        self.bot.send_document = AsyncMock()
        self.bot.send_photo = AsyncMock()
        self.bot.copy_message = AsyncMock()

        self.tasks = []
        self.context = MagicMock()
        self.context.bot = self.bot
        self.context.args = []
        self.context.application.create_task = MagicMock(
            side_effect=lambda coro, update=None: self.tasks.append(coro)
        )
        self.context.bot_data = {
            "config": Config(bot_token="TOKEN", group_id=GROUP, broadcast_delay=0),
            "repo": self.repo,
            "group_admins": self.group_admins,
            "auth": self.auth,
            "party_info": PartyInfo(),
            "sessions": self.sessions,
            "flow": RegistrationFlow(self.bot, self.repo, self.auth, PartyInfo()),
        }

    def tearDown(self):
        for coro in self.tasks:
            coro.close()
        self.tmp.cleanup()

    def make_update(self, text="", chat_id=10, user_id=100, username="alice_a", chat_type="private"):
        update = MagicMock()
        update.effective_chat.id = chat_id
        update.effective_chat.type = chat_type
        update.effective_user.id = user_id
        update.effective_user.username = username
        update.message.text = text
        update.message.reply_text = AsyncMock()
        update.message.reply_to_message = None
        return update

    async def deliver(self, handler, update):
        await track_update(update, self.context)
        await handler(update, self.context)

    def replies(self, update):
        return [c.args[0] for c in update.message.reply_text.await_args_list]

    def sent_texts(self):
        return [c.args[1] for c in self.bot.send_message.await_args_list]


class TestBot(BotTestCase):
    async def test_full_signup_through_handlers(self):
        await self.deliver(start, self.make_update("/start"))
        for answer in ["en", "Sign up", "Alice Anderson", "no"]:
            await self.deliver(text_message, self.make_update(answer))

        record = await self.repo.latest_for(100, 10)
        self.assertEqual(record.full_name, "Alice Anderson")
        self.assertEqual(record.telegram_username, "alice_a")
        self.assertEqual(self.sessions.get(10).step, Step.COMPLETED)

    async def test_remove_signup_button_signs_out(self):
        await self.deliver(start, self.make_update("/start"))
        for answer in ["en", "Sign up", "Alice Anderson", "no", "Remove signup"]:
            await self.deliver(text_message, self.make_update(answer))

        record = await self.repo.latest_for(100, 10)
        self.assertEqual(record.status, GuestStatus.DELETED)
        self.assertIn(messages.SIGNUP_REMOVED["en"], self.sent_texts())

    async def test_removeme_before_signup(self):
        update = self.make_update("/removeme")
        await self.deliver(remove_me, update)
        self.assertEqual(self.replies(update), [messages.FINISH_SIGNUP_FIRST["en"]])
        self.assertIsNone(await self.repo.latest_for(100, 10))

    async def test_avec_command_before_signup(self):
        await self.deliver(avec, self.make_update("/avec"))
        self.assertEqual(self.sent_texts(), [messages.FINISH_SIGNUP_FIRST["en"]])

    async def test_info_without_configuration(self):
        await self.deliver(info, self.make_update("/info"))
        self.assertEqual(self.sent_texts(), [messages.PARTY_INFO_UNAVAILABLE["en"]])

    async def test_export_requires_admin(self):
        update = self.make_update("/export")
        await self.deliver(export_command, update)
        self.assertEqual(self.replies(update), [messages.NOT_AUTHORIZED_COMMAND["en"]])
        self.bot.send_document.assert_not_awaited()

    async def test_export_sends_csv_to_admin(self):
        await self.repo.append(GuestRecord(10, 100, self.repo.now(), "en", "Alice Anderson"))

        await self.deliver(export_command, self.make_update("/export", chat_id=ADMIN_ID, user_id=ADMIN_ID))

        self.bot.send_document.assert_awaited_once()
        kwargs = self.bot.send_document.await_args.kwargs
        self.assertTrue(kwargs["filename"].startswith("rsvps-"))
        self.assertTrue(kwargs["filename"].endswith(".csv"))
        self.assertEqual(kwargs["caption"], messages.EXPORT_READY["en"])
        with open(os.path.join(self.tmp.name, kwargs["filename"]), encoding="utf-8") as f:
            self.assertIn("Alice Anderson", f.read())

    async def test_export_button_works_mid_signup(self):
        await self.deliver(start, self.make_update("/start", chat_id=ADMIN_ID, user_id=ADMIN_ID))
        await self.deliver(text_message, self.make_update("Export CSV", chat_id=ADMIN_ID, user_id=ADMIN_ID))
        self.bot.send_document.assert_awaited_once()
        self.assertEqual(self.sessions.get(ADMIN_ID).step, Step.ASK_LANGUAGE)

    async def test_broadcast_needs_reply(self):
        update = self.make_update("/broadcast", chat_id=ADMIN_ID, user_id=ADMIN_ID)
        await self.deliver(broadcast_command, update)
        self.assertEqual(self.replies(update), [messages.BROADCAST_NEEDS_REPLY["en"]])
        self.assertEqual(self.tasks, [])

    async def test_broadcast_button_needs_reply(self):
        update = self.make_update("Broadcast", chat_id=ADMIN_ID, user_id=ADMIN_ID)
        await self.deliver(text_message, update)
        self.assertEqual(self.replies(update), [messages.BROADCAST_NEEDS_REPLY_BUTTON["en"]])

    async def test_broadcast_by_non_admin_is_refused(self):
        update = self.make_update("Broadcast")
        await self.deliver(text_message, update)
        self.assertEqual(self.replies(update), [messages.NOT_AUTHORIZED_OPTION["en"]])
        self.assertEqual(self.tasks, [])

    async def test_broadcast_copies_message_and_reports(self):
        now = self.repo.now()
        await self.repo.append(GuestRecord(10, 100, now, "en", "Alice Anderson"))
        await self.repo.append(GuestRecord(20, 200, now, "en", "Bob Friend"))
        self.bot.copy_message.side_effect = [None, Exception("Forbidden")]

        update = self.make_update("/broadcast", chat_id=ADMIN_ID, user_id=ADMIN_ID)
        update.message.reply_to_message = MagicMock(message_id=55)
        await self.deliver(broadcast_command, update)

        self.assertEqual(len(self.tasks), 1)
        await self.tasks.pop()
        self.bot.copy_message.assert_any_await(chat_id=10, from_chat_id=ADMIN_ID, message_id=55)
        self.assertEqual(self.sent_texts()[-1], "Broadcast done. Sent: 1, failed: 1")

    async def test_whoami(self):
        update = self.make_update("/whoami", chat_id=ADMIN_ID, user_id=ADMIN_ID, username="root_admin")
        await self.deliver(whoami, update)
        self.assertEqual(self.replies(update), ["UserId: 1\nChatId: 1\nUsername: @root_admin"])

    async def test_whoami_refused_for_guest(self):
        update = self.make_update("/whoami")
        await self.deliver(whoami, update)
        self.assertEqual(self.replies(update), [messages.NOT_AUTHORIZED_COMMAND["en"]])


class TestGroupAdminsCommand(BotTestCase):
    async def run_command(self, *args, user_id=ADMIN_ID, chat_type="private"):
        self.context.args = list(args)
        update = self.make_update("/groupadmins", chat_id=user_id, user_id=user_id, chat_type=chat_type)
        await self.deliver(group_admins_command, update)
        return self.replies(update)

    async def test_usage_and_listing(self):
        self.assertEqual(await self.run_command(), [messages.GROUPADMINS_USAGE])
        self.assertEqual(await self.run_command("list"), ["(empty)"])

    async def test_add_and_remove(self):
        self.assertEqual(await self.run_command("add", "42"), ["Added"])
        self.assertEqual(await self.run_command("add", "42"), ["Already present"])
        self.assertEqual(await self.run_command("add", "7"), ["Added"])
        self.assertEqual(await self.run_command("list"), ["7\n42"])
        self.assertEqual(await self.run_command("remove", "42"), ["Removed"])
        self.assertEqual(await self.run_command("remove", "42"), ["Not found"])
        self.assertEqual(await self.group_admins.get_admins(GROUP), {7})

    async def test_bad_arguments(self):
        self.assertEqual(await self.run_command("add"), [messages.GROUPADMINS_USAGE_CHANGE])
        self.assertEqual(await self.run_command("add", "abc"), [messages.GROUPADMINS_USAGE_CHANGE])
        self.assertEqual(await self.run_command("promote", "1"), [messages.GROUPADMINS_INVALID])

    async def test_only_superadmin(self):
        self.assertEqual(await self.run_command("add", "5", user_id=100), ["Not authorized."])
        self.assertEqual(await self.group_admins.list_admins(), {})

    async def test_ignored_outside_private_chat(self):
        self.context.args = ["add", "5"]
        update = self.make_update("/groupadmins", chat_id=GROUP, user_id=ADMIN_ID, chat_type="supergroup")
        await self.deliver(group_admins_command, update)
        update.message.reply_text.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
