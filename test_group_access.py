import unittest
from telegram.ext import ApplicationHandlerStop
from bot import export_command, info, start, text_message, track_update
from test_bot import BotTestCase, GROUP, ADMIN_ID
import messages


class TestGroupAccess(BotTestCase):
    async def test_unknown_group_is_ignored(self):
        update = self.make_update("/start", chat_id=-555, chat_type="group")
        with self.assertRaises(ApplicationHandlerStop):
            await track_update(update, self.context)
        self.assertNotIn(-555, self.sessions)

    async def test_updates_without_message_are_ignored(self):
        update = self.make_update()
        update.message = None
        with self.assertRaises(ApplicationHandlerStop):
            await track_update(update, self.context)

    async def test_configured_group_and_private_chats_pass(self):
        await track_update(self.make_update("hi", chat_id=GROUP, chat_type="supergroup"), self.context)
        await track_update(self.make_update("hi", chat_id=10, user_id=100, username="alice_a"), self.context)

        session = self.sessions.get(10)
        self.assertEqual(session.user_id, 100)
        self.assertEqual(session.username, "alice_a")

    async def test_signup_flow_does_not_run_in_group(self):
        await self.deliver(start, self.make_update("/start", chat_id=GROUP, chat_type="supergroup"))
        await self.deliver(text_message, self.make_update("en", chat_id=GROUP, chat_type="supergroup"))
        self.bot.send_message.assert_not_awaited()

    async def test_info_answers_in_group(self):
        await self.deliver(info, self.make_update("/info", chat_id=GROUP, chat_type="supergroup"))
        self.assertEqual(self.sent_texts(), [messages.PARTY_INFO_UNAVAILABLE["en"]])
        self.assertEqual(self.bot.send_message.await_args.args[0], GROUP)

    async def test_group_admin_can_export_in_group(self):
        await self.group_admins.add_admin(GROUP, 100)
        await self.deliver(export_command, self.make_update("/export", chat_id=GROUP, chat_type="supergroup"))
        self.bot.send_document.assert_awaited_once()
        self.assertEqual(self.bot.send_document.await_args.args[0], GROUP)

    async def test_group_admin_cannot_export_in_private(self):
        await self.group_admins.add_admin(GROUP, 100)
        update = self.make_update("/export")
        await self.deliver(export_command, update)
        self.assertEqual(self.replies(update), [messages.NOT_AUTHORIZED_COMMAND["en"]])

    async def test_plain_member_is_refused_in_group(self):
        update = self.make_update("Export CSV", chat_id=GROUP, user_id=300, chat_type="supergroup")
        await self.deliver(text_message, update)
        self.assertEqual(self.replies(update), [messages.NOT_AUTHORIZED_OPTION["en"]])
        self.bot.send_document.assert_not_awaited()

    async def test_superadmin_exports_anywhere(self):
        await self.deliver(export_command, self.make_update("/export", chat_id=GROUP, user_id=ADMIN_ID,
                                                           chat_type="supergroup"))
        self.bot.send_document.assert_awaited_once()


if __name__ == '__main__':
    unittest.main()
