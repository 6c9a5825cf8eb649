import logging

from telegram import BotCommand, Update
from telegram.ext import (
    ApplicationBuilder,
    ApplicationHandlerStop,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    TypeHandler,
    filters,
)

import messages
from auth import Authorizer
from broadcast import broadcast, collect_recipients
from config import load_config
from export import export_filename, write_csv
from flow import RegistrationFlow
from group_admins import GroupAdminStore
from info import PartyInfo
from models import SessionStore, Step
from repository import GuestRepository

# Enable logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)


def get_session(update: Update, context: ContextTypes.DEFAULT_TYPE):
    return context.bot_data["sessions"].get_or_create(update.effective_chat.id)


def is_private(update: Update):
    return update.effective_chat.type == "private"


async def is_admin(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user = update.effective_user
    return await context.bot_data["auth"].is_admin(
        user.id if user else None,
        user.username if user else None,
        update.effective_chat.id,
        is_private(update),
    )


async def reply(update: Update, entry, lang, **kwargs):
    await update.message.reply_text(messages.text(entry, lang, **kwargs))


async def track_update(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Runs before every other handler: filters chats and records who is talking."""
    if update.message is None or update.effective_chat is None:
        raise ApplicationHandlerStop

    chat = update.effective_chat
    if not context.bot_data["auth"].allows_chat(chat.id, is_private(update)):
        logging.debug(f"Ignoring update from chat {chat.id}")
        raise ApplicationHandlerStop

    session = get_session(update, context)
    if update.effective_user:
        session.user_id = update.effective_user.id
        session.username = update.effective_user.username


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        return
    session = get_session(update, context)
    await context.bot_data["flow"].start(update.effective_chat.id, session)


async def export_and_send(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    repo = context.bot_data["repo"]
    log = await repo.replay()
    output_path = repo.path.parent / export_filename()
    rows = write_csv(log.active(), output_path)
    logging.info(f"Exported {rows} guest(s) to {output_path} for user {session.user_id}")
    with output_path.open("rb") as document:
        await context.bot.send_document(
            update.effective_chat.id,
            document=document,
            filename=output_path.name,
            caption=messages.text(messages.EXPORT_READY, session.lang),
        )


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    if not await is_admin(update, context):
        await reply(update, messages.NOT_AUTHORIZED_COMMAND, session.lang)
        return
    await export_and_send(update, context)


async def run_broadcast(context: ContextTypes.DEFAULT_TYPE, admin_chat_id, message_id, lang):
    log = await context.bot_data["repo"].replay()
    recipients = collect_recipients(log)
    logging.info(f"Broadcasting message {message_id} from {admin_chat_id} to {len(recipients)} chat(s)")
    result = await broadcast(
        context.bot,
        recipients,
        admin_chat_id,
        message_id,
        delay=context.bot_data["config"].broadcast_delay,
    )
    await context.bot.send_message(
        admin_chat_id,
        messages.text(messages.BROADCAST_DONE, lang, sent=result.sent, failed=result.failed),
    )


async def start_broadcast(update: Update, context: ContextTypes.DEFAULT_TYPE, needs_reply):
    session = get_session(update, context)
    source = update.message.reply_to_message
    if source is None:
        await reply(update, needs_reply, session.lang)
        return
    context.application.create_task(
        run_broadcast(context, update.effective_chat.id, source.message_id, session.lang),
        update=update,
    )


async def broadcast_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    if not await is_admin(update, context):
        await reply(update, messages.NOT_AUTHORIZED_COMMAND, session.lang)
        return
    await start_broadcast(update, context, messages.BROADCAST_NEEDS_REPLY)


async def whoami(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    if not await is_admin(update, context):
        await reply(update, messages.NOT_AUTHORIZED_COMMAND, session.lang)
        return
    username = f"@{session.username}" if session.username else "-"
    await update.message.reply_text(
        messages.WHOAMI.format(user_id=session.user_id, chat_id=update.effective_chat.id, username=username)
    )


async def group_admins_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        return
    session = get_session(update, context)
    auth = context.bot_data["auth"]
    if not auth.is_super_admin(session.user_id, session.username):
        logging.warning(f"User {session.user_id} tried to manage group admins")
        await update.message.reply_text(messages.GROUPADMINS_NOT_AUTHORIZED)
        return

    args = context.args or []
    if not args:
        await update.message.reply_text(messages.GROUPADMINS_USAGE)
        return

    store = context.bot_data["group_admins"]
    action = args[0].lower()
    if action == "list":
        admins = await store.get_admins(auth.group_id)
        listing = "\n".join(str(u) for u in sorted(admins)) if admins else messages.GROUPADMINS_EMPTY
        await update.message.reply_text(listing)
        return

    if action in ("add", "remove"):
        try:
            if len(args) != 2:
                raise ValueError("expected exactly one user id")
            user_id = int(args[1])
        except ValueError:
            await update.message.reply_text(messages.GROUPADMINS_USAGE_CHANGE)
            return
        if action == "add":
            added = await store.add_admin(auth.group_id, user_id)
            await update.message.reply_text(messages.GROUPADMINS_ADDED if added else messages.GROUPADMINS_ALREADY_PRESENT)
        else:
            removed = await store.remove_admin(auth.group_id, user_id)
            await update.message.reply_text(messages.GROUPADMINS_REMOVED if removed else messages.GROUPADMINS_NOT_FOUND)
        return

    await update.message.reply_text(messages.GROUPADMINS_INVALID)


async def info(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    await context.bot_data["party_info"].send(context.bot, update.effective_chat.id, session.lang)


async def remove_me(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        return
    session = get_session(update, context)
    if session.step != Step.COMPLETED:
        await reply(update, messages.FINISH_SIGNUP_FIRST, session.lang)
        return
    await context.bot_data["flow"].sign_out(update.effective_chat.id, session)


async def avec(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        return
    session = get_session(update, context)
    await context.bot_data["flow"].begin_change_avec(update.effective_chat.id, session)


async def contact_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        return
    session = get_session(update, context)
    contact = update.message.contact
    await context.bot_data["flow"].on_contact(
        update.effective_chat.id, session, contact.first_name, contact.last_name
    )


async def text_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = get_session(update, context)
    chat_id = update.effective_chat.id
    text = (update.message.text or "").strip()
    flow = context.bot_data["flow"]

    # Admin buttons work at any step
    if messages.is_export_command(session.lang, text):
        if not await is_admin(update, context):
            await reply(update, messages.NOT_AUTHORIZED_OPTION, session.lang)
            return
        await export_and_send(update, context)
        return
    if messages.is_broadcast_command(session.lang, text):
        if not await is_admin(update, context):
            await reply(update, messages.NOT_AUTHORIZED_OPTION, session.lang)
            return
        await start_broadcast(update, context, messages.BROADCAST_NEEDS_REPLY_BUTTON)
        return

    if not is_private(update):
        return

    if session.step == Step.COMPLETED:
        if messages.is_change_avec_command(session.lang, text):
            await flow.begin_change_avec(chat_id, session)
            return
        if messages.is_remove_signup_command(session.lang, text):
            await flow.sign_out(chat_id, session)
            return

    await flow.dispatch(chat_id, session, text)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    logging.error(f"Exception while handling an update: {context.error}", exc_info=context.error)


async def post_init(app):
    commands = [
        BotCommand("start", messages.DESC_START),
        BotCommand("avec", messages.DESC_AVEC),
        BotCommand("removeme", messages.DESC_REMOVEME),
        BotCommand("info", messages.DESC_INFO),
        BotCommand("export", messages.DESC_EXPORT),
        BotCommand("broadcast", messages.DESC_BROADCAST),
    ]
    await app.bot.set_my_commands(commands)
    logging.info("Bot commands menu set")


def build_application(config):
    application = ApplicationBuilder().token(config.bot_token).post_init(post_init).build()

    repo = GuestRepository(config.guests_path)
    group_admins = GroupAdminStore(config.group_admins_path)
    auth = Authorizer(config.group_id, group_admins, config.admin_user_id, config.admin_username)
    party_info = PartyInfo(config.party_info_text, config.party_info_image)
    sessions = SessionStore()

    application.bot_data.update(
        config=config,
        repo=repo,
        group_admins=group_admins,
        auth=auth,
        party_info=party_info,
        sessions=sessions,
        flow=RegistrationFlow(application.bot, repo, auth, party_info),
    )

    application.add_handler(TypeHandler(Update, track_update), group=-1)
    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("export", export_command))
    application.add_handler(CommandHandler("broadcast", broadcast_command))
    application.add_handler(CommandHandler("whoami", whoami))
    application.add_handler(CommandHandler("groupadmins", group_admins_command))
    application.add_handler(CommandHandler("info", info))
    application.add_handler(CommandHandler(["removeme", "signout"], remove_me))
    application.add_handler(CommandHandler("avec", avec))
    application.add_handler(MessageHandler(filters.CONTACT, contact_message))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, text_message))
    application.add_error_handler(error_handler)
    return application


def main():
    config = load_config()
    application = build_application(config)
    logging.info(f"Guest log: {config.guests_path}, group: {config.group_id}")
    logging.info("Bot starting polling...")
    application.run_polling()


if __name__ == '__main__':
    main()
