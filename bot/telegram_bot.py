import asyncio
import logging

from telegram import Update
from telegram.ext import Application, CallbackContext, CommandHandler

from bot.config import BotConfig
from bot.notifier import Notifier
from tailfollow.follower import Follower, follow

logger = logging.getLogger(__name__)

_FLUSH_TICK_SEC = 0.5


async def _send_message(application: Application, chat_id: str, text: str) -> bool:
    try:
        await application.bot.send_message(chat_id=chat_id, text=text)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to send telegram message: %s", exc)
        return False
    return True


async def _follow_worker(app: Application, chat_id: str, follower: Follower, notifier: Notifier) -> None:
    try:
        async for line in follower:
            notifier.add_line(line)
    except Exception as exc:  # noqa: BLE001
        logger.error("Stopped shipping %s: %s", follower.path, exc)
        notifier.fail(str(exc))
        await _send_message(app, chat_id, f"Stopped shipping {follower.path}: {exc}")


async def _flush_worker(app: Application, chat_id: str, notifier: Notifier) -> None:
    while True:
        while notifier.should_send():
            batch = notifier.next_batch()
            if await _send_message(app, chat_id, "\n".join(batch)):
                notifier.mark_shipped(len(batch))
            else:
                notifier.mark_dropped(len(batch))
        await asyncio.sleep(_FLUSH_TICK_SEC)


async def start_command(update: Update, _: CallbackContext) -> None:
    await update.message.reply_text("Log shipper bot. Commands: /status, /pause, /resume")


async def status_command(update: Update, _: CallbackContext, notifier: Notifier, path: str) -> None:
    await update.message.reply_text(notifier.status(path))


async def pause_command(update: Update, _: CallbackContext, notifier: Notifier) -> None:
    notifier.pause()
    await update.message.reply_text("Paused, new lines are dropped until /resume")


async def resume_command(update: Update, _: CallbackContext, notifier: Notifier) -> None:
    notifier.resume()
    await update.message.reply_text("Resumed")


async def run_bot(config: BotConfig) -> None:
    notifier = Notifier(config.notify)
    path = str(config.source.path)
    application = Application.builder().token(config.telegram.token).build()

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("status", lambda u, c: status_command(u, c, notifier, path)))
    application.add_handler(CommandHandler("pause", lambda u, c: pause_command(u, c, notifier)))
    application.add_handler(CommandHandler("resume", lambda u, c: resume_command(u, c, notifier)))

    follower = await follow(path, config.follow)
    workers = []
    try:
        await application.initialize()
        await application.start()
        await application.updater.start_polling()
        logger.info("Telegram bot started, shipping %s", path)
        follow_worker = asyncio.create_task(_follow_worker(application, config.telegram.chat_id, follower, notifier))
        workers.append(follow_worker)
        workers.append(asyncio.create_task(_flush_worker(application, config.telegram.chat_id, notifier)))
        # Runs until cancelled; a dead follower ends the bot so the caller sees the failure
        await follow_worker
    finally:
        follower.close()
        for worker in workers:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        if application.updater.running:
            await application.updater.stop()
        if application.running:
            await application.stop()
        await application.shutdown()
    if follower.error is not None:
        raise follower.error
