import logging
from logging.handlers import RotatingFileHandler

from telegram import BotCommand
from telegram.ext import ApplicationBuilder, CommandHandler

from config.settings import CHAT_ID, DB_PATH, LOGS_DIR, TELEGRAM_BOT_TOKEN
from src.db import Database
from src.handlers import (
    done_command,
    frequency_command,
    periodend_command,
    periodstart_command,
    plan_command,
    removeperiod_command,
    start_command,
    status_command,
    today_command,
    toggle_command,
    undo_command,
    unplan_command,
)
from src.scheduler import setup_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        RotatingFileHandler(
            LOGS_DIR / "cyclecare.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        ),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

COMMANDS = [
    ("start", start_command, "Welcome & command list"),
    ("status", status_command, "Cycle day, phase & reminders"),
    ("today", today_command, "What needs attention now"),
    ("periodstart", periodstart_command, "Mark period start"),
    ("periodend", periodend_command, "Mark period end"),
    ("removeperiod", removeperiod_command, "Remove a recorded period"),
    ("done", done_command, "Mark a reminder done"),
    ("undo", undo_command, "Undo today's reminder"),
    ("toggle", toggle_command, "Enable/disable a reminder"),
    ("frequency", frequency_command, "Change reminder frequency"),
    ("plan", plan_command, "Plan a date night"),
    ("unplan", unplan_command, "Cancel date night plans"),
]


async def post_init(application):
    """Register the bot command menu and start the daily check."""
    await application.bot.set_my_commands(
        [BotCommand(name, description) for name, _, description in COMMANDS]
    )
    scheduler = setup_scheduler(application)
    scheduler.start()
    application.bot_data["scheduler"] = scheduler
    logger.info("Scheduler started.")


async def post_shutdown(application):
    scheduler = application.bot_data.get("scheduler")
    if scheduler:
        scheduler.shutdown()


def create_app() -> None:
    """Create and run the bot application."""
    logger.info("Starting cycle care bot...")

    db = Database(DB_PATH)
    db.save_state(db.load_state())
    logger.info("Stored state loaded and upgraded to the current schema")

    app = (
        ApplicationBuilder()
        .token(TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    app.bot_data["db"] = db
    app.bot_data["chat_id"] = CHAT_ID

    for name, handler, _ in COMMANDS:
        app.add_handler(CommandHandler(name, handler))

    logger.info("Bot is running. Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    create_app()
