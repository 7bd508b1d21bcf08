import logging
from datetime import date, datetime

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from telegram.ext import Application

from config.settings import REMINDER_HOUR, TIMEZONE
from src.db import Database
from src.notifications import build_digest

logger = logging.getLogger(__name__)

DAILY_CHECK_JOB_ID = "daily_check"


async def run_daily_check(app: Application, today: date | None = None):
    """Send the daily digest once per day if anything needs attention."""
    db: Database = app.bot_data["db"]
    chat_id = app.bot_data["chat_id"]
    today = today or datetime.now(TIMEZONE).date()

    if db.was_notified(today):
        logger.info(f"Already notified for {today}, skipping.")
        return

    state = db.load_state()
    lines = build_digest(state, today)
    if not lines:
        logger.info(f"Nothing due on {today}, no notification needed.")
        return

    message = "Good morning! \U0001f338 Here's what needs attention today:\n\n" + "\n".join(lines)
    try:
        await app.bot.send_message(chat_id=chat_id, text=message)
    except Exception as e:
        logger.error(f"Failed to send daily notification to {chat_id}: {e}")
        return

    db.mark_notified(today)
    db.prune_notification_log(today)
    logger.info(f"Sent daily notification with {len(lines)} item(s) for {today}")


class DailyCheckScheduler:
    """Owns the single outstanding daily-check job.

    Scheduling again cancels the previous job before the new one is added.
    """

    def __init__(self, app: Application, timezone=TIMEZONE):
        self.app = app
        self._scheduler = AsyncIOScheduler(timezone=timezone)
        self._job: Job | None = None

    @property
    def job(self) -> Job | None:
        return self._job

    def schedule(self, hour: int = REMINDER_HOUR) -> Job:
        self.cancel()
        self._job = self._scheduler.add_job(
            run_daily_check,
            trigger="cron",
            hour=hour,
            minute=0,
            args=[self.app],
            id=DAILY_CHECK_JOB_ID,
            replace_existing=True,
        )
        logger.info(f"Daily check scheduled for {hour:02d}:00")
        return self._job

    def cancel(self):
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            logger.warning("Daily check job was already gone")
        self._job = None

    def get_jobs(self) -> list[Job]:
        return self._scheduler.get_jobs()

    def start(self):
        self._scheduler.start()

    def shutdown(self):
        self.cancel()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)


def setup_scheduler(app: Application) -> DailyCheckScheduler:
    """Set up APScheduler for the daily notification check."""
    scheduler = DailyCheckScheduler(app)
    scheduler.schedule()
    return scheduler
