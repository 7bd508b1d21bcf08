import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

VERSION = "1.0.0"

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
LOGS_DIR = BASE_DIR / "logs"

DATA_DIR.mkdir(exist_ok=True)
LOGS_DIR.mkdir(exist_ok=True)

TELEGRAM_BOT_TOKEN = os.environ["TELEGRAM_BOT_TOKEN"]
CHAT_ID = int(os.environ["CHAT_ID"])

REMINDER_HOUR = int(os.getenv("REMINDER_HOUR", "10"))
TIMEZONE = ZoneInfo(os.getenv("TIMEZONE", "Europe/Prague"))

QUIET_HOURS_START = int(os.getenv("QUIET_HOURS_START", "21"))
QUIET_HOURS_END = int(os.getenv("QUIET_HOURS_END", "6"))

DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "cyclecare.db")))
