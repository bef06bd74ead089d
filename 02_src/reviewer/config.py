"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from datetime import time, timedelta
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "reviewer.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_time(raw: str | None, default: time) -> time:
    if not raw:
        return default
    return time.fromisoformat(raw.strip())


@dataclass(frozen=True)
class WorkdayOptions:
    """Working-hours window (UTC) and reminder cadence."""

    start_time_utc: time = time(6, 0)
    end_time_utc: time = time(15, 0)
    work_on_holiday: bool = False
    notification_interval: timedelta = timedelta(minutes=60)


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment."""

    bot_token: str | None = None
    bot_name: str = "team_review_bot"
    db_path: PathLike = ":memory:"
    workday: WorkdayOptions = field(default_factory=WorkdayOptions)
    notifications_batch: int = 100
    notifications_delay: timedelta = timedelta(seconds=60)
    holidays_cache_ttl: timedelta = timedelta(minutes=60)
    use_polling: bool = True
    api_host: str = "localhost"
    api_port: int = 8000

    @property
    def bot_link(self) -> str:
        return f"https://t.me/{self.bot_name}"

    def link_for_connect(self, team_id: str) -> str:
        """Deep link that makes the bot receive `/start <team_id>`."""
        return f"{self.bot_link}?start={team_id}"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        workday = WorkdayOptions(
            start_time_utc=_parse_time(os.getenv("WORKDAY_START_UTC"), time(6, 0)),
            end_time_utc=_parse_time(os.getenv("WORKDAY_END_UTC"), time(15, 0)),
            work_on_holiday=_parse_bool(os.getenv("WORK_ON_HOLIDAY"), False),
            notification_interval=timedelta(
                minutes=int(os.getenv("NOTIFICATION_INTERVAL_MINUTES", "60"))
            ),
        )
        return cls(
            bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            bot_name=os.getenv("BOT_NAME", "team_review_bot"),
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            workday=workday,
            notifications_batch=int(os.getenv("NOTIFICATIONS_BATCH", "100")),
            notifications_delay=timedelta(
                seconds=int(os.getenv("NOTIFICATIONS_DELAY_SECONDS", "60"))
            ),
            holidays_cache_ttl=timedelta(
                minutes=int(os.getenv("HOLIDAYS_CACHE_MINUTES", "60"))
            ),
            use_polling=_parse_bool(os.getenv("USE_POLLING"), True),
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )
