import contextvars
import datetime
import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings


LOGGER_NAME = "askstream"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] - %(message)s"

_LOGGING_CONFIGURED = False

# Ask request currently being served in this context; "-" outside requests.
_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "askstream_request_id", default="-"
)


def bind_request_id(request_id: str) -> contextvars.Token:
    return _request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_var.reset(token)


def current_request_id() -> str:
    return _request_id_var.get()


class RequestIdFilter(logging.Filter):
    """Stamps `record.request_id` so superseded requests stay distinguishable."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id_var.get()
        return True


class LocalTimezoneFormatter(logging.Formatter):
    """
    Renders timestamps in LOG_TIMEZONE, or in the system local timezone
    when that is unset or unknown.
    """

    def __init__(self, *args, timezone_name: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._tzinfo = _resolve_tzinfo(timezone_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        moment = datetime.datetime.fromtimestamp(record.created, tz=self._tzinfo)
        if datefmt:
            return moment.strftime(datefmt)
        return moment.isoformat(timespec="milliseconds")


def _resolve_tzinfo(timezone_name: str | None) -> datetime.tzinfo:
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except ZoneInfoNotFoundError:
            pass
    return datetime.datetime.now().astimezone().tzinfo or datetime.timezone.utc


class DailyFileHandler(logging.FileHandler):
    """
    One file per calendar day, <log_dir>/<prefix>-YYYY-MM-DD.log.

    The file is opened on the first record and switched when the date
    changes; only the newest `backup_count` day files are kept.
    """

    def __init__(
        self,
        log_dir: Path,
        prefix: str = LOGGER_NAME,
        backup_count: int = 7,
        encoding: str = "utf-8",
    ) -> None:
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.backup_count = backup_count
        self._day = datetime.date.today()
        super().__init__(self._path_for(self._day), encoding=encoding, delay=True)

    def _path_for(self, day: datetime.date) -> Path:
        return self.log_dir / f"{self.prefix}-{day.isoformat()}.log"

    def _open(self):
        self.log_dir.mkdir(parents=True, exist_ok=True)
        stream = super()._open()
        self._prune()
        return stream

    def _prune(self) -> None:
        if self.backup_count <= 0:
            return
        day_files = sorted(self.log_dir.glob(f"{self.prefix}-*.log"))
        for stale in day_files[: max(0, len(day_files) - self.backup_count)]:
            try:
                stale.unlink()
            except OSError:
                pass

    def emit(self, record: logging.LogRecord) -> None:
        today = datetime.date.today()
        if today != self._day:
            self._day = today
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = str(self._path_for(today).resolve())
        super().emit(record)


def setup_logging(log_dir: str | Path | None = None) -> None:
    """
    Configure the askstream logger: a daily file under LOG_DIR for our own
    records, plus a console handler on the root logger. Safe to call twice.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    formatter = LocalTimezoneFormatter(LOG_FORMAT, timezone_name=settings.log_timezone)
    request_ids = RequestIdFilter()

    file_handler = DailyFileHandler(Path(log_dir or settings.log_dir))
    file_handler.setFormatter(formatter)
    file_handler.addFilter(logging.Filter(LOGGER_NAME))
    file_handler.addFilter(request_ids)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.addHandler(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.addFilter(request_ids)
        root_logger.addHandler(console_handler)

    _LOGGING_CONFIGURED = True


logger = logging.getLogger(LOGGER_NAME)
