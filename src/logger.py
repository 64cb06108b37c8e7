import os
import logging
from pathlib import Path

from config import LOGS_DIR, LOG_LEVEL

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore")


class PerLoggerFileHandler(logging.Handler):
    """
    Routes each log record to logs/<logger_name>.log
    Creates file handlers lazily and keeps them cached.
    """
    def __init__(self, logs_dir: str | os.PathLike | Path = LOGS_DIR, *, encoding: str = "utf-8"):
        super().__init__()
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.encoding = encoding
        self._handlers: dict[str, logging.FileHandler] = {}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            name = record.name or "root"
            safe = name.replace("/", "_").replace("\\", "_")
            handler = self._handlers.get(safe)
            if handler is None:
                handler = logging.FileHandler(self.logs_dir / f"{safe}.log", encoding=self.encoding)
                handler.setLevel(self.level)
                handler.setFormatter(self.formatter)
                self._handlers[safe] = handler

            handler.emit(record)
        except Exception: self.handleError(record)

    def close(self) -> None:
        for h in self._handlers.values():
            try: h.close()
            except OSError: pass
        self._handlers.clear()
        super().close()


def setup_logging(level: str = LOG_LEVEL, logs_dir: str | os.PathLike | Path = LOGS_DIR, *, to_files: bool = True) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    fmt = logging.Formatter(fmt=FORMAT, datefmt=DATEFMT)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(sh)

    if to_files:
        ph = PerLoggerFileHandler(logs_dir)
        ph.setLevel(level)
        ph.setFormatter(fmt)
        root.addHandler(ph)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
