"""
Structured logging configuration for the Kostennote invoice generator.
Import and call setup_logging() once at CLI startup.
"""
import logging
import logging.handlers
import os
import json
from datetime import datetime, timezone

from kostennote.core import paths


class JSONFormatter(logging.Formatter):
    """Structured JSON log lines for machine parsing."""
    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        # Merge extra fields
        for key in ("invoice_id", "lf_nr", "stamped", "pages", "total",
                    "path", "duration_ms"):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanFormatter(logging.Formatter):
    """Readable console format with color."""
    COLORS = {
        "DEBUG": "\033[36m", "INFO": "\033[32m",
        "WARNING": "\033[33m", "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}{self.RESET}"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level=None, json_logs=None, log_dir=None):
    """
    Configure logging for the whole generator run.

    Args:
        level: Override log level (default: from LOG_LEVEL env or INFO)
        json_logs: Force JSON console format (default: KOSTENNOTE_JSON_LOGS env)
        log_dir: Where the rotating log file goes (default: paths.LOG_DIR)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    level = level.upper()
    if json_logs is None:
        json_logs = bool(os.environ.get("KOSTENNOTE_JSON_LOGS"))
    log_dir = log_dir or paths.LOG_DIR

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    # Console handler
    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)

    # File handler - rotates at 5MB, keeps 5 backups
    try:
        paths.ensure_dirs(log_dir)
        fh = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "kostennote.log"),
            maxBytes=5_000_000, backupCount=5, encoding="utf-8",
        )
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)
    except OSError:
        root.warning("Log dir %s not writable, file logging disabled", log_dir)

    # Quiet noisy libs
    for name in ("PIL", "reportlab", "pypdf"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("kostennote").info("Logging initialized", extra={"level": level})
