"""
Logging Configuration
Structured logging with JSON formatting for production.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
import json
from datetime import datetime, timezone
from typing import Any, Dict
import warnings


# Extra attributes copied from a record into the JSON payload when present
CONTEXT_FIELDS = ("request_id", "client_ip", "method", "path", "analysis_id", "company")


class JSONFormatter(logging.Formatter):
    """
    Format logs as JSON for production log parsing and analysis.

    Includes timestamp, level, logger name, message, module, function,
    and optional context fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Request / analysis context (set by middleware or the analyzer)
        for field_name in CONTEXT_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        return json.dumps(log_data, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """
    Format logs in human-readable format for development.

    Includes colored output if terminal supports it.
    """

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        if sys.stdout.isatty():
            color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
            reset = self.COLORS["RESET"]
            level_colored = f"{color}{record.levelname}{reset}"
        else:
            level_colored = record.levelname

        timestamp = datetime.fromtimestamp(
            record.created).strftime("%Y-%m-%d %H:%M:%S")

        log_message = f"{timestamp} [{level_colored}] {record.name} - {record.getMessage()}"
        if hasattr(record, "analysis_id"):
            log_message += f" [analysis={record.analysis_id}]"

        if record.exc_info:
            log_message += "\n" + self.formatException(record.exc_info)

        return log_message


def setup_logging(
    log_level: str = "INFO",
    log_file: str = "logs/finclick.log",
    environment: str = "development",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
):
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None disables the file handler)
        environment: Environment name (development, staging, production)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level.upper())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level.upper())

    # JSON in production, human-readable in development
    if environment == "production":
        console_formatter = JSONFormatter()
    else:
        console_formatter = HumanReadableFormatter()

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # File handler (rotating) - always JSON for parsing
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level.upper())
            file_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(file_handler)
        except (OSError, PermissionError) as e:
            root_logger.warning(f"Could not create log file {log_file}: {e}")

    # Reduce noise from numerical libraries
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("numexpr").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)

    # Optimiser chatter from statsmodels / arch / sklearn fits
    warnings.filterwarnings('ignore', module='statsmodels')
    warnings.filterwarnings('ignore', module='arch')
    warnings.filterwarnings('ignore', category=UserWarning, module='sklearn')

    root_logger.info(
        f"Logging configured: level={log_level}, "
        f"environment={environment}, "
        f"file={log_file}"
    )
