"""
GIMS Logging Configuration
Centralized logging setup with one rotating log file per feature area
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from .config import settings

# Feature loggers and the file each one writes to
FEATURE_LOG_FILES = {
    "receive": "receiveLog.log",
    "settings": "settingsLog.log",
    "request": "requestLog.log",
    "request_records": "requestRecordsLog.log",
    "rrp": "rrpLog.log",
    "issue": "issueLog.log",
    "issue_records": "issueRecordsLog.log",
    "receive_records": "receiveRecordsLog.log",
    "fuel": "fuelLog.log",
    "balance_transfer": "balanceTransferLog.log",
    "asset": "assetLog.log",
    "prediction": "predictionLog.log",
    "stock": "stockLog.log",
    "report": "reportLog.log",
    "database": "database.log",
    "security": "security.log",
}

def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Configure logging for the GIMS application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files, defaults to settings.LOG_TO_FILE
        log_to_console: Whether to log to console

    Returns:
        Configured root application logger
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE

    logger = logging.getLogger("gims")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s() - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_dir = None
    if log_to_file:
        log_dir = settings.LOG_DIR
        log_dir.mkdir(exist_ok=True, parents=True)

        app_handler = logging.handlers.RotatingFileHandler(
            log_dir / settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        app_handler.setLevel(level)
        app_handler.setFormatter(detailed_formatter)
        logger.addHandler(app_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            log_dir / settings.ERROR_LOG_FILE,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        logger.addHandler(error_handler)

    setup_feature_loggers(level, formatter, log_dir)

    return logger

def setup_feature_loggers(
    level: int,
    file_formatter: logging.Formatter,
    log_dir: Optional[Path] = None
):
    """Attach a rotating file to every feature logger"""
    for name, filename in FEATURE_LOG_FILES.items():
        feature_logger = logging.getLogger(f"gims.{name}")
        feature_logger.setLevel(logging.INFO if name == "security" else level)
        feature_logger.handlers.clear()
        if log_dir:
            handler = logging.handlers.RotatingFileHandler(
                log_dir / filename,
                maxBytes=5 * 1024 * 1024,
                backupCount=10 if name == "security" else 3,
                encoding='utf-8'
            )
            handler.setFormatter(file_formatter)
            feature_logger.addHandler(handler)

def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name"""
    return logging.getLogger(f"gims.{name}")

__all__ = [
    'setup_logging',
    'get_logger',
    'FEATURE_LOG_FILES',
]
