from __future__ import annotations
from pathlib import Path
from loguru import logger
from .paths import logs_dir

def configure_logging(console_level: str = "INFO", file_level: str = "DEBUG") -> Path:
    """Replace loguru's default sink with the app log file plus a console sink."""
    logger.remove()
    log_path = logs_dir() / "section_toolbox.log"
    logger.add(str(log_path), level=file_level, rotation="5 MB", retention=10, enqueue=True, backtrace=False, diagnose=False)
    logger.add(lambda msg: print(msg, end=""), level=console_level)  # console
    return log_path
