import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FILENAME = "auction_tracker.log"


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> Optional[Path]:
    """Configure logging for the auction draft tracker.

    Returns:
        Path of the rotating log file, or None if logging was already set up.
    """
    log_dir = Path(log_dir) if log_dir is not None else Path(__file__).parent.parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / LOG_FILENAME

    root_logger = logging.getLogger()
    if root_logger.handlers:
        return None  # Already configured

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(logging.DEBUG)

    # File handler with rotation (5MB max, keep 3 backups); always at DEBUG
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)

    # Console goes to stderr so replay output on stdout stays parseable
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.getLogger(__name__).info("Logging initialized (level=%s)", log_level)
    return log_file
