import logging
import sys
from pathlib import Path
from collections import deque
from logging.handlers import RotatingFileHandler


class MemoryLogHandler(logging.Handler):
    """In-memory ring buffer for recent log entries. Always works, no file I/O."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.buffer: deque = deque(maxlen=capacity)

    def emit(self, record):
        self.buffer.append(self.format(record))

    def get_logs(self, n: int = 50) -> list[str]:
        return list(self.buffer)[-n:]


# Read by the admin activity endpoint
memory_handler = MemoryLogHandler(capacity=1000)


def setup_logger(
    name: str = "bluework",
    log_file: str = "logs/bluework.log",
    level: str = "INFO",
    max_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    memory_handler.setFormatter(formatter)
    logger.addHandler(memory_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)

    # File Handler (may fail on permission issues with bind mounts)
    try:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_size_mb * 1024 * 1024, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except (PermissionError, OSError) as e:
        logger.warning(f"Could not create log file {log_file}: {e}. Using memory + stdout only.")

    return logger


def configure_from_settings(settings) -> logging.Logger:
    cfg = settings.logging
    return setup_logger(
        log_file=cfg.file,
        level=cfg.level,
        max_size_mb=cfg.max_size,
        backup_count=cfg.backup_count,
    )
