"""
Logging Configuration

Logger setup for the geofence_journeys package with daily file rotation.
Rotated logs are zipped to save disk space.

Library modules only call logging.getLogger(LOGGER_NAME); handlers are
attached once by the entry point via setup_logger().
"""

import logging
import logging.handlers
import sys
import zipfile
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "geofence_journeys"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ZipRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """
    TimedRotatingFileHandler that compresses each rotated file into a .zip
    and keeps at most backupCount archives.
    """

    def __init__(self, filename, backupCount=30, encoding='utf-8', delay=False):
        super().__init__(
            filename=filename,
            when='midnight',
            interval=1,
            backupCount=backupCount,
            encoding=encoding,
            delay=delay,
        )
        self.rotator = self._zip_rotator

    def _zip_rotator(self, source: str, dest: str) -> None:
        """Move the live log to dest, then replace dest with dest.zip."""
        source_path = Path(source)
        if not source_path.exists():
            return
        dest_path = Path(dest)
        source_path.replace(dest_path)
        try:
            with zipfile.ZipFile(f"{dest}.zip", 'w', zipfile.ZIP_DEFLATED) as zipf:
                zipf.write(str(dest_path), dest_path.name)
            dest_path.unlink()
        except OSError as e:
            # Keep the plain rotated file if zipping fails
            print(f"Warning: Failed to zip log file {dest_path}: {e}", file=sys.stderr)

    def getFilesToDelete(self):
        """Old archives beyond backupCount, oldest first."""
        if self.backupCount <= 0:
            return []
        base_path = Path(self.baseFilename)
        archives = sorted(base_path.parent.glob(f"{base_path.name}.*.zip"))
        if len(archives) <= self.backupCount:
            return []
        return [str(p) for p in archives[:len(archives) - self.backupCount]]


def setup_logger(
    name: str = LOGGER_NAME,
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    retention_days: int = 30
) -> logging.Logger:
    """
    Set up the package logger with console output and rotating, zipped files.

    Args:
        name: Logger name
        level: Logging level (int or name such as "DEBUG")
        log_dir: Directory for log files (default: logs/)
        log_to_console: Whether to log to stderr
        log_to_file: Whether to log to app.log / error.log
        retention_days: Days to keep zipped logs

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_to_console:
        # stdout carries JSON results from the CLI
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_to_file:
        log_dir = Path(log_dir) if log_dir is not None else Path.cwd() / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = ZipRotatingFileHandler(
            filename=str(log_dir / "app.log"),
            backupCount=retention_days,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        error_handler = ZipRotatingFileHandler(
            filename=str(log_dir / "error.log"),
            backupCount=retention_days,
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        logger.addHandler(error_handler)

    return logger
