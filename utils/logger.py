# Console formatting and logger factories for the Chirp client.
import logging
from typing import Optional

ROOT_LOGGER_NAME = "chirp"


class CustomFormatter(logging.Formatter):
    """
    A formatter that colors console output by log level.

    Attributes:
        grey (str): ANSI escape sequence for grey color.
        yellow (str): ANSI escape sequence for yellow color.
        red (str): ANSI escape sequence for red color.
        bold_red (str): ANSI escape sequence for bold red color.
        reset (str): ANSI escape sequence to reset color.
        format (str): The log message format.
        FORMATS (dict): A dictionary mapping log levels to their respective log message formats.

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter())
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format = '[%(levelname)s] %(asctime)s %(name)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset
    }

    def format(self, record):
        """
        Formats the log record based on its log level.

        Args:
            record (logging.LogRecord): The log record to be formatted.

        Returns:
            str: The formatted log message.
        """
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        root.setLevel(logging.DEBUG)
        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(CustomFormatter())
        root.addHandler(ch)
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger nested under the application's root logger.

    Args:
        name: Usually the calling module's ``__name__``.

    Returns:
        logging.Logger: The child logger, sharing the colored console handler.
    """
    root = _configure_root()
    if not name:
        return root
    return root.getChild(name)


def setup_file_logging(log_file: str, level: int = logging.INFO) -> None:
    """
    Send application logs to a file in addition to the console.

    Args:
        log_file: Path of the log file to append to.
        level: Minimum level written to both the file and the console.
    """
    root = _configure_root()
    for handler in root.handlers:
        handler.setLevel(level)

    fh = logging.FileHandler(log_file, encoding='utf-8')
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter('[%(levelname)s] %(asctime)s %(name)s - %(message)s'))
    root.addHandler(fh)
