import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_HANDLER_NAME = "arcade.file"


def configure_logging(logs_dir: Path, level_name: str = "INFO") -> logging.Logger:
    """
    Set up console logging plus an application log file.

    Args:
        logs_dir: Directory for arcade.log; created if missing.
        level_name: The logging level (e.g., "DEBUG", "INFO").

    Returns:
        The root logger.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    root = logging.getLogger()

    # Replace the file handler from a previous call (app factory in tests, reload)
    for handler in list(root.handlers):
        if handler.get_name() == FILE_HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()

    log_file_path = Path(logs_dir) / "arcade.log"
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(str(log_file_path), mode="a", encoding="utf-8")
    file_handler.set_name(FILE_HANDLER_NAME)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(file_handler)
    return root
