import logging
import logging.config
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Union


def setup_logging(log_dir: Union[str, Path] = "logs", level: int = logging.INFO) -> logging.Logger:
    """Root logger with a console handler and a daily-rotating file handler (30 days kept)"""

    # Keep SQLAlchemy quiet
    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'loggers': {
            'sqlalchemy.engine': {'level': 'ERROR', 'handlers': [], 'propagate': False},
            'sqlalchemy.pool': {'level': 'ERROR', 'handlers': [], 'propagate': False},
            'sqlalchemy.dialects': {'level': 'ERROR', 'handlers': [], 'propagate': False},
        }
    })

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if reloaded
    if logger.handlers:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

    file_handler = TimedRotatingFileHandler(
        filename=log_dir / "launchkit.log",
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(funcName)s:%(lineno)d - %(levelname)s - %(message)s'
    ))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception
    return logger
