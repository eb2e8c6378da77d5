import logging
import os
from datetime import datetime
from logging import WARNING, FileHandler
from logging.handlers import TimedRotatingFileHandler

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class GetLog:
    logger = None
    log_folder = None

    @classmethod
    def get_log(cls, level="info", log_dir="./logs", shared_log_folder=None):
        """Get logger and initialize logging system.

        Args:
            level (str): Console and main log file level, one of debug/info/warning/error
            log_dir (str): Parent directory for timestamped log folders
            shared_log_folder (str): Use this folder instead of creating a timestamped one
        """
        if cls.logger is None:
            if shared_log_folder:
                cls.log_folder = shared_log_folder
            else:
                current_time = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
                cls.log_folder = os.path.join(log_dir, current_time)
                os.environ["ENSURE_UI_TIMESTAMP"] = current_time

            os.makedirs(cls.log_folder, exist_ok=True)

            log_level = LOG_LEVELS.get(str(level).lower(), logging.INFO)

            cls.logger = logging.getLogger()
            cls.logger.setLevel(log_level)

            # Main log file, rotated daily
            log_file = os.path.join(cls.log_folder, "log.log")
            th = TimedRotatingFileHandler(
                filename=log_file,
                when="midnight",
                interval=1,
                backupCount=3,
                encoding="utf-8",
            )
            th.setLevel(log_level)

            # Warnings and errors only
            error_log_file = os.path.join(cls.log_folder, "error.log")
            error_handler = FileHandler(filename=error_log_file, encoding="utf-8")
            error_handler.setLevel(WARNING)

            fmt = "%(asctime)s %(levelname)s [%(name)s] [%(filename)s (%(funcName)s:%(lineno)d)] - %(message)s"
            fm = logging.Formatter(fmt)
            th.setFormatter(fm)
            error_handler.setFormatter(fm)
            cls.logger.addHandler(th)
            cls.logger.addHandler(error_handler)

            console_handler = logging.StreamHandler()
            console_handler.setLevel(log_level)
            console_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s - %(message)s"))
            cls.logger.addHandler(console_handler)

            # Playwright and HTTP clients are noisy at debug level
            for noisy in ("httpx", "httpcore", "openai", "asyncio"):
                logging.getLogger(noisy).setLevel(WARNING)

        return cls.logger
