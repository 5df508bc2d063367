# utils/logging_factory.py

import logging
import os

from utils.config import settings


class LoggerFactory:
    @staticmethod
    def get_logger(name: str, log_dir: str | None = None) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

            # Console handler
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

            # File handler (desligado quando LOG_DIR vazio)
            diretorio = log_dir if log_dir is not None else settings.LOG_DIR
            if diretorio:
                os.makedirs(diretorio, exist_ok=True)
                file_handler = logging.FileHandler(os.path.join(diretorio, f"{name}.log"), encoding="utf-8")
                file_handler.setFormatter(formatter)
                logger.addHandler(file_handler)

        return logger
