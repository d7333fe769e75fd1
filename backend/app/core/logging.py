"""Logging setup: one stream handler on the root logger, plain or JSON lines."""

import json
import logging
import logging.config


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_logging_config(level: str = "INFO", json_lines: bool = False) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JsonFormatter,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_lines else "plain",
            },
        },
        "root": {"level": level.upper(), "handlers": ["console"]},
        "loggers": {
            # uvicorn installs its own handlers; keep its access log out of ours
            "uvicorn.access": {"propagate": False},
        },
    }


def setup_logging(level: str = "INFO", json_lines: bool = False) -> None:
    logging.config.dictConfig(build_logging_config(level, json_lines))
