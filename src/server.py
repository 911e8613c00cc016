import os
import logging
import sys
import uvicorn
from projectx_backend.settings import settings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ColoredFormatter(logging.Formatter):
    """Colors timestamp and level name when stdout is a terminal."""

    RESET = "\x1b[0m"
    TIMESTAMP = "\x1b[38;5;208m"
    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[38;21m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = sys.stdout.isatty()

    def format(self, record):
        formatted = super().format(record)
        if not self.use_color:
            return formatted

        # "timestamp - LEVEL - logger - message"
        timestamp, sep, rest = formatted.partition(" - ")
        level, sep2, rest = rest.partition(" - ")
        if not sep2:
            return formatted
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        return f"{self.TIMESTAMP}{timestamp}{self.RESET}{sep}{color}{level}{self.RESET}{sep2}{rest}"


def _level(value: str, default: str = "INFO") -> str:
    value = value.upper()
    return value if value in LOG_LEVELS else default


def setup_logging() -> str:
    """Root logger at LOG_LEVEL; the chat server loggers at WEBSOCKET_LOG_LEVEL."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(
        "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root_level = _level(settings.LOG_LEVEL)
    root.setLevel(root_level)

    ws_level = _level(os.environ.get("WEBSOCKET_LOG_LEVEL", root_level), root_level)
    logging.getLogger("projectx_backend.websocket").setLevel(ws_level)
    return ws_level


if __name__ == "__main__":
    ws_level = setup_logging()
    uvicorn_log_level = os.environ.get("UVICORN_LOG_LEVEL", "info").lower()

    print(f"Starting server with WebSocket log level: {ws_level}, Uvicorn log level: {uvicorn_log_level}")

    uvicorn.run(
        "projectx_backend.server:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_level=uvicorn_log_level,
        ws_ping_interval=settings.WS_PING_PERIOD,
        ws_ping_timeout=settings.WS_PONG_WAIT,
        reload=settings.DEBUG_MODE == "development",
        workers=1,
    )
