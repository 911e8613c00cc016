import os
import threading


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

        # Security: Force disable debug info in API responses (overrides DEBUG_MODE)
        self.DISABLE_API_DEBUG_INFO = _env_bool("DISABLE_API_DEBUG_INFO", "false")

        # Database
        self.DATABASE_URL = os.environ.get("DATABASE_URL", None)
        self.POSTGRES_HOST = os.environ.get("POSTGRES_HOST", "localhost")
        self.POSTGRES_PORT = os.environ.get("POSTGRES_PORT", "5432")
        self.POSTGRES_USER = os.environ.get("POSTGRES_USER", "postgres")
        self.POSTGRES_PASSWORD = os.environ.get("POSTGRES_PASSWORD", "")
        self.POSTGRES_DB = os.environ.get("POSTGRES_DB", "projectx")

        # Authentication
        self.JWT_SECRET = os.environ.get("JWT_SECRET", "projectx-dev-secret-change-in-production")
        self.JWT_EXPIRATION_MINUTES = int(os.environ.get("JWT_EXPIRATION_MINUTES", "1440"))

        # CORS (comma separated)
        self.CORS_ORIGINS = [
            origin.strip()
            for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:8080").split(",")
            if origin.strip()
        ]

        # WebSocket transport
        self.WS_SEND_QUEUE_SIZE = int(os.environ.get("WS_SEND_QUEUE_SIZE", "256"))
        self.WS_READ_LIMIT = int(os.environ.get("WS_READ_LIMIT", "512"))
        # Protocol-level ping interval and pong deadline, enforced by uvicorn
        self.WS_PING_PERIOD = float(os.environ.get("WS_PING_PERIOD", "54"))
        self.WS_PONG_WAIT = float(os.environ.get("WS_PONG_WAIT", "60"))
        self.WS_IDLE_TIMEOUT = float(os.environ.get("WS_IDLE_TIMEOUT", "0"))  # 0 disables the read idle timeout
        self.WS_WRITE_WAIT = float(os.environ.get("WS_WRITE_WAIT", "10"))
        self.WS_MAX_TOTAL_CONNECTIONS = int(os.environ.get("WS_MAX_TOTAL_CONNECTIONS", "10000"))
        self.WS_SHUTDOWN_TIMEOUT = float(os.environ.get("WS_SHUTDOWN_TIMEOUT", "3"))

        # Chat
        self.CHAT_RATE_LIMIT = os.environ.get("CHAT_RATE_LIMIT", "30/minute")
        self.TEAM_CHAT_NAME = os.environ.get("TEAM_CHAT_NAME", "Team Chat")

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

settings = BackendSettings()
