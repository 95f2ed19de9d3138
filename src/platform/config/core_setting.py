from pathlib import Path
from typing import Annotated, List, Optional

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Cinema Seat Hold'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Security
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'

    # CORS; NoDecode hands the raw env string (comma list or JSON list) to the validator
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.strip().startswith('['):
            return [str(origin) for origin in orjson.loads(v)]
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # PostgreSQL (durable store for showtimes, seat layouts and bookings)
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'cinema'
    POSTGRES_PASSWORD: SecretStr = SecretStr('cinema')
    POSTGRES_DB: str = 'cinema_db'
    DATABASE_URL: Optional[str] = None  # Full override, e.g. for a managed instance

    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:'
            f'{self.POSTGRES_PASSWORD.get_secret_value()}@'
            f'{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    # Seat hold policy
    SEAT_HOLD_TTL_SECONDS: float = 300.0
    SEAT_HOLD_EXTENSION_SECONDS: float = 300.0
    SEAT_HOLD_MAX_EXTENSIONS: int = 3
    MAX_HOLDS_PER_SESSION: int = 8  # Per user, per showtime
    SWEEP_INTERVAL_SECONDS: float = 2.0
    DISCONNECT_GRACE_SECONDS: float = 3.0
    SEAT_INVENTORY_CACHE_TTL_SECONDS: float = 60.0
    EXPIRING_SOON_WINDOW_SECONDS: float = 60.0

    @field_validator(
        'SEAT_HOLD_TTL_SECONDS',
        'SEAT_HOLD_EXTENSION_SECONDS',
        'SWEEP_INTERVAL_SECONDS',
        'DISCONNECT_GRACE_SECONDS',
        'MAX_HOLDS_PER_SESSION',
    )
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('must be greater than zero')
        return v

    # Real-time transport
    WS_PING_INTERVAL_SECONDS: float = 25.0
    WS_OUTBOX_SIZE: int = 256
    WS_USE_BINARY: bool = False
    WS_AUTH_COOKIE_NAME: str = 'seat_hold_auth'


settings = Settings()  # type: ignore
