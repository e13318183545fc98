"""Environment-driven configuration for the distribution service."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSE_VALUES = {"0", "false", "False", "no", ""}


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the database backing copany data."""

    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str
    url_override: str | None = None

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.url_override:
            return self.url_override
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.url_override:
            scheme, _, rest = self.url_override.partition("://")
            return f"{scheme}://***@{rest.rpartition('@')[2]}" if "@" in rest else self.url_override
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(slots=True)
class AuthSettings:
    """Verification settings for access tokens issued by the backend service."""

    secret_key: str
    algorithm: str
    audience: str | None = None


@dataclass(slots=True)
class DistributionSettings:
    """Business rules for revenue distribution runs."""

    zero_score_policy: str = "owner"
    default_currency: str = "USD"
    skip_epsilon: Decimal = Decimal("0.01")
    default_delay_days: int = 90
    default_day_of_month: int = 10


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    auth: AuthSettings
    distribution: DistributionSettings
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _get_int(name: str, default: int) -> int:
            raw = _get_env(name, str(default)).strip()
            try:
                return int(raw)
            except ValueError as exc:
                raise ValueError(f"{name} must be an integer, got {raw!r}") from exc

        def _get_decimal(name: str, default: str) -> Decimal:
            raw = _get_env(name, default).strip()
            try:
                return Decimal(raw)
            except InvalidOperation as exc:
                raise ValueError(f"{name} must be a decimal number, got {raw!r}") from exc

        policy = _get_env("DISTRIBUTION_ZERO_SCORE_POLICY", "owner").strip().lower()
        if policy not in {"owner", "baseline"}:
            raise ValueError(
                "DISTRIBUTION_ZERO_SCORE_POLICY must be 'owner' or 'baseline'."
            )

        db = DatabaseSettings(
            driver=_get_env("DB_DRIVER", "mysql+pymysql"),
            host=_get_env("DB_HOST", "127.0.0.1"),
            port=_get_int("DB_PORT", 3306),
            user=_get_env("DB_USER", "copany"),
            password=_get_env("DB_PASSWORD", "copany"),
            name=_get_env("DB_NAME", "copany"),
            url_override=os.getenv("DATABASE_URL") or None,
        )
        auth = AuthSettings(
            secret_key=_get_env("JWT_SECRET_KEY", "change-me"),
            algorithm=_get_env("JWT_ALGORITHM", "HS256"),
            audience=os.getenv("JWT_AUDIENCE") or None,
        )
        distribution = DistributionSettings(
            zero_score_policy=policy,
            default_currency=_get_env("DISTRIBUTION_DEFAULT_CURRENCY", "USD").upper(),
            skip_epsilon=_get_decimal("DISTRIBUTION_SKIP_EPSILON", "0.01"),
            default_delay_days=_get_int("DISTRIBUTION_DEFAULT_DELAY_DAYS", 90),
            default_day_of_month=_get_int("DISTRIBUTION_DEFAULT_DAY_OF_MONTH", 10),
        )
        return cls(
            database=db,
            auth=auth,
            distribution=distribution,
            sqlalchemy_echo=_get_env("SQLALCHEMY_ECHO", "0") not in _FALSE_VALUES,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .logger import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "sqlalchemy_echo": settings.sqlalchemy_echo,
            "database": settings.database.masked_url,
            "distribution": {
                "zero_score_policy": settings.distribution.zero_score_policy,
                "default_currency": settings.distribution.default_currency,
                "skip_epsilon": str(settings.distribution.skip_epsilon),
                "default_delay_days": settings.distribution.default_delay_days,
            },
        },
    )
    return settings
