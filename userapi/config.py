"""
Users API — Application Configuration
======================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a module-level `settings` object.
Who:   Imported by main.py and database.py; tests build their own Settings.
When:  Loaded once at module import time; validated before app starts.

Environment variables:
    MONGO_URI            Connection string, may name the database in its path
    MONGO_DATABASE       Overrides the database named in MONGO_URI
    MONGO_MAX_POOL_SIZE  Driver connection pool size
    HOST / PORT          Listening address (PORT defaults to 9000)
    LOG_LEVEL            DEBUG, INFO, WARNING, ERROR, CRITICAL
"""

from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_DATABASE = "userdb"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for a local MongoDB on the default port.
    """

    # ── MongoDB ───────────────────────────────────────────────────────────
    # Format: mongodb://[user:password@]host:port/dbname
    mongo_uri: str = Field(
        default=f"mongodb://localhost:27017/{DEFAULT_DATABASE}",
        description="MongoDB connection string",
    )

    # What: Explicit database name; when unset the URI path is used
    mongo_database: Optional[str] = Field(default=None)

    # What: Upper bound on pooled connections shared by all requests
    # Valid range: 1-500 (driver default is 100)
    mongo_max_pool_size: int = Field(default=100, ge=1, le=500)

    # What: Seconds /health waits for the ping before reporting "disconnected"
    # The driver would otherwise wait out its 30s server-selection timeout
    health_check_timeout: float = Field(default=2.0, gt=0, le=30)

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=9000, ge=1, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("mongo_uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Rejects strings that are not mongodb:// or mongodb+srv:// URIs."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError("MONGO_URI must start with 'mongodb://' or 'mongodb+srv://'")
        return v

    @property
    def database_name(self) -> str:
        """
        What: Resolves which database holds the users collection.
        How:  MONGO_DATABASE wins; otherwise the path segment of MONGO_URI;
              otherwise DEFAULT_DATABASE.
        """
        if self.mongo_database:
            return self.mongo_database
        # Why urlsplit: reading the path must not trigger SRV DNS lookups
        path = urlsplit(self.mongo_uri).path.lstrip("/")
        return path or DEFAULT_DATABASE

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # MONGO_URI and mongo_uri both work
    }


# Module-level instance used by the server entry point.
# The storage client itself is NOT a singleton; see database.py.
settings = Settings()
