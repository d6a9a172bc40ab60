from pydantic import BaseModel, Field, field_validator
from typing import Mapping, Optional
import os

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

class Settings(BaseModel):
    """
    Startup configuration for the server process.

    Values come from the environment (HOST, PORT, SHUTDOWN_TIMEOUT,
    LOG_LEVEL, ACCESS_LOG) and may be overridden by command-line flags.
    Port 0 binds an ephemeral port.
    """
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=0, le=65535)
    shutdown_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"
    access_log: bool = True

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        values = {}
        for field, var in (
            ("host", "HOST"),
            ("port", "PORT"),
            ("shutdown_timeout", "SHUTDOWN_TIMEOUT"),
            ("log_level", "LOG_LEVEL"),
            ("access_log", "ACCESS_LOG"),
        ):
            if environ.get(var):
                values[field] = environ[var]
        return cls(**values)

    def with_overrides(self, **overrides) -> "Settings":
        """Return a validated copy with every non-None override applied."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Settings(**values)
