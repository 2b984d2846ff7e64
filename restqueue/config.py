"""
ServerConfig — runtime settings for the HTTP server, backed by Pydantic v2.

The listening port is the only setting most deployments touch. The rest
carry the defaults the server has always used.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PORT = 8080


class ServerConfig(BaseModel):
    """
    host           — interface to bind
    port           — TCP port to listen on
    shutdown_grace — how long in-flight requests may run after a termination
                     request before they are forcibly cancelled
    idle_timeout   — keep-alive timeout for idle connections
    log_level      — root logging level name
    """

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    shutdown_grace: timedelta = timedelta(seconds=5)
    idle_timeout: timedelta = timedelta(seconds=10)
    log_level: str = "info"

    @field_validator("shutdown_grace", "idle_timeout")
    @classmethod
    def _non_negative(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("must not be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.lower()
        if level not in {"critical", "error", "warning", "info", "debug"}:
            raise ValueError(f"unknown log level {v!r}")
        return level
