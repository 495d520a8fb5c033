import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load variables from a local .env if present
load_dotenv()


def _env_int(name: str, default: str, base: int = 10):
    return lambda: int(os.getenv(name, default), base)


class Settings(BaseModel):
    """Typed configuration for the mq tool.

    Values are read from the environment each time the model is instantiated,
    so callers can override them with ``MQ_*`` variables. Command line options
    always take precedence; these only provide defaults.

    Examples:
    - Create larger queues by default:
      ```bash
      export MQ_DEFAULT_MAXMSG=50
      export MQ_DEFAULT_MSGSIZE=4096
      ```
    - Expose Prometheus metrics while following a queue:
      ```bash
      export MQ_METRICS_PORT=9102
      mq recv /events --follow
      ```
    """
    default_max_messages: int = Field(default_factory=_env_int("MQ_DEFAULT_MAXMSG", "10"))
    default_max_message_size: int = Field(default_factory=_env_int("MQ_DEFAULT_MSGSIZE", "1024"))
    # Permission bits applied to newly created queues, given in octal
    create_mode: int = Field(default_factory=_env_int("MQ_CREATE_MODE", "644", base=8))
    # 0 disables the metrics endpoint
    metrics_port: int = Field(default_factory=_env_int("MQ_METRICS_PORT", "0"))
    log_format: str = Field(default_factory=lambda: os.getenv("MQ_LOG_FORMAT", "%(message)s"))


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, creating them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
