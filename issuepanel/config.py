"""Configuration for the issue panel, read from the environment."""

import logging
import os
import secrets
from dataclasses import dataclass, field, fields
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass
class Config:
    """Application settings.

    Every field can be set with an ``ISSUEPANEL_<NAME>`` environment variable.
    """

    db: Optional[str] = field(default=None)
    secret_key: str = field(default_factory=lambda: secrets.token_hex(32))
    base_url: str = field(default="")
    log_level: str = field(default="INFO")
    host: str = field(default="0.0.0.0")
    port: int = field(default=7770)

    @classmethod
    def from_env(cls) -> "Config":
        """Build settings from ``ISSUEPANEL_*`` environment variables."""
        cfg = cls()
        for f in fields(cls):
            raw = os.getenv(f"ISSUEPANEL_{f.name.upper()}")
            if raw is None:
                continue
            setattr(cfg, f.name, int(raw) if f.name == "port" else raw)
        return cfg

    def override(self, values: dict[str, Any]) -> None:
        """Apply non-None overrides, e.g. from command-line flags."""
        for name, value in values.items():
            if value is not None and hasattr(self, name):
                setattr(self, name, value)

    def to_flask_dict(self) -> dict[str, Any]:
        """Map settings onto Flask config keys."""
        return {
            "SECRET_KEY": self.secret_key,
            "ISSUEPANEL_DB": self.db,
            "ISSUEPANEL_BASE_URL": self.base_url.rstrip("/"),
        }


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the command line and the web server."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
