# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration for the mail dispatcher.

Settings come from an INI file with environment variables as fallbacks.
Every environment variable is prefixed with ``MAIL_``.

Example:
    Configuration file format (config.ini)::

        [mail]
        environment = live
        from_email = no-reply@example.com
        from_name = Example Shop
        use_queue = false

        [smtp]
        host = smtp.example.com
        port = 587
        username = mailer@example.com
        password = secret
        encryption = tls
        auth = true
        timeout = 30

        [development]
        recipients = dev@test.local, qa@test.local

        [attachments]
        base_dir = /var/mail-dispatch/files

    Loading it::

        config = load_config("/etc/mail-dispatch/config.ini")
        mailer = Mailer(config)

Environment variables (used when the option is absent from the file):
    MAIL_CONFIG - Path to config.ini (default: config.ini)
    MAIL_ENVIRONMENT, MAIL_FROM_EMAIL, MAIL_FROM_NAME, MAIL_USE_QUEUE,
    MAIL_CONTENT_TYPE, MAIL_X_MAILER, MAIL_SMTP_HOST, MAIL_SMTP_PORT,
    MAIL_SMTP_USERNAME, MAIL_SMTP_PASSWORD, MAIL_SMTP_ENCRYPTION,
    MAIL_SMTP_AUTH, MAIL_SMTP_TIMEOUT, MAIL_LOCAL_HOSTNAME,
    MAIL_VERIFY_TLS, MAIL_DEVELOPMENT_RECIPIENTS, MAIL_ATTACHMENTS_DIR
"""

from __future__ import annotations

import configparser
import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .logger import get_logger

logger = get_logger("mail_dispatch.config")

ENVIRONMENT_ALIASES = {
    "live": "live",
    "production": "live",
    "prod": "live",
    "development": "development",
    "dev": "development",
    "test": "development",
    "testing": "development",
    "staging": "development",
}


class Environment(str, Enum):
    """Deployment environments.

    Attributes:
        LIVE: Messages are delivered to the configured relay.
        DEVELOPMENT: Messages are captured in memory, never sent.
    """

    LIVE = "live"
    DEVELOPMENT = "development"


class MailerConfig(BaseModel):
    """Settings consumed by the mailer and its transports.

    The model only normalizes values. Whether the SMTP setup is complete is
    decided by the live transport when it is built.
    """

    model_config = ConfigDict(extra="forbid")

    environment: Annotated[Environment, Field(default=Environment.DEVELOPMENT)]
    from_email: Annotated[str, Field(default="no-reply@example.com", min_length=1)]
    from_name: Annotated[str | None, Field(default=None)]
    smtp_host: Annotated[str | None, Field(default=None)]
    smtp_port: Annotated[int, Field(default=587, gt=0, lt=65536)]
    smtp_username: Annotated[str | None, Field(default=None)]
    smtp_password: Annotated[str | None, Field(default=None)]
    smtp_encryption: Annotated[Literal["tls", "ssl", "none"], Field(default="tls")]
    smtp_auth: Annotated[bool, Field(default=True)]
    timeout: Annotated[float, Field(default=30.0, gt=0)]
    local_hostname: Annotated[str | None, Field(default=None)]
    verify_tls: Annotated[bool, Field(default=True)]
    development_recipients: Annotated[list[str], Field(default_factory=list)]
    use_queue: Annotated[bool, Field(default=False)]
    content_type: Annotated[Literal["text/html", "text/plain"], Field(default="text/html")]
    x_mailer: Annotated[str | None, Field(default="mail-dispatch")]
    attachments_dir: Annotated[str | None, Field(default=None)]

    @field_validator("environment", mode="before")
    @classmethod
    def normalise_environment(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            if key not in ENVIRONMENT_ALIASES:
                raise ValueError(f"unknown environment {v!r}")
            return ENVIRONMENT_ALIASES[key]
        return v

    @field_validator("smtp_encryption", mode="before")
    @classmethod
    def normalise_encryption(cls, v: Any) -> Any:
        if v is None:
            return "none"
        if isinstance(v, str):
            value = v.strip().lower()
            if value in {"", "false", "off", "no"}:
                return "none"
            if value == "starttls":
                return "tls"
            return value
        return v

    @field_validator("development_recipients", mode="before")
    @classmethod
    def split_recipients(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("smtp_host", "smtp_username", "smtp_password", "from_name", "local_hostname", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_live(self) -> bool:
        return self.environment == Environment.LIVE

    def redacted(self) -> dict[str, Any]:
        """Return the settings with the SMTP password masked."""
        data = self.model_dump(mode="json")
        if data.get("smtp_password"):
            data["smtp_password"] = "********"
        return data


# (field, section, option, environment variable)
_OPTIONS = [
    ("environment", "mail", "environment", "MAIL_ENVIRONMENT"),
    ("from_email", "mail", "from_email", "MAIL_FROM_EMAIL"),
    ("from_name", "mail", "from_name", "MAIL_FROM_NAME"),
    ("use_queue", "mail", "use_queue", "MAIL_USE_QUEUE"),
    ("content_type", "mail", "content_type", "MAIL_CONTENT_TYPE"),
    ("x_mailer", "mail", "x_mailer", "MAIL_X_MAILER"),
    ("smtp_host", "smtp", "host", "MAIL_SMTP_HOST"),
    ("smtp_port", "smtp", "port", "MAIL_SMTP_PORT"),
    ("smtp_username", "smtp", "username", "MAIL_SMTP_USERNAME"),
    ("smtp_password", "smtp", "password", "MAIL_SMTP_PASSWORD"),
    ("smtp_encryption", "smtp", "encryption", "MAIL_SMTP_ENCRYPTION"),
    ("smtp_auth", "smtp", "auth", "MAIL_SMTP_AUTH"),
    ("timeout", "smtp", "timeout", "MAIL_SMTP_TIMEOUT"),
    ("local_hostname", "smtp", "local_hostname", "MAIL_LOCAL_HOSTNAME"),
    ("verify_tls", "smtp", "verify_tls", "MAIL_VERIFY_TLS"),
    ("development_recipients", "development", "recipients", "MAIL_DEVELOPMENT_RECIPIENTS"),
    ("attachments_dir", "attachments", "base_dir", "MAIL_ATTACHMENTS_DIR"),
]


def load_config(path: str | os.PathLike | None = None, **overrides: Any) -> MailerConfig:
    """Build a :class:`MailerConfig` from an INI file and the environment.

    Args:
        path: INI file to read. Defaults to ``$MAIL_CONFIG`` or ``config.ini``;
            a missing default file is not an error.
        **overrides: Values that win over both file and environment.

    Raises:
        FileNotFoundError: ``path`` was given explicitly and does not exist.
        pydantic.ValidationError: A value cannot be converted.
    """
    explicit = path is not None
    config_path = Path(path if explicit else os.getenv("MAIL_CONFIG", "config.ini"))
    parser = configparser.ConfigParser()
    if config_path.exists():
        parser.read(config_path)
        logger.debug("Loaded mail configuration from %s", config_path)
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    def get(section: str, option: str, fallback: str | None = None) -> str | None:
        if parser.has_option(section, option):
            return parser.get(section, option)
        return fallback

    values: dict[str, Any] = {}
    for field_name, section, option, env_var in _OPTIONS:
        value = get(section, option, os.getenv(env_var))
        if value is not None:
            values[field_name] = value.strip()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return MailerConfig(**values)
