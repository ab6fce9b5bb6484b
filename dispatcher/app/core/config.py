"""
Centralized configuration for the dispatcher.

Pydantic v2 settings management: values are parsed from the environment
once, validated strictly, and immutable afterwards. Secrets are redacted
from reprs and logs.

The accepted format versions and the freshness window are NOT
configurable. They are fixed properties of the pipeline.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

PositiveSeconds = Annotated[
    float,
    Field(gt=0, description="Duration in seconds"),
]

SensitiveEnv = Annotated[
    SecretStr,
    Field(description="Sensitive credential, redacted from logs"),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class DispatcherSettings(BaseSettings):
    """
    Dispatcher settings parsed from the environment (prefix DISPATCHER_).

    Everything is optional at parse time. Components that need a value
    (e.g. the HTTP sender needs an endpoint) fail when they are wired.
    """

    # ---------------------------------------------------------------------
    # Transmission
    # ---------------------------------------------------------------------

    sender_endpoint: Annotated[
        Optional[AnyHttpUrl],
        Field(
            default=None,
            description="HTTPS endpoint receiving signed content",
        ),
    ]

    sender_timeout_seconds: PositiveSeconds = 30.0

    # ---------------------------------------------------------------------
    # Signing material
    # ---------------------------------------------------------------------

    signing_key_path: Annotated[
        Optional[Path],
        Field(
            default=None,
            description="PEM private key or PKCS#12 bundle (.p12/.pfx)",
        ),
    ]

    signing_key_password: Optional[SensitiveEnv] = None

    certificate_dir: Annotated[
        Optional[Path],
        Field(
            default=None,
            description="Directory holding <certificate_id>.pem/.crt/.der files",
        ),
    ]

    # ---------------------------------------------------------------------
    # Concurrent dispatch
    # ---------------------------------------------------------------------

    max_workers: Annotated[
        int,
        Field(
            default=4,
            ge=1,
            le=64,
            description="Upper bound on files processed at the same time",
        ),
    ]

    per_file_timeout_seconds: Optional[PositiveSeconds] = None

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{v}'")
        return level

    model_config = SettingsConfigDict(
        env_prefix="DISPATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> DispatcherSettings:
    """Process-wide settings singleton."""
    return DispatcherSettings()
