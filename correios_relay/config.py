"""
Configuration management for the Correios relay.
Handles loading settings from environment variables and config files.
"""

import base64
import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv


DEFAULT_FRONTEND_ORIGIN = "https://cade.ed-henrique.com"
DEFAULT_AUTH_URL = "https://api.correios.com.br/token/v1/autentica"
DEFAULT_TRACKING_URL = "https://apps3.correios.com.br/areletronico/v1/ars/eventos"

TRACKING_AUTH_SCHEMES = ("basic", "bearer")


@dataclass
class RelayConfig:
    """Main configuration class for the relay."""

    # === Correios Credentials ===
    correios_username: str = ""
    correios_password: str = ""

    # === Correios Endpoints ===
    auth_url: str = DEFAULT_AUTH_URL
    tracking_url: str = DEFAULT_TRACKING_URL
    tracking_auth_scheme: str = "basic"  # basic or bearer

    # === HTTP Server ===
    frontend_origin: str = DEFAULT_FRONTEND_ORIGIN
    host: str = "0.0.0.0"
    port: int = 8080

    # Outbound carrier calls
    request_timeout: float = 10.0  # seconds

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # empty = console only

    @property
    def basic_credentials(self) -> str:
        """Base64 of ``username:password`` for the Basic auth header."""
        raw = f"{self.correios_username}:{self.correios_password}"
        return base64.b64encode(raw.encode()).decode()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "RelayConfig":
        """Load configuration from environment variables."""

        # Try to load from .env file
        if env_file:
            load_dotenv(env_file)
        else:
            # Try common locations
            for env_path in ["config.env", ".env", "../config.env"]:
                if Path(env_path).exists():
                    load_dotenv(env_path)
                    break

        return cls(
            # Correios
            correios_username=os.getenv("CORREIOS_USERNAME", ""),
            correios_password=os.getenv("CORREIOS_PASSWORD", ""),
            auth_url=os.getenv("CORREIOS_AUTH_URL", DEFAULT_AUTH_URL),
            tracking_url=os.getenv("CORREIOS_TRACKING_URL", DEFAULT_TRACKING_URL),
            tracking_auth_scheme=os.getenv("CORREIOS_TRACKING_AUTH", "basic").strip().lower(),

            # Server
            frontend_origin=os.getenv("FRONTEND_ORIGIN", DEFAULT_FRONTEND_ORIGIN),
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=int(os.getenv("RELAY_PORT", "8080")),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),

            # Logging
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", ""),
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.correios_username:
            errors.append("CORREIOS_USERNAME is required")
        if not self.correios_password:
            errors.append("CORREIOS_PASSWORD is required")

        if self.tracking_auth_scheme not in TRACKING_AUTH_SCHEMES:
            errors.append(
                f"CORREIOS_TRACKING_AUTH must be one of {', '.join(TRACKING_AUTH_SCHEMES)}"
            )

        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")

        if not 0 < self.port < 65536:
            errors.append("RELAY_PORT must be between 1 and 65535")

        return errors
