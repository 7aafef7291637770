# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""Configuration for the limejuice-ssl command line tool."""

from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from LIMEJUICE_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="LIMEJUICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Issuance
    certificate_expiration_hours: int = 0  # 0 = 10 year default
    leaf_usages: str = "signing,key encipherment,server auth,client auth"

    # Output
    output_dir: str = "certs"

    @property
    def expiration(self) -> timedelta:
        return timedelta(hours=self.certificate_expiration_hours)

    @property
    def leaf_usages_list(self) -> list[str]:
        """Parse leaf usages from comma-separated string."""
        return [usage.strip() for usage in self.leaf_usages.split(",") if usage.strip()]


# Global settings instance
settings = Settings()
