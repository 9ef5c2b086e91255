"""Runtime settings — env-driven via pydantic-settings.

Reads ``STEMFORGE_*`` environment variables and an optional ``.env`` file.
Each CLI command reads a fresh ``ForgeSettings()`` when it starts, and its
options override these per invocation.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ForgeSettings(BaseSettings):
    """stemforge settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export STEMFORGE_LOG_LEVEL=DEBUG
        export STEMFORGE_PLATFORM_FACTORY=mycorp.bosh:connect
        export STEMFORGE_UPLOAD_TARGET_ID=compiled-releases
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STEMFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Files
    lock_path: Path = Path("Stemfile.lock")
    sources_path: Path = Path("Stemfile")
    releases_dir: Path = Path("releases")

    # Transfers
    download_threads: int = 0  # 0 = let the source decide

    # Compilation
    platform_factory: str = ""  # "package.module:callable"
    upload_target_id: str = ""
