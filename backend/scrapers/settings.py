"""
Scraper Configuration
Loads settings from environment variables (prefixed with SCRAPER_) with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    # Output Configuration
    output_dir: Path = Path("output")

    # Browser Configuration
    headless: bool = True
    navigation_timeout: int = 90       # seconds, page.goto
    selector_timeout: int = 30         # seconds, wait_for_selector
    rotate_user_agents: bool = True
    locale: str = "tr-TR"

    # Retry Configuration
    max_retries: int = 3
    retry_delay: float = 2.0
    browser_launch_retries: int = 3
    browser_relaunch_delay: float = 2.0

    # Instagram credentials (prompted for when missing)
    instagram_username: Optional[str] = None
    instagram_password: Optional[str] = None

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_file: bool = True

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path("logs")

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "scraper.log"

    class Config:
        env_prefix = "SCRAPER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
