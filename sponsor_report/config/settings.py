"""Application settings and configuration"""

import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    DEBUG: bool = False

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None
    OWNER_NAME: Optional[str] = None
    GITHUB_GRAPHQL_URL: str = "https://api.github.com/graphql"

    # Output locations (GitHub Actions exposes the checkout as GITHUB_WORKSPACE)
    PROJECT_ROOT_DIR: Optional[str] = None
    GITHUB_WORKSPACE: Optional[str] = None

    # Run switches
    GENERATE_ONLY_IMAGE: bool = False
    MERGE_OLD_SNAPSHOTS: bool = False

    # Sponsors pagination
    SPONSORS_PAGE_SIZE: int = 100
    SPONSORS_MAX_PAGES: int = 500

    # GitHub client resilience controls
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    GITHUB_MAX_RETRIES: int = 3
    GITHUB_BACKOFF_BASE_SECONDS: float = 1.0
    GITHUB_BACKOFF_MAX_SECONDS: float = 16.0
    GITHUB_RATE_LIMIT_BUFFER_SECONDS: int = 2

    USER_AGENT: str = "SponsorReport/1.0"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def project_root(self) -> Path:
        root = self.PROJECT_ROOT_DIR or self.GITHUB_WORKSPACE or os.getcwd()
        return Path(root)

    @property
    def snapshot_dir(self) -> Path:
        return self.project_root / "snapshots"

    @property
    def img_dir(self) -> Path:
        return self.project_root / "docs" / "img"
