"""Centralised settings for the review harvester.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    output_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("HARVEST_OUTPUT_DIR", "data"))
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("HARVEST_LOG_LEVEL", "INFO")
    )

    @property
    def default_output_path(self) -> Path:
        """CSV file written when no explicit output path is given."""
        return self.output_dir / "reviews.csv"

    # ------------------------------------------------------------------
    # Page selectors
    # ------------------------------------------------------------------
    review_selector: str = field(
        default_factory=lambda: os.environ.get(
            "HARVEST_REVIEW_SELECTOR", "#bookReviews .stars, #bookReviews .readable"
        )
    )
    next_selector: str = field(
        default_factory=lambda: os.environ.get("HARVEST_NEXT_SELECTOR", "a.next_page")
    )

    # ------------------------------------------------------------------
    # Crawl behaviour
    # ------------------------------------------------------------------
    page_limit: int = field(
        default_factory=lambda: int(os.environ.get("HARVEST_PAGE_LIMIT", "10"))
    )
    page_delay: float = field(
        default_factory=lambda: float(os.environ.get("HARVEST_PAGE_DELAY", "1.0"))
    )
    navigation_retries: int = field(
        default_factory=lambda: int(os.environ.get("HARVEST_NAVIGATION_RETRIES", "2"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    headless: bool = field(
        default_factory=lambda: _env_bool("HARVEST_HEADLESS", "true")
    )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    parse_error_policy: str = field(
        default_factory=lambda: os.environ.get("HARVEST_PARSE_ERROR_POLICY", "skip")
    )

    def ensure_output_dir(self) -> None:
        """Create the output directory if it does not exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this everywhere:
#   from harvester.config import settings
settings = Settings()
