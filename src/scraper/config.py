"""Configuration for the portal attendance scraper."""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_ATTENDANCE_PAGE = "studentIndex.html"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class PortalConfig:
    """Configuration for the portal scraper.

    The portal session is never created here: ``storage_state`` points at a
    Playwright storage state file saved from an already authenticated
    browser session.
    """

    base_url: str
    storage_state: Optional[str] = None
    headless: bool = True
    timeout: int = 30000  # 30 seconds
    debug: bool = False
    use_mock_data: bool = False
    required_percentage: float = 75.0

    attendance_page: str = DEFAULT_ATTENDANCE_PAGE
    subject_details_page: Optional[str] = None

    @classmethod
    def from_env(cls) -> "PortalConfig":
        """Create configuration from environment variables."""
        base_url = os.environ.get("PORTAL_URL")
        use_mock_data = _env_flag("USE_MOCK_DATA", "false")

        if not base_url and not use_mock_data:
            raise ValueError("PORTAL_URL environment variable is required")

        required = os.environ.get("REQUIRED_PERCENTAGE", "75")
        try:
            required_percentage = float(required)
        except ValueError:
            raise ValueError(f"REQUIRED_PERCENTAGE must be a number, got {required!r}")

        return cls(
            base_url=(base_url or "").rstrip("/"),
            storage_state=os.environ.get("PORTAL_STORAGE_STATE") or None,
            headless=_env_flag("SCRAPER_HEADLESS", "true"),
            timeout=int(os.environ.get("SCRAPER_TIMEOUT", "30000")),
            debug=_env_flag("SCRAPER_DEBUG", "false"),
            use_mock_data=use_mock_data,
            required_percentage=required_percentage,
            attendance_page=os.environ.get("PORTAL_ATTENDANCE_PAGE", DEFAULT_ATTENDANCE_PAGE),
            subject_details_page=os.environ.get("PORTAL_SUBJECT_DETAILS_PAGE") or None,
        )

    def get_page_url(self, page: str) -> str:
        """Get full URL for a portal page."""
        return f"{self.base_url}/{page.lstrip('/')}"

    @property
    def attendance_url(self) -> str:
        return self.get_page_url(self.attendance_page)
