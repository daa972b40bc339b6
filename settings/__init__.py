"""
Process-wide configuration: `from settings import settings`.

TRACKER_ENV=test swaps in TestSettings, which ignores .env and points at a
throwaway database, so it has to be set before the first import.
"""

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .settings import Settings

TEST_ENV = "test"


def get_settings() -> "Settings":
    if os.getenv("TRACKER_ENV") == TEST_ENV:
        from .test_settings import TestSettings

        return TestSettings()

    from .settings import Settings

    return Settings()


settings = get_settings()
