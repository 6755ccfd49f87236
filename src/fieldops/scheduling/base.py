"""
Base class for the scheduling engine components.

Provides common functionality for configuration and logging.
"""

from datetime import datetime
from typing import Optional

from fieldops.platform.config import Settings, get_settings
from fieldops.platform.logging import get_logger

from .models import utc_now


class SchedulerBase:
    """
    Base class for the conflict detector, resolution generator, recommendation
    synthesizer, applier and impact analyzer.

    Provides:
    - Settings access (injected, or the cached application settings)
    - A logger named after the concrete class
    - Common utility methods
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the component.

        Args:
            settings: Configuration to use instead of the process-wide settings
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return utc_now()
