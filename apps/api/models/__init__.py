"""Models package."""

from .shared_report import SharedReport
