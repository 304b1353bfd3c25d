"""Activity reporting package."""

from accountable.reporting.activity import ActivityReporter

__all__ = ["ActivityReporter"]
