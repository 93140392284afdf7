"""CareCal - calendar scheduling engine for a personal care-management app."""

__version__ = "0.1.0"
