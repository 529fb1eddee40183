"""CivicConnect backend: civic issue reporting and tracking API."""

__version__ = "1.0.0"
