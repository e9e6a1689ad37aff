"""GitHub sync engine: pulls GitHub organization and activity data into a local store."""

__version__ = "0.1.0"
