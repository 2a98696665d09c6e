"""I.R.D. proxy: domain-restricted page extraction with a TTL cache."""

__version__ = "1.0.0"
