"""Building blocks: byte buffer and pool, logger, rate limiters, HTTP, JSON and UDP helpers."""

__version__ = "0.1.0"