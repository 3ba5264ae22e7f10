"""songshelf - personal music library with a background ingestion pipeline."""

__version__ = "0.1.0"
