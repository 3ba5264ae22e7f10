"""External service integrations."""

from songshelf.infrastructure.integrations.lyrics_api_client import LyricsApiClient

__all__ = ["LyricsApiClient"]
