from pydantic import BaseModel, Field, field_validator
from typing import Optional
from urllib.parse import urlparse

class MediaRequest(BaseModel):
    """Query parameters of one media operation"""
    url: str = Field(..., description="Media page URL")
    format_id: Optional[str] = Field(None, description="yt-dlp format selector, passed through unchanged")
    language: Optional[str] = Field(None, description="Subtitle language key")
    subtitle_format: str = Field("srt", description="Subtitle output format")

    @field_validator('url')
    @classmethod
    def validate_url_syntax(cls, v):
        """Only a syntax check: yt-dlp decides whether the URL is supported"""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return v

    @field_validator('subtitle_format', mode='before')
    @classmethod
    def normalize_subtitle_format(cls, v):
        return (v or "srt").lower()

    @classmethod
    def from_query(cls, url: Optional[str], **params) -> "MediaRequest":
        """
        Build from raw query values.
        Raises MissingParameter if url is absent, ValidationError if it is not a URL.
        """
        if not url or not url.strip():
            raise MissingParameter("url")
        return cls(url=url.strip(), **params)


class MissingParameter(ValueError):
    """A required query parameter was not supplied"""
