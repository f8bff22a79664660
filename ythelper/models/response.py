from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FormatDescriptor(BaseModel):
    """One downloadable variant as shown to clients, values as yt-dlp reported them"""
    model_config = ConfigDict(populate_by_name=True)

    itag: Any = None
    ext: Any = None
    width: Any = None
    height: Any = None
    acodec: Any = None
    vcodec: Any = None
    filesize: Any = 0
    filesize_human: Optional[str] = Field(None, alias="filesizeHuman")
    note: Any = None


class RawStats(BaseModel):
    view_count: Any = 0


class MediaInfo(BaseModel):
    """Simplified metadata returned by /info"""
    id: Any = None
    title: Any = None
    uploader: Any = None
    length: Any = None
    thumbnail: Any = None
    formats: List[FormatDescriptor] = []
    subtitles: List[Any] = []
    auto_subtitles: List[Any] = []
    raw: RawStats = Field(default_factory=RawStats)


class StatusResponse(BaseModel):
    ok: bool
    message: str
