from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from ythelper.models.response import FormatDescriptor, MediaInfo, RawStats
from ythelper.services.ytdlp import ToolInvocationError, fetch_metadata


def _human_size(size: Optional[float]) -> Optional[str]:
    if not size:
        return None
    # Half-up rounding, round() would round half to even
    return f"{int(size / 1024 + 0.5)} KB"


def has_known_size(variant: Dict[str, Any]) -> bool:
    """A variant is listed only if it has a size estimate or a direct URL"""
    return bool(variant.get("filesize") or variant.get("filesize_approx") or variant.get("url"))


def describe_format(variant: Dict[str, Any]) -> FormatDescriptor:
    size = variant.get("filesize") or variant.get("filesize_approx")
    return FormatDescriptor(
        itag=variant.get("format_id") or variant.get("format"),
        ext=variant.get("ext"),
        width=variant.get("width") or None,
        height=variant.get("height") or None,
        acodec=variant.get("acodec"),
        vcodec=variant.get("vcodec"),
        filesize=size or 0,
        filesize_human=_human_size(size),
        note=variant.get("format_note") or variant.get("format"),
    )


def build_formats(variants: Optional[List[Dict[str, Any]]]) -> List[FormatDescriptor]:
    return [describe_format(f) for f in (variants or []) if has_known_size(f)]


def summarize(info: Dict[str, Any]) -> MediaInfo:
    """Reshape a yt-dlp metadata document into the /info response"""
    return MediaInfo(
        id=info.get("id"),
        title=info.get("title"),
        uploader=info.get("uploader"),
        length=info.get("duration"),
        thumbnail=info.get("thumbnail"),
        formats=build_formats(info.get("formats")),
        subtitles=list(info.get("subtitles") or {}),
        auto_subtitles=list(info.get("automatic_captions") or {}),
        raw=RawStats(view_count=info.get("view_count") or 0),
    )


class MediaInfoService:
    """Media info fetching service"""

    @staticmethod
    async def fetch(url: str) -> MediaInfo:
        """
        Fetch metadata through yt-dlp and simplify it.
        Raises ToolInvocationError when yt-dlp fails or its metadata
        does not have the expected shape.
        """
        info = await fetch_metadata(url)
        try:
            return summarize(info)
        except (AttributeError, TypeError, ValidationError) as e:
            raise ToolInvocationError("Unexpected yt-dlp metadata", str(e)) from e
