from typing import Any, Dict, Optional


def choose_language(info: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Pick a subtitle language from metadata.

    First manual subtitle key wins, then the first auto caption key.
    Order is whatever yt-dlp reported.
    """
    if not info:
        return None

    for field in ("subtitles", "automatic_captions"):
        tracks = info.get(field) or {}
        for language in tracks:
            return language

    return None
