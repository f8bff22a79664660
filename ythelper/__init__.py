"""HTTP helper around yt-dlp: metadata, media streaming and subtitles."""

__version__ = "1.0.0"
