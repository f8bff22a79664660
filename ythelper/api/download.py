from typing import Optional
from fastapi import APIRouter, Request, Query
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from ythelper.models.request import MediaRequest, MissingParameter
from ythelper.services.stream import StreamRelay
from ythelper.services.ytdlp import YTDLPCommandBuilder
from ythelper.core.logging import log_debug, log_info
from ythelper.utils.locale import get_locale, safe_url_for_log
from ythelper.i18n import i18n
import functools

# The real name is only known once yt-dlp has finished
DOWNLOAD_FILENAME = "video.mp4"

router = APIRouter()

@router.get("/download")
async def download_media(
    request: Request,
    url: Optional[str] = Query(None, description="Media page URL"),
    format: Optional[str] = Query(None, description="Format id from /info or any yt-dlp format selector"),
):
    """Stream the selected variant straight from yt-dlp"""
    
    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    try:
        media_request = MediaRequest.from_query(url, format_id=format)
    except MissingParameter:
        return PlainTextResponse(_("error.missing_url"), status_code=400)
    except ValidationError:
        return PlainTextResponse(_("error.invalid_url"), status_code=400)

    safe_url = safe_url_for_log(media_request.url)
    log_info(request, _("log.starting_download", url=safe_url, format=media_request.format_id or "default"))

    cmd = YTDLPCommandBuilder.build_download_command(media_request.url, media_request.format_id)
    log_debug(request, f"yt-dlp options: {' '.join(cmd[2:])}")
    return await StreamRelay.relay(
        request,
        cmd,
        filename=DOWNLOAD_FILENAME,
        start_error=_("error.download_start_failed"),
        failure_error=_("error.download_failed"),
    )
