from typing import Optional
from fastapi import APIRouter, Request, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from ythelper.models.request import MediaRequest, MissingParameter
from ythelper.services.stream import StreamRelay
from ythelper.services.subtitles import choose_language
from ythelper.services.ytdlp import YTDLPCommandBuilder, ToolInvocationError, fetch_metadata
from ythelper.core.logging import log_debug, log_info, log_warning
from ythelper.utils.locale import get_locale, safe_url_for_log
from ythelper.i18n import i18n
import functools

router = APIRouter()

@router.get("/subtitles")
async def get_subtitles(
    request: Request,
    url: Optional[str] = Query(None, description="Media page URL"),
    lang: Optional[str] = Query(None, description="Subtitle language, first available when omitted"),
    format: Optional[str] = Query(None, description="Subtitle format (srt, vtt, ...)"),
):
    """Stream one subtitle track"""
    
    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    try:
        media_request = MediaRequest.from_query(url, language=lang or None, subtitle_format=format)
    except MissingParameter:
        return JSONResponse({"error": _("error.missing_url")}, status_code=400)
    except ValidationError:
        return JSONResponse({"error": _("error.invalid_url")}, status_code=400)

    safe_url = safe_url_for_log(media_request.url)
    language = media_request.language

    if not language:
        # A failed lookup only means there is nothing to choose from
        try:
            info = await fetch_metadata(media_request.url)
        except ToolInvocationError as e:
            log_warning(request, _("log.subtitle_prefetch_failed", reason=e.diagnostics[:200]))
            info = None
        language = choose_language(info)

    if not language:
        return JSONResponse({"error": _("error.no_subtitles")}, status_code=404)

    subtitle_format = media_request.subtitle_format
    log_info(request, _("log.starting_subtitles", url=safe_url, lang=language, format=subtitle_format))

    cmd = YTDLPCommandBuilder.build_subtitles_command(media_request.url, language, subtitle_format)
    log_debug(request, f"yt-dlp options: {' '.join(cmd[2:])}")
    return await StreamRelay.relay(
        request,
        cmd,
        filename=f"subs.{subtitle_format}",
        start_error=_("error.subtitles_failed"),
        failure_error=_("error.subtitles_failed"),
    )
