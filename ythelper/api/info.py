from typing import Optional
from fastapi import APIRouter, Request, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from ythelper.models.request import MediaRequest, MissingParameter
from ythelper.models.response import MediaInfo
from ythelper.services.info import MediaInfoService
from ythelper.services.ytdlp import ToolInvocationError
from ythelper.core.logging import log_info, log_error
from ythelper.utils.locale import get_locale, safe_url_for_log
from ythelper.i18n import i18n
import functools

router = APIRouter()

@router.get("/info", response_model=MediaInfo)
async def get_media_info(request: Request, url: Optional[str] = Query(None, description="Media page URL")):
    """Get simplified media metadata"""
    
    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    try:
        media_request = MediaRequest.from_query(url)
    except MissingParameter:
        return JSONResponse({"error": _("error.missing_url")}, status_code=400)
    except ValidationError:
        return JSONResponse({"error": _("error.invalid_url")}, status_code=400)
    
    safe_url = safe_url_for_log(media_request.url)
    log_info(request, _("log.fetching_info", url=safe_url))
    
    try:
        media_info = await MediaInfoService.fetch(media_request.url)
    except ToolInvocationError as e:
        log_error(request, f"Info error for {safe_url}: {e}: {e.diagnostics[:500]}")
        return JSONResponse(
            {"error": _("error.fetch_info_failed"), "details": e.diagnostics},
            status_code=500
        )

    log_info(request, _("log.info_retrieved", title=media_info.title))
    return media_info
