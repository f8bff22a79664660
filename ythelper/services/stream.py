from typing import AsyncIterator, List
from fastapi import Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from ythelper.core.logging import log_error, log_info
from ythelper.services.ytdlp import ProcessStream, ToolInvocationError
from ythelper.utils.filename import attachment_header


class StreamAborted(RuntimeError):
    """yt-dlp failed after part of the body had already been sent"""


class StreamRelay:
    """Pipe a yt-dlp process's stdout into an HTTP response"""

    @staticmethod
    async def relay(
        request: Request,
        cmd: List[str],
        filename: str,
        start_error: str,
        failure_error: str,
    ) -> Response:
        """
        Spawn `cmd` and stream its stdout as an attachment.

        The status line is only committed once the first chunk has arrived,
        so a process that fails before producing output still gets a 500.
        After that, a failing process aborts the body instead.
        """
        try:
            stream = await ProcessStream.spawn(cmd)
        except ToolInvocationError as e:
            log_error(request, f"{e}: {e.diagnostics}")
            return PlainTextResponse(start_error, status_code=500)

        chunks = stream.chunks()
        try:
            first = await chunks.__anext__()
        except StopAsyncIteration:
            first = b""

        if not first:
            returncode = await stream.wait()
            if returncode != 0:
                log_error(request, f"yt-dlp exited with code {returncode}: {stream.diagnostics[:500]}")
                return PlainTextResponse(failure_error, status_code=500)

        async def generate() -> AsyncIterator[bytes]:
            sent = len(first)
            if first:
                yield first
            async for chunk in chunks:
                sent += len(chunk)
                yield chunk

            returncode = await stream.wait()
            if returncode != 0:
                log_error(request, f"yt-dlp exited with code {returncode} after {sent} bytes: {stream.diagnostics[:500]}")
                # Headers are gone already; dropping the connection is all that is left
                raise StreamAborted(f"yt-dlp exited with code {returncode}")

            log_info(request, f"Stream finished: {sent} bytes")

        return StreamingResponse(
            generate(),
            media_type="application/octet-stream",
            headers={
                "Content-Disposition": attachment_header(filename),
                "X-Content-Type-Options": "nosniff",
                "Cache-Control": "no-cache",
            },
        )
