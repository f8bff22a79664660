from typing import Any, AsyncIterator, Deque, Dict, List, NamedTuple, Optional
from collections import deque
import asyncio
import json
from ythelper.config.settings import config

CHUNK_SIZE = 64 * 1024
STDERR_MAX_LINES = 50


class ToolInvocationError(Exception):
    """yt-dlp could not be started, failed, or produced unusable output"""

    def __init__(self, message: str, diagnostics: str = ""):
        super().__init__(message)
        self.diagnostics = diagnostics or message


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: Optional[float] = None,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess to completion, buffering its output.
        A timed-out or interrupted process is killed before re-raising.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise


class ProcessStream:
    """
    A running process whose stdout is consumed incrementally.

    `chunks()` yields stdout bytes in the order they are produced,
    `wait()` resolves to the exit code once the process has finished.
    stderr is drained in the background so the child never blocks on it;
    the last lines are kept in `diagnostics` for error reporting.
    """

    def __init__(self, process: asyncio.subprocess.Process):
        self.process = process
        self._stderr_lines: Deque[str] = deque(maxlen=STDERR_MAX_LINES)
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    @classmethod
    async def spawn(cls, cmd: List[str]) -> "ProcessStream":
        """Start the process and return as soon as it is running"""
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            raise ToolInvocationError(f"Failed to start {cmd[0]}", str(e)) from e
        return cls(process)

    async def _drain_stderr(self) -> None:
        """Drain stderr to prevent buffer deadlock"""
        # Progress output uses bare \r, so lines can grow past readline()'s limit
        pending = b""
        while True:
            data = await self.process.stderr.read(4096)
            if not data:
                break
            lines = (pending + data).replace(b"\r", b"\n").split(b"\n")
            pending = lines.pop()[-4096:]
            self._stderr_lines.extend(line.decode(errors="replace").strip() for line in lines if line.strip())
        if pending.strip():
            self._stderr_lines.append(pending.decode(errors="replace").strip())

    async def chunks(self, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.process.stdout.read(chunk_size)
            if not chunk:
                break
            yield chunk

    async def wait(self) -> int:
        returncode = await self.process.wait()
        # stderr hits EOF once the process is gone
        await self._stderr_task
        return returncode

    @property
    def diagnostics(self) -> str:
        return "\n".join(self._stderr_lines)


class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching a single consolidated JSON document"""
        return [
            config.ytdlp.binary,
            url,
            '--dump-single-json',
            '--no-warnings',
            '--no-check-certificates',
            '--prefer-free-formats',
        ]

    @staticmethod
    def build_download_command(url: str, format_id: Optional[str] = None) -> List[str]:
        """Build command for streaming the media itself to stdout"""
        cmd = [
            config.ytdlp.binary,
            url,
            '--output', '-',
        ]

        # No format lets yt-dlp pick its own default
        if format_id:
            cmd.extend(['--format', format_id])

        cmd.append('--no-warnings')
        cmd.append('--prefer-free-formats')

        return cmd

    @staticmethod
    def build_subtitles_command(url: str, language: str, subtitle_format: str) -> List[str]:
        """Build command for writing one subtitle track to stdout"""
        return [
            config.ytdlp.binary,
            url,
            '--skip-download',
            '--sub-lang', language,
            '--write-subs',
            '--sub-format', subtitle_format,
            '--output', '-',
        ]


async def fetch_metadata(url: str) -> Dict[str, Any]:
    """Run yt-dlp in JSON mode and return the parsed metadata document"""
    cmd = YTDLPCommandBuilder.build_info_command(url)

    try:
        result = await SubprocessExecutor.run(cmd, timeout=config.ytdlp.info_timeout_seconds)
    except asyncio.TimeoutError as e:
        raise ToolInvocationError("yt-dlp timed out", f"No response after {config.ytdlp.info_timeout_seconds}s") from e
    except OSError as e:
        raise ToolInvocationError(f"Failed to start {cmd[0]}", str(e)) from e

    if result.returncode != 0:
        error_msg = result.stderr.decode(errors="replace").strip()
        raise ToolInvocationError(
            f"yt-dlp exited with code {result.returncode}",
            error_msg or f"yt-dlp exited with code {result.returncode}"
        )

    try:
        info = json.loads(result.stdout.decode(errors="replace"))
    except json.JSONDecodeError as e:
        raise ToolInvocationError("Malformed yt-dlp output", str(e)) from e

    if not isinstance(info, dict):
        raise ToolInvocationError("Malformed yt-dlp output", "Expected a JSON object")

    return info


async def probe_version() -> str:
    """Return `yt-dlp --version`, or "unknown" if it cannot be run"""
    try:
        result = await SubprocessExecutor.run([config.ytdlp.binary, '--version'], timeout=10.0)
    except (OSError, asyncio.TimeoutError):
        return "unknown"
    if result.returncode != 0:
        return "unknown"
    return result.stdout.decode(errors="replace").strip() or "unknown"
