import json
import os
import stat
import sys

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ythelper.config.settings import config
from ythelper.infra.rate_limit import rate_limiter
from ythelper.main import app

# Stand-in for yt-dlp: logs its argv and replays scenario.json from its own directory
FAKE_YTDLP = """#!{python}
import json
import os
import sys

here = os.path.dirname(os.path.abspath(__file__))
args = sys.argv[1:]
with open(os.path.join(here, "calls.jsonl"), "a") as f:
    f.write(json.dumps(args) + "\\n")
with open(os.path.join(here, "scenario.json")) as f:
    scenario = json.load(f)

if "--dump-single-json" in args:
    if "info_raw" in scenario:
        sys.stdout.write(scenario["info_raw"])
        sys.exit(0)
    if scenario.get("info") is None:
        sys.stderr.write(scenario.get("stderr", "ERROR: Unsupported URL"))
        sys.exit(1)
    sys.stdout.write(json.dumps(scenario["info"]))
    sys.exit(0)

data = bytes.fromhex(scenario.get("stream_hex", ""))
half = len(data) // 2
sys.stdout.buffer.write(data[:half])
sys.stdout.buffer.flush()
sys.stdout.buffer.write(data[half:])
sys.stdout.buffer.flush()
sys.stderr.write(scenario.get("stderr", ""))
sys.exit(scenario.get("exit_code", 0))
"""


class FakeYtDlp:
    def __init__(self, root):
        self.root = root
        self.path = root / "yt-dlp"
        self.path.write_text(FAKE_YTDLP.format(python=sys.executable))
        self.path.chmod(self.path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        self.configure()

    def configure(self, info=None, stream=b"", exit_code=0, stderr=None, info_raw=None):
        scenario = {"info": info, "stream_hex": stream.hex(), "exit_code": exit_code}
        if stderr is not None:
            scenario["stderr"] = stderr
        if info_raw is not None:
            scenario["info_raw"] = info_raw
        (self.root / "scenario.json").write_text(json.dumps(scenario))

    @property
    def calls(self):
        log = self.root / "calls.jsonl"
        if not os.path.exists(log):
            return []
        return [json.loads(line) for line in log.read_text().splitlines()]

    @property
    def stream_calls(self):
        return [c for c in self.calls if "--dump-single-json" not in c]


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch):
    monkeypatch.setattr(config.rate_limit, "enabled", False)
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def fake_ytdlp(tmp_path, monkeypatch):
    fake = FakeYtDlp(tmp_path)
    monkeypatch.setattr(config.ytdlp, "binary", str(fake.path))
    return fake


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def sample_info():
    return {
        "id": "dQw4w9WgXcQ",
        "title": "Sample video",
        "uploader": "Someone",
        "duration": 212,
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg",
        "view_count": 1234,
        "formats": [
            {
                "format_id": "18",
                "ext": "mp4",
                "width": 640,
                "height": 360,
                "acodec": "mp4a.40.2",
                "vcodec": "avc1.42001E",
                "filesize": 2048000,
                "format_note": "360p",
            },
            {
                "format_id": "140",
                "ext": "m4a",
                "acodec": "mp4a.40.2",
                "vcodec": "none",
                "filesize_approx": 1536,
                "format_note": "medium",
            },
            {
                "format_id": "sb0",
                "ext": "mhtml",
                "acodec": "none",
                "vcodec": "none",
                "format_note": "storyboard",
            },
            {
                "format_id": "hls-720",
                "ext": "mp4",
                "width": 1280,
                "height": 720,
                "url": "https://example.com/720.m3u8",
            },
        ],
        "subtitles": {"fr": [{"ext": "vtt"}], "en": [{"ext": "vtt"}]},
        "automatic_captions": {"de": [], "es": []},
    }
