import pytest

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
SRT = b"1\n00:00:00,000 --> 00:00:01,000\nHello\n\n"


def chosen_language(calls):
    (args,) = [c for c in calls if "--dump-single-json" not in c]
    return args[args.index("--sub-lang") + 1]


@pytest.mark.asyncio
async def test_subtitles_missing_url(client, fake_ytdlp):
    response = await client.get("/subtitles", params={"lang": "en"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing url"}
    assert fake_ytdlp.calls == []


@pytest.mark.asyncio
async def test_subtitles_explicit_language_skips_lookup(client, fake_ytdlp):
    fake_ytdlp.configure(stream=SRT)

    response = await client.get("/subtitles", params={"url": URL, "lang": "pt-BR", "format": "VTT"})

    assert response.status_code == 200
    assert response.content == SRT
    assert response.headers["content-disposition"] == 'attachment; filename="subs.vtt"'
    assert fake_ytdlp.calls == [[
        URL,
        "--skip-download",
        "--sub-lang", "pt-BR",
        "--write-subs",
        "--sub-format", "vtt",
        "--output", "-",
    ]]


@pytest.mark.asyncio
async def test_subtitles_default_format_is_srt(client, fake_ytdlp):
    fake_ytdlp.configure(stream=SRT)

    response = await client.get("/subtitles", params={"url": URL, "lang": "en"})

    assert response.headers["content-disposition"] == 'attachment; filename="subs.srt"'
    (args,) = fake_ytdlp.calls
    assert args[args.index("--sub-format") + 1] == "srt"


@pytest.mark.asyncio
@pytest.mark.parametrize("keys, expected", [(["en", "fr"], "en"), (["fr", "en"], "fr")])
async def test_subtitles_picks_first_manual_track(client, fake_ytdlp, keys, expected):
    info = {"id": "x", "subtitles": {k: [] for k in keys}, "automatic_captions": {"es": []}}
    fake_ytdlp.configure(info=info, stream=SRT)

    response = await client.get("/subtitles", params={"url": URL})

    assert response.status_code == 200
    assert chosen_language(fake_ytdlp.calls) == expected


@pytest.mark.asyncio
async def test_subtitles_falls_back_to_auto_captions(client, fake_ytdlp):
    fake_ytdlp.configure(info={"id": "x", "automatic_captions": {"es": []}}, stream=SRT)

    response = await client.get("/subtitles", params={"url": URL})

    assert response.status_code == 200
    assert chosen_language(fake_ytdlp.calls) == "es"


@pytest.mark.asyncio
async def test_subtitles_empty_manual_set_uses_auto_captions(client, fake_ytdlp):
    fake_ytdlp.configure(info={"id": "x", "subtitles": {}, "automatic_captions": {"de": []}}, stream=SRT)

    response = await client.get("/subtitles", params={"url": URL})

    assert response.status_code == 200
    assert chosen_language(fake_ytdlp.calls) == "de"


@pytest.mark.asyncio
async def test_subtitles_none_available(client, fake_ytdlp):
    fake_ytdlp.configure(info={"id": "x", "subtitles": {}, "automatic_captions": {}})

    response = await client.get("/subtitles", params={"url": URL})

    assert response.status_code == 404
    assert response.json() == {"error": "No subtitles found"}
    assert len(fake_ytdlp.calls) == 1
    assert fake_ytdlp.stream_calls == []


@pytest.mark.asyncio
async def test_subtitles_lookup_failure_is_not_fatal(client, fake_ytdlp):
    fake_ytdlp.configure(info=None, stderr="ERROR: Video unavailable")

    response = await client.get("/subtitles", params={"url": URL})

    assert response.status_code == 404
    assert response.json() == {"error": "No subtitles found"}
    assert fake_ytdlp.stream_calls == []


@pytest.mark.asyncio
async def test_subtitles_tool_failure_before_output(client, fake_ytdlp):
    fake_ytdlp.configure(stream=b"", exit_code=1, stderr="ERROR: no subtitles for xx")

    response = await client.get("/subtitles", params={"url": URL, "lang": "xx"})

    assert response.status_code == 500
    assert response.text == "Failed to get subtitles"
