"""Tests for the Zhipu completion streamer, its frames and credentials."""

import asyncio
import json

import httpx
import pytest
from jose import jwt

from moya.core.errors import ConfigurationError, StreamError
from moya.domain.models import Delta, Done, Malformed, StreamState
from moya.infrastructure.completion import ZhipuCompletionStreamer, generate_token, parse_frame

API_KEY = "key-id.key-secret"
URL = "https://open.bigmodel.cn/api/paas/v4/chat/completions"


def frame(content: str) -> bytes:
    body = {"choices": [{"index": 0, "delta": {"role": "assistant", "content": content}}]}
    return f"data: {json.dumps(body)}\n\n".encode()


DONE = b"data: [DONE]\n\n"


class BrokenStream(httpx.AsyncByteStream):
    """Body that delivers some chunks and then loses the connection."""

    def __init__(self, chunks: list[bytes]):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise httpx.ReadError("connection reset by peer")


class Recorder:
    def __init__(self):
        self.increments: list[str] = []
        self.errors: list[Exception] = []

    def on_increment(self, text: str) -> None:
        self.increments.append(text)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)


def make_streamer(handler) -> ZhipuCompletionStreamer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ZhipuCompletionStreamer(api_key=API_KEY, url=URL, system_prompt="You write fiction.", client=client)


async def test_deltas_delivered_in_order():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        pieces = ["The ", "rain ", "stopped", " at", " dawn."]
        return httpx.Response(200, content=b"".join(frame(p) for p in pieces) + DONE)

    recorder = Recorder()
    outcome = await make_streamer(handler).stream("prompt text", recorder.on_increment, recorder.on_error)

    assert recorder.increments == ["The ", "rain ", "stopped", " at", " dawn."]
    assert recorder.errors == []
    assert outcome.state is StreamState.COMPLETED
    assert outcome.increments == 5
    assert seen["auth"].startswith("Bearer ")
    assert seen["body"]["stream"] is True
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "You write fiction."},
        {"role": "user", "content": "prompt text"},
    ]


async def test_failure_mid_stream_keeps_earlier_increments():
    def handler(request):
        return httpx.Response(200, stream=BrokenStream([frame("one"), frame("two")]))

    recorder = Recorder()
    outcome = await make_streamer(handler).stream("p", recorder.on_increment, recorder.on_error)

    assert recorder.increments == ["one", "two"]
    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], StreamError)
    assert recorder.errors[0].partial == 2
    assert outcome.state is StreamState.FAILED
    assert not outcome.cancelled


async def test_malformed_frames_are_skipped():
    def handler(request):
        body = frame("a") + b"data: {not json\n\n" + b'data: {"choices": []}\n\n' + frame("b") + DONE
        return httpx.Response(200, content=body)

    recorder = Recorder()
    outcome = await make_streamer(handler).stream("p", recorder.on_increment, recorder.on_error)

    assert recorder.increments == ["a", "b"]
    assert recorder.errors == []
    assert outcome.skipped_frames == 2
    assert outcome.succeeded


async def test_error_status_reports_once():
    def handler(request):
        return httpx.Response(401, json={"error": {"code": "1002", "message": "token expired"}})

    recorder = Recorder()
    outcome = await make_streamer(handler).stream("p", recorder.on_increment, recorder.on_error)

    assert recorder.increments == []
    assert len(recorder.errors) == 1
    assert "401" in str(recorder.errors[0])
    assert "token expired" in str(recorder.errors[0])
    assert outcome.state is StreamState.FAILED


async def test_stream_without_done_completes():
    def handler(request):
        return httpx.Response(200, content=frame("only"))

    recorder = Recorder()
    outcome = await make_streamer(handler).stream("p", recorder.on_increment, recorder.on_error)

    assert recorder.increments == ["only"]
    assert outcome.succeeded


async def test_cancel_stops_before_next_increment():
    def handler(request):
        return httpx.Response(200, content=b"".join(frame(str(i)) for i in range(5)) + DONE)

    cancel = asyncio.Event()
    recorder = Recorder()

    def on_increment(text):
        recorder.on_increment(text)
        if len(recorder.increments) == 2:
            cancel.set()

    outcome = await make_streamer(handler).stream("p", on_increment, recorder.on_error, cancel)

    assert recorder.increments == ["0", "1"]
    assert len(recorder.errors) == 1
    assert recorder.errors[0].cancelled
    assert outcome.cancelled
    assert outcome.state is StreamState.FAILED


async def test_fresh_token_per_call():
    tokens = []

    def handler(request):
        tokens.append(request.headers["Authorization"])
        return httpx.Response(200, content=DONE)

    streamer = make_streamer(handler)
    recorder = Recorder()
    await streamer.stream("p", recorder.on_increment, recorder.on_error)
    await asyncio.sleep(0.002)
    await streamer.stream("p", recorder.on_increment, recorder.on_error)

    assert len(tokens) == 2
    assert tokens[0] != tokens[1]


def test_generate_token_claims():
    token = generate_token(API_KEY, ttl_seconds=60, now_ms=1_700_000_000_000)

    header = jwt.get_unverified_header(token)
    claims = jwt.decode(token, "key-secret", algorithms=["HS256"], options={"verify_exp": False})

    assert header["alg"] == "HS256"
    assert header["sign_type"] == "SIGN"
    assert claims == {"api_key": "key-id", "timestamp": 1_700_000_000_000, "exp": 1_700_000_060_000}


@pytest.mark.parametrize("api_key", ["", "no-separator", ".secret-only", "id-only."])
def test_invalid_api_key_rejected(api_key):
    with pytest.raises(ConfigurationError):
        ZhipuCompletionStreamer(api_key=api_key)


def test_parse_frame():
    assert parse_frame("") is None
    assert parse_frame(": keep-alive") is None
    assert isinstance(parse_frame("data: [DONE]"), Done)
    assert parse_frame(frame("hi").decode().strip()) == Delta(text="hi")
    assert parse_frame(frame("").decode().strip()) is None
    assert isinstance(parse_frame("data: {oops"), Malformed)
    assert isinstance(parse_frame('data: {"choices": [{"delta": {"content": 7}}]}'), Malformed)
