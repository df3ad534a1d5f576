"""Shared fixtures: a scripted fake of the chat service and a manual clock."""

import json

import httpx
import pytest
import pytest_asyncio

from duckchat.core.config import SessionConfig
from duckchat.core.profile import DEFAULT_PROFILE
from duckchat.core.rate_limiter import RateLimitPolicy
from duckchat.core.session import ChatSession


def sse_body(*deltas: str, done: bool = True, noise: bool = False) -> bytes:
    """Render deltas the way the service streams them."""
    lines = []
    for delta in deltas:
        lines.append("event: m")
        lines.append(f"data: {json.dumps({'message': delta, 'role': 'assistant'})}")
        lines.append("")
        if noise:
            lines.append("data: not-json")
    if done:
        lines.append("data: [DONE]")
    return ("\n".join(lines) + "\n").encode("utf-8")


class ChunkedStream(httpx.AsyncByteStream):
    """Async body that yields fixed chunks, optionally failing afterwards."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None):
        self._chunks = chunks
        self._error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    async def aclose(self) -> None:
        self.closed = True


class FakeDuckChat:
    """httpx.MockTransport handler for the status and chat endpoints.

    Status probes hand out tok-1, tok-2, ... unless `status_token` is set to
    None (no header). Chat answers come from `chat_replies`, a queue of
    httpx.Response objects; when empty a default two-fragment reply is used.
    """

    def __init__(self):
        self.status_calls = 0
        self.status_token: str | None = "tok"
        self.chat_requests: list[httpx.Request] = []
        self.chat_replies: list[httpx.Response] = []
        self.rotate_token = True

    def queue(self, *responses: httpx.Response) -> None:
        self.chat_replies.extend(responses)

    def reply(self, status: int = 200, body: bytes | None = None, **kwargs) -> httpx.Response:
        return httpx.Response(status, content=sse_body("Hello", " world") if body is None else body, **kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(DEFAULT_PROFILE.status_url):
            self.status_calls += 1
            if self.status_token is None:
                return httpx.Response(200)
            return httpx.Response(200, headers={"x-vqd-4": f"{self.status_token}-{self.status_calls}"})

        self.chat_requests.append(request)
        if self.chat_replies:
            response = self.chat_replies.pop(0)
        else:
            response = self.reply()
        if self.rotate_token and response.status_code == 200 and "x-vqd-4" not in response.headers:
            response.headers["x-vqd-4"] = f"rotated-{len(self.chat_requests)}"
        return response

    def last_payload(self) -> dict:
        return json.loads(self.chat_requests[-1].content)


class ManualClock:
    """Millisecond clock advanced only by the fake sleep."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds * 1000


@pytest.fixture
def fake_service() -> FakeDuckChat:
    return FakeDuckChat()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest_asyncio.fixture
async def http_client(fake_service):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_service)) as client:
        yield client


@pytest.fixture
def make_session(http_client, clock):
    """Factory for sessions wired to the fake service and manual clock."""

    def _make(model_id: str = "gpt-4o-mini", **config_kwargs) -> ChatSession:
        config_kwargs.setdefault("retry_delay_ms", 500)
        config_kwargs.setdefault("rate_limit", RateLimitPolicy(max_per_minute=100, max_per_hour=1000))
        return ChatSession(
            model_id,
            SessionConfig(**config_kwargs),
            client=http_client,
            clock=clock,
            sleep=clock.sleep,
        )

    return _make
