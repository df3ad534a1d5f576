"""Chat session orchestrator.

Sequences one exchange as: admission check -> token -> payload -> POST ->
stream decode -> history. A session is not safe for overlapping calls;
callers must await one exchange before starting the next.

    async with ChatSession(Model.GPT4_MINI) as chat:
        await chat.initialize()
        reply = await chat.send_message("Hello!")
        async for fragment in chat.stream_message("Tell me more"):
            print(fragment, end="")
"""

import asyncio
import inspect
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping, Sequence
from contextlib import aclosing
from enum import Enum

import httpx

from duckchat.api.schemas import ChatPayload, ImageInput, Message, history_adapter
from duckchat.core import rate_limiter
from duckchat.core.config import SessionConfig
from duckchat.core.errors import (
    AuthError,
    HttpError,
    ServiceUnreachableError,
    TransientServiceError,
)
from duckchat.core.log_setup import session_logger
from duckchat.core.models import (
    DEFAULT_MODEL,
    available_models,
    supports_advanced_tools,
    supports_images,
    supports_web_search,
)
from duckchat.core.payload_builder import build_payload, format_content
from duckchat.core.profile import DEFAULT_PROFILE, TOKEN_HEADER, ClientProfile
from duckchat.core.stream_decoder import StreamDecoder
from duckchat.core.token_provider import TokenProvider

# 418 is the anti-automation rejection, 429 the service's own rate limit.
RETRYABLE_STATUS_CODES = frozenset({418, 429})


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SENDING = "sending"
    CLEARED = "cleared"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class ChatSession:
    """One conversation with the chat service.

    Owns the history, the current VQD token and the retry counter. The HTTP
    client is created on demand unless one is injected; injected clients are
    left open by aclose().
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        config: SessionConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        profile: ClientProfile = DEFAULT_PROFILE,
        token_provider: TokenProvider | None = None,
        clock: Callable[[], float] = _monotonic_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.model_id = str(getattr(model_id, "value", model_id))
        self.config = config or SessionConfig()
        self.retry_count = 0
        self.state = SessionState.UNINITIALIZED

        self._history: list[Message] = []
        self._token: str | None = None
        self._profile = profile
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.config.timeout)
        self._token_provider = token_provider or TokenProvider(self._client, profile)
        self._clock = clock
        self._sleep = sleep
        self._log = session_logger(self.config.logging_enabled)

    async def __aenter__(self) -> "ChatSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this session created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def token(self) -> str | None:
        return self._token

    # Lifecycle

    async def initialize(self) -> "ChatSession":
        """Acquire a session token and move to READY.

        Raises:
            AuthError: If no token could be obtained; state is left unchanged.
        """
        self._token = await self._token_provider.acquire()
        self.state = SessionState.READY
        self._log.info("session.initialized", model=self.model_id)
        return self

    async def clear(self) -> None:
        """Drop history and token, then fetch a fresh token.

        Rate-limit windows are kept. If the new token cannot be fetched the
        session stays CLEARED and the next send initializes again.
        """
        self._history = []
        self._token = None
        self.retry_count = 0
        self.state = SessionState.CLEARED
        self._log.info("session.cleared")
        await self.initialize()

    def set_model(self, model_id: str) -> None:
        """Switch models. History is kept; capabilities apply from the next request."""
        self.model_id = str(getattr(model_id, "value", model_id))
        self._log.info("session.model_changed", model=self.model_id)

    def supports_images(self) -> bool:
        return supports_images(self.model_id)

    def supports_advanced_tools(self) -> bool:
        return supports_advanced_tools(self.model_id)

    @staticmethod
    def available_models() -> list[str]:
        return available_models()

    # Tools

    def configure_tools(self, **flags: bool) -> None:
        """Update tool flags for the next requests, e.g. news_search=True."""
        self.config.tools.update(**flags)
        self._log.info("tools.configured", tools=self.config.tools.as_dict())

    def enable_web_search(self) -> bool:
        """Turn on web search. Returns False if the current model lacks it."""
        if not supports_web_search(self.model_id):
            self._log.warning("tools.web_search_unsupported", model=self.model_id)
            return False
        self.config.tools.web_search = True
        self._log.info("tools.web_search_enabled")
        return True

    def enable_news_search(self) -> None:
        self.config.tools.news_search = True
        self._log.info("tools.news_search_enabled")

    def enable_local_features(self) -> None:
        """Turn on local search and weather forecast."""
        self.config.tools.local_search = True
        self.config.tools.weather_forecast = True
        self._log.info("tools.local_features_enabled")

    # History

    def get_history(self) -> list[Message]:
        return list(self._history)

    def export_history(self) -> list[dict]:
        """History in wire form, suitable for json.dumps."""
        return [m.model_dump(by_alias=True) for m in self._history]

    def load_history(self, items: Iterable[Message | Mapping]) -> None:
        """Replace history with previously exported messages.

        Raises:
            pydantic.ValidationError: If an item is not a valid message.
        """
        self._history = history_adapter.validate_python(
            [m.model_dump(by_alias=True) if isinstance(m, Message) else dict(m) for m in items]
        )
        self._log.info("session.history_loaded", messages=len(self._history))

    def build_payload(self) -> ChatPayload:
        return build_payload(self.model_id, self.config.tools, self._history)

    # Exchange

    async def send_message(
        self,
        content: str,
        images: Sequence[ImageInput | Mapping] | None = None,
    ) -> str:
        """Send a message and return the complete assistant reply."""
        return await self.send_message_stream(content, None, images)

    async def send_message_stream(
        self,
        content: str,
        on_chunk: Callable[[str], object] | None = None,
        images: Sequence[ImageInput | Mapping] | None = None,
    ) -> str:
        """Send a message, passing each fragment to `on_chunk` as it arrives.

        Args:
            content: User message text.
            on_chunk: Optional sink, sync or async, called once per fragment.
            images: Optional images for image-capable models.

        Returns:
            The complete assistant reply.
        """
        parts: list[str] = []
        async with aclosing(self.stream_message(content, images)) as fragments:
            async for fragment in fragments:
                parts.append(fragment)
                if on_chunk is not None:
                    result = on_chunk(fragment)
                    if inspect.isawaitable(result):
                        await result
        return "".join(parts)

    async def stream_message(
        self,
        content: str,
        images: Sequence[ImageInput | Mapping] | None = None,
    ) -> AsyncIterator[str]:
        """Send a message and yield reply fragments as they are decoded.

        The user turn is appended before the request goes out and stays in
        history whatever happens next. The assistant turn is appended only
        once the stream has ended; closing the iterator early discards the
        partial reply.

        Raises:
            AuthError: Token acquisition failed.
            TransientServiceError: 418/429 persisted through every retry.
            HttpError: Any other non-2xx status.
            ServiceUnreachableError: The request could not be sent.
            StreamError: Reading the response body failed.
        """
        await self._wait_for_admission()

        if self.state is not SessionState.READY or self._token is None:
            await self.initialize()

        message_content = format_content(content, images, self.model_id)
        self._history.append(Message(role="user", content=message_content))
        self._log.info(
            "chat.send",
            model=self.model_id,
            preview=content[:50],
            has_images=not isinstance(message_content, str),
            history=len(self._history),
        )

        self.state = SessionState.SENDING
        try:
            response = await self._post_with_retry()
            decoder = StreamDecoder()
            try:
                async with aclosing(decoder.decode(response.aiter_bytes())) as frames:
                    async for frame in frames:
                        if frame.text_delta:
                            yield frame.text_delta
            finally:
                await response.aclose()

            if not decoder.completed:
                self._log.warning("chat.stream_truncated", chars=len(decoder.text))
            if decoder.skipped_lines:
                self._log.debug("chat.stream_noise", skipped=decoder.skipped_lines)

            self._history.append(Message(role="assistant", content=decoder.text))
            self._log.info("chat.reply", chars=len(decoder.text), completed=decoder.completed)
        finally:
            if self.state is SessionState.SENDING:
                self.state = SessionState.READY if self._token else SessionState.UNINITIALIZED

    async def _wait_for_admission(self) -> None:
        policy = self.config.rate_limit
        now = self._clock()
        if not rate_limiter.can_admit(policy, now):
            delay = rate_limiter.wait_ms(policy, now)
            if delay > 0:
                self._log.warning("rate_limit.wait", wait_ms=delay)
                await self._sleep(delay / 1000)
            now = self._clock()
            rate_limiter.can_admit(policy, now)
        rate_limiter.record(policy, now)

    async def _post_with_retry(self) -> httpx.Response:
        """POST the current payload, re-issuing on 418/429 while retries remain.

        Returns an open streaming response with a 2xx status; the caller
        must close it.
        """
        while True:
            response = await self._post_chat()
            if response.status_code not in RETRYABLE_STATUS_CODES:
                break

            status, reason = response.status_code, response.reason_phrase
            await response.aclose()

            if self.retry_count >= self.config.max_retries:
                attempts = self.retry_count + 1
                self.retry_count = 0
                self._log.error("chat.retries_exhausted", status=status, attempts=attempts)
                raise TransientServiceError(status, reason, attempts=attempts)

            self.retry_count += 1
            self._log.warning(
                "chat.retry",
                status=status,
                attempt=self.retry_count,
                max_retries=self.config.max_retries,
            )
            await self._sleep(self.config.retry_delay_ms / 1000)
            try:
                self._token = await self._token_provider.acquire()
            except AuthError:
                self._token = None
                self.retry_count = 0
                raise

        if not response.is_success:
            await response.aclose()
            self._log.error("chat.http_error", status=response.status_code)
            raise HttpError(response.status_code, response.reason_phrase)

        new_token = response.headers.get(TOKEN_HEADER)
        if new_token:
            self._token = new_token
        self.retry_count = 0
        return response

    async def _post_chat(self) -> httpx.Response:
        request = self._client.build_request(
            "POST",
            self._profile.chat_url,
            headers=self._profile.chat_headers(self._token or ""),
            json=self.build_payload().to_wire(),
            timeout=self.config.timeout,
        )
        try:
            return await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            self._log.error("chat.request_failed", error=str(e))
            raise ServiceUnreachableError(str(e)) from e
