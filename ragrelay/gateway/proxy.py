"""Proxy gateway relaying model listing and chat streams to the inference backend.

The chat relay is pass-through: backend bytes are forwarded in order without
re-encoding. Each chat call owns a ``StreamSession`` whose cancellation token is
the only thing that tears the upstream request down.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel

from ragrelay.gateway.cancellation import CancellationToken, StreamSession, next_or_none
from ragrelay.gateway.config import GatewayConfig, get_gateway_config
from ragrelay.gateway.errors import CallerAborted, UpstreamError, UpstreamUnreachable

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
NDJSON_MEDIA_TYPE = "application/x-ndjson"
STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


@dataclass
class UpstreamReply:
    """A buffered upstream response relayed verbatim."""

    status_code: int
    body: bytes
    media_type: str = JSON_MEDIA_TYPE


@dataclass
class RelayResponse:
    """Status and headers of a relayed chat call, plus its body iterator.

    Status and headers are fixed before the first body byte is produced.
    """

    status_code: int
    media_type: str
    body: AsyncIterator[bytes]
    session: StreamSession
    headers: dict[str, str] = field(default_factory=lambda: dict(STREAM_HEADERS))


async def _single(data: bytes) -> AsyncIterator[bytes]:
    if data:
        yield data


class ProxyGateway:
    """Forwards requests to the inference backend over one shared httpx client."""

    def __init__(
        self,
        config: GatewayConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Optional gateway configuration.
                    Loads from environment if not provided.
            client: Optional preconfigured HTTP client (tests inject a mock transport).
        """
        self._config = config or get_gateway_config()
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                self._config.read_timeout,
                connect=self._config.connect_timeout,
            )
        )

    @property
    def config(self) -> GatewayConfig:
        return self._config

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_models(self) -> UpstreamReply:
        """Fetch the backend's model list unchanged.

        Returns:
            UpstreamReply carrying the backend status and body verbatim.

        Raises:
            UpstreamUnreachable: If the backend cannot be contacted.
        """
        url = self._config.upstream_url(self._config.models_path)
        try:
            response = await self._client.get(url)
        except httpx.RequestError as e:
            logger.error(f"Inference backend unreachable at {url}: {e!r}")
            raise UpstreamUnreachable() from e

        if not response.is_success:
            logger.warning(f"Model listing returned HTTP {response.status_code}")
        return UpstreamReply(status_code=response.status_code, body=response.content)

    async def open_chat(
        self,
        payload: BaseModel | dict[str, Any],
        token: CancellationToken | None = None,
    ) -> RelayResponse:
        """Dispatch a chat request and prepare the relay of its response.

        Args:
            payload: The outgoing chat request body.
            token: Cancellation token for this call; a fresh one is created if omitted.

        Returns:
            RelayResponse whose body streams the backend bytes, or the backend's
            error body when it answered with a non-success status.

        Raises:
            UpstreamUnreachable: If the backend cannot be contacted.
            CallerAborted: If the token fired before the backend answered.
        """
        session = StreamSession(token)
        body = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
        url = self._config.upstream_url(self._config.chat_path)
        request = self._client.build_request(
            "POST",
            url,
            json=body,
            timeout=httpx.Timeout(None, connect=self._config.connect_timeout),
        )

        try:
            upstream = await session.token.race(self._client.send(request, stream=True))
        except CallerAborted:
            logger.debug(f"Chat relay {session.id} aborted before upstream answered")
            raise
        except httpx.RequestError as e:
            session.mark_failed()
            logger.error(f"Inference backend unreachable at {url}: {e!r}")
            raise UpstreamUnreachable() from e

        session.attach(upstream)
        media_type = upstream.headers.get("content-type") or NDJSON_MEDIA_TYPE

        if not upstream.is_success:
            error_body = await self._read_error_body(session)
            err = UpstreamError(upstream.status_code, error_body)
            logger.warning(f"Chat relay {session.id}: {err}: {error_body[:200]!r}")
            return RelayResponse(
                status_code=upstream.status_code,
                media_type=media_type,
                body=_single(error_body),
                session=session,
            )

        if upstream.status_code == 204 or upstream.headers.get("content-length") == "0":
            session.mark_completed()
            await session.aclose()
            return RelayResponse(
                status_code=upstream.status_code,
                media_type=media_type,
                body=_single(b""),
                session=session,
            )

        return RelayResponse(
            status_code=upstream.status_code,
            media_type=media_type,
            body=self._relay(session),
            session=session,
        )

    async def _read_error_body(self, session: StreamSession) -> bytes:
        try:
            return await session.upstream.aread()
        except httpx.HTTPError as e:
            logger.error(f"Chat relay {session.id}: failed to read upstream error body: {e!r}")
            return b""
        finally:
            session.mark_failed()
            await session.aclose()

    async def _relay(self, session: StreamSession) -> AsyncIterator[bytes]:
        """Yield upstream body chunks until the body ends, fails or the token fires."""
        chunks = session.upstream.aiter_raw()
        session.mark_streaming()
        try:
            while True:
                chunk = await session.token.race(next_or_none(chunks))
                if chunk is None:
                    session.mark_completed()
                    break
                yield chunk
        except CallerAborted:
            logger.debug(f"Chat relay {session.id} stopped by caller ({session.token.reason})")
        except httpx.HTTPError as e:
            if session.token.cancelled:
                logger.debug(f"Chat relay {session.id} closed after cancellation: {e!r}")
            else:
                session.mark_failed()
                logger.error(f"Upstream stream error on chat relay {session.id}: {e!r}")
        finally:
            if not session.finished:
                # Output closed before the relay reached the end of the body.
                session.token.cancel("output closed")
            await session.aclose()
