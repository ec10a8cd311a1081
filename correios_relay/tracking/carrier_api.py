"""
Correios API integration.
Obtains access tokens and fetches tracking events for a list of codes.
"""

import asyncio
from typing import Any, Optional
import aiohttp
import orjson
from loguru import logger
from pydantic import ValidationError

from correios_relay.config import RelayConfig
from correios_relay.errors import (
    AuthError,
    EncodeError,
    TransportError,
    UpstreamError,
)
from correios_relay.models import Credential, parse_tracking_payload


class CorreiosAPI:
    """
    Correios token and tracking API client.

    Requires Correios "Meu Correios" credentials:
    - Username
    - Password (or access code)

    Every call is a single attempt bounded by ``config.request_timeout``.
    """

    def __init__(self, config: RelayConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure HTTP session is created."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "CorreiosAPI":
        await self._ensure_session()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def _headers(self, authorization: str) -> dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "authorization": authorization,
        }

    def _basic_auth(self) -> str:
        return f"Basic {self.config.basic_credentials}"

    def _tracking_auth(self, credential: Credential) -> str:
        if self.config.tracking_auth_scheme == "bearer":
            return f"Bearer {credential.token}"
        return self._basic_auth()

    async def authenticate(self) -> Credential:
        """
        Request a new access token.

        Raises:
            AuthError: on network failure, non-200 status or malformed body
        """
        session = await self._ensure_session()

        try:
            async with session.post(
                self.config.auth_url,
                headers=self._headers(self._basic_auth()),
            ) as resp:
                body = await resp.read()
                if resp.status != 200:
                    raise AuthError(
                        f"Correios auth returned {resp.status}: {body[:200]!r}",
                        status_code=resp.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthError("could not reach Correios auth endpoint", cause=e) from e

        try:
            credential = Credential.model_validate(orjson.loads(body))
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise AuthError("could not decode Correios auth response", cause=e) from e

        logger.info(f"Correios token obtained, expires at {credential.expires_at.isoformat()}")
        return credential

    async def track(self, codes: list[str], credential: Credential) -> list[dict[str, Any]]:
        """
        Fetch tracking objects for the given codes.

        Args:
            codes: Tracking codes, sent as ``{"objetos": codes}``
            credential: A currently valid access credential

        Raises:
            EncodeError: the request body could not be serialized
            TransportError: network failure, timeout or carrier 5xx
            UpstreamError: carrier 4xx or a malformed tracking payload
        """
        try:
            payload = orjson.dumps({"objetos": codes})
        except TypeError as e:
            raise EncodeError("could not encode tracking request", cause=e) from e

        session = await self._ensure_session()

        try:
            async with session.post(
                self.config.tracking_url,
                data=payload,
                headers=self._headers(self._tracking_auth(credential)),
            ) as resp:
                body = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError("could not reach Correios tracking endpoint", cause=e) from e

        if status >= 500:
            raise TransportError(
                f"Correios tracking returned {status}: {body[:200]!r}",
                status_code=status,
            )
        if status >= 400:
            raise UpstreamError(
                f"Correios tracking rejected the request with {status}: {body[:200]!r}",
                status_code=status,
            )

        try:
            objects = parse_tracking_payload(orjson.loads(body))
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise UpstreamError("could not decode Correios tracking response", cause=e) from e

        if len(objects) != len(codes):
            logger.warning(
                f"Correios returned {len(objects)} object(s) for {len(codes)} code(s)"
            )

        return objects
