"""
Token Manager.
Keeps the process-wide Correios credential and refreshes it lazily.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from loguru import logger

from correios_relay.models import Credential
from correios_relay.tracking.carrier_api import CorreiosAPI


class TokenManager:
    """
    Single-flight cache for the carrier access credential.

    At most one refresh runs at a time. Callers that find the credential
    expired while a refresh is running await that same refresh and receive
    its credential or its error.
    """

    def __init__(
        self,
        carrier: CorreiosAPI,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.carrier = carrier
        self._clock = clock
        self._credential = Credential.empty()
        self._refresh: Optional[asyncio.Task] = None
        self._refresh_count = 0

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def refresh_count(self) -> int:
        """Number of successful refreshes since startup."""
        return self._refresh_count

    def is_valid(self) -> bool:
        return self._credential.is_valid(self._clock())

    def invalidate(self):
        """Force the next caller to refresh."""
        self._credential = Credential.empty()

    async def ensure_valid_token(self) -> Credential:
        """
        Return a valid credential, refreshing it if expired.

        Raises:
            AuthError: the carrier could not issue a token
        """
        credential = self._credential
        if credential.is_valid(self._clock()):
            return credential

        if self._refresh is None:
            logger.debug("Correios token expired, refreshing")
            self._refresh = asyncio.create_task(self._run_refresh())

        # A caller going away must not cancel the refresh the others wait on
        return await asyncio.shield(self._refresh)

    async def _run_refresh(self) -> Credential:
        try:
            credential = await self.carrier.authenticate()
            self._credential = credential
            self._refresh_count += 1
            return credential
        finally:
            self._refresh = None
