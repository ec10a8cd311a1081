"""Tests for the credential cache."""

import asyncio
from datetime import datetime, timedelta

import pytest

from correios_relay.errors import AuthError
from correios_relay.models import Credential
from correios_relay.tracking import TokenManager


NOW = datetime(2024, 5, 10, 12, 0, 0)


class Clock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta):
        self.now += timedelta(**delta)


class StubCarrier:
    """Carrier whose authenticate() is counted and can be made slow or failing."""

    def __init__(self, clock: Clock, lifetime=timedelta(hours=1), delay: float = 0.0):
        self.clock = clock
        self.lifetime = lifetime
        self.delay = delay
        self.fail_with = None
        self.calls = 0

    async def authenticate(self) -> Credential:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return Credential(token=f"tok-{self.calls}", expires_at=self.clock() + self.lifetime)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def carrier(clock):
    return StubCarrier(clock)


@pytest.fixture
def manager(carrier, clock):
    return TokenManager(carrier, clock=clock)


class TestTokenManager:
    """Tests for TokenManager."""

    def test_starts_expired(self, manager):
        assert manager.credential.token == ""
        assert not manager.is_valid()
        assert manager.refresh_count == 0

    @pytest.mark.asyncio
    async def test_first_call_refreshes(self, manager, carrier):
        credential = await manager.ensure_valid_token()

        assert credential.token == "tok-1"
        assert carrier.calls == 1
        assert manager.credential is credential
        assert manager.refresh_count == 1

    @pytest.mark.asyncio
    async def test_reuses_within_validity(self, manager, carrier, clock):
        """Test no extra auth calls while the token is valid."""
        first = await manager.ensure_valid_token()
        clock.advance(minutes=59, seconds=59)
        second = await manager.ensure_valid_token()

        assert second is first
        assert carrier.calls == 1

    @pytest.mark.asyncio
    async def test_refreshes_once_expired(self, manager, carrier, clock):
        """Test exactly one auth call once the expiry has passed."""
        await manager.ensure_valid_token()
        clock.advance(hours=1)

        credential = await manager.ensure_valid_token()
        again = await manager.ensure_valid_token()

        assert credential.token == "tok-2"
        assert again is credential
        assert carrier.calls == 2

    @pytest.mark.asyncio
    async def test_single_flight(self, manager, carrier):
        """Test concurrent callers share one refresh."""
        carrier.delay = 0.05

        results = await asyncio.gather(*(manager.ensure_valid_token() for _ in range(20)))

        assert carrier.calls == 1
        assert {credential.token for credential in results} == {"tok-1"}

    @pytest.mark.asyncio
    async def test_single_flight_after_expiry(self, manager, carrier, clock):
        await manager.ensure_valid_token()
        clock.advance(hours=2)
        carrier.delay = 0.05

        results = await asyncio.gather(*(manager.ensure_valid_token() for _ in range(10)))

        assert carrier.calls == 2
        assert {credential.token for credential in results} == {"tok-2"}

    @pytest.mark.asyncio
    async def test_single_flight_failure(self, manager, carrier):
        """Test every waiter of a failed refresh gets its error from one auth call."""
        carrier.delay = 0.05
        carrier.fail_with = AuthError("boom")

        results = await asyncio.gather(
            *(manager.ensure_valid_token() for _ in range(10)),
            return_exceptions=True,
        )

        assert carrier.calls == 1
        assert all(isinstance(result, AuthError) for result in results)
        assert not manager.is_valid()

        carrier.fail_with = None
        carrier.delay = 0.0
        credential = await manager.ensure_valid_token()

        assert credential.token == "tok-2"
        assert carrier.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_keeps_refresh(self, manager, carrier):
        """Test cancelling one caller does not abort the shared refresh."""
        carrier.delay = 0.05

        first = asyncio.ensure_future(manager.ensure_valid_token())
        second = asyncio.ensure_future(manager.ensure_valid_token())
        await asyncio.sleep(0.01)
        first.cancel()

        credential = await second

        assert first.cancelled()
        assert credential.token == "tok-1"
        assert carrier.calls == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_cache(self, manager, carrier, clock):
        """Test a failed refresh propagates and the next call retries."""
        first = await manager.ensure_valid_token()
        clock.advance(hours=1)
        carrier.fail_with = AuthError("boom")

        with pytest.raises(AuthError):
            await manager.ensure_valid_token()

        assert manager.credential is first
        assert manager.refresh_count == 1

        carrier.fail_with = None
        credential = await manager.ensure_valid_token()

        assert credential.token == "tok-3"
        assert carrier.calls == 3

    @pytest.mark.asyncio
    async def test_invalidate(self, manager, carrier):
        await manager.ensure_valid_token()
        manager.invalidate()

        assert not manager.is_valid()
        await manager.ensure_valid_token()
        assert carrier.calls == 2
