"""
Tests for host profile resolution and credential recovery.
"""
import asyncio

import pytest

from hostfinder.config import FinderConfig
from hostfinder.credentials import CredentialProvider
from hostfinder.errors import HostFetchError, TransportError
from hostfinder.hosts import CredentialState, HostResolver
from hostfinder.models import Host

FAST = dict(delay_range=(0, 0), backoff_base=0)


class LandingPageTransport:
    """Hands out a new key on every landing page fetch."""

    def __init__(self, fail=False):
        self.fetches = 0
        self.fail = fail

    async def get_text(self, url, params=None, headers=None):
        if self.fail and self.fetches > 0:
            self.fetches += 1
            raise TransportError(url, "HTTP 503")
        self.fetches += 1
        return f'<script>{{"api_config":{{"key":"key-{self.fetches}","baseUrl":"/api"}}}}</script>'


class FlakyProfileClient:
    """Fails the first `failures` calls, then serves profiles."""

    def __init__(self, users, failures=0):
        self.users = users
        self.failures = failures
        self.calls = []

    async def get_user(self, host_id, api_key):
        self.calls.append((host_id, api_key))
        if len(self.calls) <= self.failures:
            raise HostFetchError(f"host {host_id}: HTTP 401")
        if host_id not in self.users:
            raise HostFetchError(f"host {host_id}: HTTP 404")
        return self.users[host_id]


def provider(config, transport):
    credentials = CredentialProvider(transport, config)
    asyncio.run(credentials.acquire())
    return credentials


@pytest.mark.parametrize("threshold", [1, 5, 6, 10])
@pytest.mark.parametrize("count", [0, 1, 5, 6, 9, 10, 11])
def test_agency_classification(threshold, count):
    host = Host.from_profile({"id": 1, "host_name": "X", "listings_count": count}, threshold)
    assert host.is_agency == (count >= threshold)


def test_host_from_profile_fields():
    host = Host.from_profile({
        "id": 42,
        "first_name": "Anna",
        "listings_count": 3,
        "reviewee_rating": 4.8,
        "picture_url": "https://img/x.jpg",
    }, agency_threshold=5)
    assert host.id == "42"
    assert host.name == "Anna"
    assert host.rating == 4.8
    assert host.picture_url == "https://img/x.jpg"
    assert host.profile_url == "https://www.airbnb.com/users/show/42"
    assert not host.is_agency

    bare = Host.from_profile({"id": 43}, agency_threshold=5)
    assert bare.name == "Unknown"
    assert bare.listing_count == 0
    assert bare.rating is None and bare.picture_url is None


def test_three_failures_trigger_one_refresh_then_success():
    config = FinderConfig(failure_threshold=3, **FAST)
    transport = LandingPageTransport()
    credentials = provider(config, transport)
    client = FlakyProfileClient({"H1": {"id": "H1", "host_name": "Host One", "listings_count": 7}}, failures=3)
    resolver = HostResolver(client, credentials, config)

    hosts = asyncio.run(resolver.resolve(["H1"]))
    assert [h.id for h in hosts] == ["H1"]
    assert hosts[0].is_agency
    assert resolver.refreshes == 1
    assert transport.fetches == 2
    assert [key for _, key in client.calls] == ["key-1", "key-1", "key-1", "key-2"]
    assert resolver.state is CredentialState.ACTIVE
    assert resolver.consecutive_failures == 0


def test_host_that_never_loads_is_omitted():
    config = FinderConfig(host_fetch_attempts=2, **FAST)
    credentials = provider(config, LandingPageTransport())
    client = FlakyProfileClient({
        "H1": {"id": "H1", "host_name": "A", "listings_count": 1},
        "H3": {"id": "H3", "host_name": "C", "listings_count": 8},
    })
    resolver = HostResolver(client, credentials, config)

    hosts = asyncio.run(resolver.resolve(["H1", "H2", "H3"]))
    assert [h.id for h in hosts] == ["H1", "H3"]
    assert resolver.failed_ids == ["H2"]
    # H2 failed twice, H3 succeeded and reset the counter
    assert resolver.consecutive_failures == 0
    assert resolver.refreshes == 0


def test_unreadable_profile_is_omitted_without_retry():
    config = FinderConfig(**FAST)
    credentials = provider(config, LandingPageTransport())
    client = FlakyProfileClient({
        "H1": {"id": "H1", "host_name": "Odd", "listings_count": "n/a"},
        "H2": {"id": "H2", "host_name": "Fine", "listings_count": 2},
    })
    resolver = HostResolver(client, credentials, config)

    hosts = asyncio.run(resolver.resolve(["H1", "H2"]))
    assert [h.id for h in hosts] == ["H2"]
    assert resolver.failed_ids == ["H1"]
    assert [host_id for host_id, _ in client.calls] == ["H1", "H2"]
    assert resolver.refreshes == 0


def test_state_machine_transitions():
    config = FinderConfig(failure_threshold=3, **FAST)
    credentials = provider(config, LandingPageTransport())
    resolver = HostResolver(FlakyProfileClient({}), credentials, config)

    async def scenario():
        seen = []
        for _ in range(2):
            await resolver._on_failure(credentials.token)
            seen.append((resolver.state, resolver.consecutive_failures))
        resolver._on_success()
        seen.append((resolver.state, resolver.consecutive_failures))
        for _ in range(3):
            await resolver._on_failure(credentials.token)
        seen.append((resolver.state, resolver.consecutive_failures))
        return seen

    seen = asyncio.run(scenario())
    assert seen == [
        (CredentialState.DEGRADED, 1),
        (CredentialState.DEGRADED, 2),
        (CredentialState.ACTIVE, 0),
        (CredentialState.ACTIVE, 0),
    ]
    assert resolver.refreshes == 1


def test_failed_refresh_keeps_resolving():
    config = FinderConfig(failure_threshold=2, host_fetch_attempts=1, **FAST)
    credentials = provider(config, LandingPageTransport(fail=True))
    client = FlakyProfileClient({"H9": {"id": "H9", "host_name": "Late", "listings_count": 1}}, failures=3)
    resolver = HostResolver(client, credentials, config)

    hosts = asyncio.run(resolver.resolve(["H1", "H2", "H3", "H9"]))
    assert [h.id for h in hosts] == ["H9"]
    assert resolver.refreshes == 0
    assert resolver.state is CredentialState.ACTIVE


def test_debug_cap_on_agencies():
    config = FinderConfig(debug_max_agencies=1, **FAST)
    credentials = provider(config, LandingPageTransport())
    client = FlakyProfileClient({
        "H1": {"id": "H1", "listings_count": 9},
        "H2": {"id": "H2", "listings_count": 9},
    })
    resolver = HostResolver(client, credentials, config)
    hosts = asyncio.run(resolver.resolve(["H1", "H2"]))
    assert [h.id for h in hosts] == ["H1"]
    assert resolver.stopped_early
