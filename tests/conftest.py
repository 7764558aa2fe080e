"""
Pytest configuration and fixtures for mint safety filter tests.
"""

import threading
import time

import pytest

from accounts.address import MintAddress
from accounts.records import AccountRecord, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from accounts.source import StaticAccountSource
from accounts.token import ExtensionType, encode_mint, encode_transfer_fee_config
from network.connection import ConnectionEvent, StreamingConnection


@pytest.fixture
def address_factory():
    """Build deterministic mint addresses from a small integer seed."""
    def build(seed: int) -> MintAddress:
        return MintAddress(seed.to_bytes(4, "big") * 8)
    return build


@pytest.fixture
def authority_key():
    """Key used for mint and freeze authorities."""
    return MintAddress(b"\xaa" * 32)


@pytest.fixture
def mint_factory(authority_key):
    """
    Build raw mint account records.

    ``legacy=True`` produces an 82-byte record owned by the legacy token
    program; otherwise the record is owned by Token-2022 and carries the
    given extensions (and a TransferFeeConfig when ``fee_bps`` is set).
    """
    def build(legacy: bool = False,
              mint_authority: bool = False,
              freeze_authority: bool = False,
              extensions=None,
              fee_bps=None,
              supply: int = 1_000_000,
              decimals: int = 6) -> AccountRecord:
        if legacy:
            data = encode_mint(
                mint_authority=authority_key if mint_authority else None,
                freeze_authority=authority_key if freeze_authority else None,
                supply=supply,
                decimals=decimals
            )
            return AccountRecord(data=data, owner=TOKEN_PROGRAM_ID, lamports=1461600)

        entries = {}
        if fee_bps is not None:
            entries[ExtensionType.TransferFeeConfig] = encode_transfer_fee_config(fee_bps, maximum_fee=5000)
        for extension in extensions or ():
            entries[extension] = bytes(32)

        data = encode_mint(
            mint_authority=authority_key if mint_authority else None,
            freeze_authority=authority_key if freeze_authority else None,
            supply=supply,
            decimals=decimals,
            extensions=entries
        )
        return AccountRecord(data=data, owner=TOKEN_2022_PROGRAM_ID, lamports=2039280)

    return build


@pytest.fixture
def static_source():
    """Create an empty in-memory account source."""
    return StaticAccountSource()


@pytest.fixture
def populated_source(address_factory, mint_factory):
    """Account source holding one clean, one unsafe and one legacy mint."""
    clean = address_factory(1)
    unsafe = address_factory(2)
    legacy = address_factory(3)

    source = StaticAccountSource({
        clean: mint_factory(),
        unsafe: mint_factory(mint_authority=True, extensions=[ExtensionType.PermanentDelegate]),
        legacy: mint_factory(legacy=True),
    })
    return {"source": source, "clean": clean, "unsafe": unsafe, "legacy": legacy}


class FakeConnection(StreamingConnection):
    """In-memory streaming connection that can simulate transport failures."""

    def __init__(self, listener, source=None, fail_ping: bool = False):
        self.listener = listener
        self.source = source or StaticAccountSource()
        self.fail_ping = fail_ping
        self.open = True
        self.pings = 0
        self.close_calls = 0

    def is_open(self) -> bool:
        return self.open

    def ping(self):
        if self.fail_ping:
            raise ConnectionError("ping failed")
        self.pings += 1

    def get_multiple_accounts(self, identifiers):
        return self.source.get_multiple_accounts(identifiers)

    def close(self):
        self.open = False
        self.close_calls += 1

    def drop(self):
        """Simulate the remote end closing the connection."""
        self.open = False
        self.listener(ConnectionEvent.CLOSED)

    def fail(self, error: BaseException):
        """Simulate a transport error."""
        self.listener(ConnectionEvent.ERROR, error)


class FakeConnectionFactory:
    """Connection factory recording every connection it builds."""

    def __init__(self, source=None):
        self.source = source
        self.connections = []
        self.fail_next = 0
        self.fail_ping = False
        self._lock = threading.Lock()

    def __call__(self, listener):
        with self._lock:
            if self.fail_next > 0:
                self.fail_next -= 1
                raise ConnectionError("node unreachable")
            connection = FakeConnection(listener, self.source, fail_ping=self.fail_ping)
            self.connections.append(connection)
            return connection

    @property
    def current(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def connection_factory(static_source):
    """Create a fake connection factory backed by the static source."""
    return FakeConnectionFactory(static_source)


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    def wait(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return wait


# Test markers for different test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as a concurrency test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
