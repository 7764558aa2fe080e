"""
Mint Safety Filter - Solana JSON-RPC Client

This module provides a JSON-RPC client for fetching mint accounts from a
Solana node, with connection pooling, retry configuration, and error
classification, plus RPCConnection, the streaming connection the
ConnectionManager keeps alive.
"""

import base64
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from accounts.address import MintAddress
from accounts.exceptions import AccountSourceError, InvalidMintAddressError
from accounts.records import AccountRecord

from .connection import ConnectionEvent, EventListener, StreamingConnection


# getMultipleAccounts accepts at most 100 keys per request
MAX_ACCOUNTS_PER_REQUEST = 100

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

# 4xx replies that mean the node could not serve us rather than a bad request
RETRYABLE_CLIENT_STATUSES = (408, 429)


class RPCError(Exception):
    """Base exception for RPC-related errors."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")


class RPCConnectionError(RPCError):
    """Exception for RPC connection failures."""
    pass


class RPCTimeoutError(RPCError):
    """Exception for RPC timeout errors."""
    pass


@dataclass
class RPCConfig:
    """Configuration for a Solana JSON-RPC endpoint."""
    endpoint: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "processed"
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0
    batch_size: int = MAX_ACCOUNTS_PER_REQUEST

    def __post_init__(self):
        """Validate configuration after initialization."""
        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"RPC endpoint must be an http(s) URL, got {self.endpoint!r}")

        if self.commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment level: {self.commitment}")

        if not 1 <= self.batch_size <= MAX_ACCOUNTS_PER_REQUEST:
            raise ValueError(f"batch_size must be between 1 and {MAX_ACCOUNTS_PER_REQUEST}")

    @classmethod
    def from_env(cls) -> 'RPCConfig':
        """Create RPC config from environment variables."""
        return cls(
            endpoint=os.getenv("SOLANA_RPC_ENDPOINT", "https://api.mainnet-beta.solana.com"),
            commitment=os.getenv("SOLANA_RPC_COMMITMENT", "processed"),
            timeout=int(os.getenv("SOLANA_RPC_TIMEOUT", "30")),
            max_retries=int(os.getenv("SOLANA_RPC_MAX_RETRIES", "3"))
        )


class SolanaRPCClient:
    """
    Solana JSON-RPC client over a pooled requests session.
    """

    def __init__(self, config: Optional[RPCConfig] = None):
        """
        Initialize the RPC client.

        Args:
            config: RPC configuration (uses environment if None)
        """
        self.config = config or RPCConfig.from_env()
        self.logger = logging.getLogger("network.rpc")

        self.session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=10, pool_block=True)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self._closed = False
        self._request_id = 0
        self._stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_time": 0.0,
            "last_request_time": None
        }
        self._stats_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _next_id(self) -> int:
        with self._stats_lock:
            self._request_id += 1
            return self._request_id

    def _record(self, success: bool, elapsed: float):
        with self._stats_lock:
            self._stats["total_requests"] += 1
            self._stats["total_time"] += elapsed
            self._stats["last_request_time"] = datetime.now(timezone.utc)
            if success:
                self._stats["successful_requests"] += 1
            else:
                self._stats["failed_requests"] += 1

    def _call(self, method: str, *params) -> Any:
        """
        Make an RPC call and return the result.

        Args:
            method: RPC method name
            *params: Method parameters

        Returns:
            RPC call result

        Raises:
            RPCConnectionError: If the node cannot be reached
            RPCTimeoutError: If the request times out
            RPCError: If the node returns an error
        """
        if self._closed:
            raise RPCConnectionError(-1, "RPC client is closed")

        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(params)
        }
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "mintguard-rpc-client/1.0"
        }

        start_time = time.time()

        try:
            response = self.session.post(
                self.config.endpoint,
                data=json.dumps(payload),
                headers=headers,
                timeout=self.config.timeout
            )
        except requests.exceptions.Timeout:
            self._record(False, time.time() - start_time)
            raise RPCTimeoutError(-1, f"Request timed out after {self.config.timeout}s")
        except requests.exceptions.ConnectionError as e:
            self._record(False, time.time() - start_time)
            raise RPCConnectionError(-1, f"Connection error: {e}")
        except requests.exceptions.RequestException as e:
            self._record(False, time.time() - start_time)
            raise RPCError(-1, f"Request failed: {e}")

        elapsed = time.time() - start_time

        if response.status_code != 200:
            self._record(False, elapsed)
            message = f"HTTP {response.status_code}: {response.reason}"
            if 400 <= response.status_code < 500 and response.status_code not in RETRYABLE_CLIENT_STATUSES:
                # Request rejected by a reachable node; the connection is still usable
                raise RPCError(response.status_code, message)
            raise RPCConnectionError(response.status_code, message)

        try:
            response_data = response.json()
        except ValueError as e:
            self._record(False, elapsed)
            raise RPCError(-32700, f"Invalid JSON response: {e}")

        error = response_data.get("error")
        if error:
            self._record(False, elapsed)
            raise RPCError(error.get("code", -1), error.get("message", "Unknown error"), error.get("data"))

        self._record(True, elapsed)
        return response_data.get("result")

    def get_health(self) -> str:
        """Get node health ("ok" when healthy)."""
        return self._call("getHealth")

    def get_multiple_accounts(self, identifiers: Sequence[MintAddress]) -> List[Optional[AccountRecord]]:
        """
        Fetch accounts in chunks of ``batch_size``, preserving request order.

        Raises:
            RPCError: If any chunk fails
            AccountSourceError: If the node returns a malformed account list
        """
        records: List[Optional[AccountRecord]] = []
        batch_size = self.config.batch_size

        for start in range(0, len(identifiers), batch_size):
            chunk = identifiers[start:start + batch_size]
            result = self._call(
                "getMultipleAccounts",
                [str(identifier) for identifier in chunk],
                {"encoding": "base64", "commitment": self.config.commitment}
            )

            values = (result or {}).get("value")
            if not isinstance(values, list) or len(values) != len(chunk):
                raise AccountSourceError(
                    f"getMultipleAccounts returned {len(values) if isinstance(values, list) else 'no'} "
                    f"accounts for {len(chunk)} keys"
                )

            records.extend(self._parse_account(value) for value in values)

        return records

    @staticmethod
    def _parse_account(value: Optional[Dict[str, Any]]) -> Optional[AccountRecord]:
        """Convert one base64-encoded account info object."""
        if value is None:
            return None

        data_field: Union[List[str], str] = value.get("data", "")
        encoded = data_field[0] if isinstance(data_field, list) else data_field

        try:
            return AccountRecord(
                data=base64.b64decode(encoded),
                owner=MintAddress.from_string(value["owner"]),
                lamports=int(value.get("lamports", 0)),
                executable=bool(value.get("executable", False))
            )
        except (KeyError, ValueError, InvalidMintAddressError) as e:
            raise AccountSourceError(f"Malformed account info: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        """Get request statistics."""
        with self._stats_lock:
            stats = self._stats.copy()

        total = stats["total_requests"]
        return {
            **stats,
            "average_request_time": stats["total_time"] / total if total else 0,
            "success_rate": stats["successful_requests"] / total if total else 0,
            "endpoint": self.config.endpoint
        }

    def close(self):
        self._closed = True
        self.session.close()


class RPCConnection(StreamingConnection):
    """
    Streaming connection over the JSON-RPC client.

    Transport failures (connection errors and timeouts) are reported to the
    manager's listener before being re-raised to the caller.
    """

    def __init__(self, config: RPCConfig, listener: EventListener):
        self.config = config
        self.listener = listener
        self.client = SolanaRPCClient(config)
        self.logger = logging.getLogger("network.rpc")

    @classmethod
    def factory(cls, config: RPCConfig):
        """Connection factory for ConnectionManager."""
        def build(listener: EventListener) -> 'RPCConnection':
            return cls(config, listener)
        return build

    def is_open(self) -> bool:
        return not self.client.closed

    def ping(self):
        self._guarded(self.client.get_health)

    def get_multiple_accounts(self, identifiers: Sequence[MintAddress]) -> List[Optional[AccountRecord]]:
        return self._guarded(self.client.get_multiple_accounts, identifiers)

    def close(self):
        if self.client.closed:
            return
        self.client.close()
        self.listener(ConnectionEvent.CLOSED)

    def _guarded(self, func, *args):
        try:
            return func(*args)
        except (RPCConnectionError, RPCTimeoutError) as e:
            self.listener(ConnectionEvent.ERROR, e)
            raise
