"""
Mint Safety Filter Network Module

This module provides the resilient connection manager and the Solana
JSON-RPC account source it keeps alive.
"""

from .connection import (
    ConnectionManager,
    ConnectionState,
    ConnectionEvent,
    StreamingConnection,
    StreamConnectionError,
    SubscriptionHandle
)
from .rpc import (
    RPCConfig,
    RPCConnection,
    RPCError,
    RPCConnectionError,
    RPCTimeoutError,
    SolanaRPCClient
)

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionEvent",
    "StreamingConnection",
    "StreamConnectionError",
    "SubscriptionHandle",
    "RPCConfig",
    "RPCConnection",
    "RPCError",
    "RPCConnectionError",
    "RPCTimeoutError",
    "SolanaRPCClient"
]
