"""
Mint Safety Filter - Resilient Streaming Connection Manager

This module provides the ConnectionManager class, which owns one long-lived
connection to the ledger node, keeps it alive with a periodic ping, and
transparently reconnects after failures, replaying every registered
subscription in registration order.

Connection signals (closed, error) never act directly: they are queued and
consumed by the manager's own control loop thread, so reconnect transitions
are serialized. Signals from a connection that has already been replaced are
ignored, which collapses overlapping failure signals into one reconnect.
"""

import logging
import queue
import threading
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from accounts.address import MintAddress
from accounts.records import AccountRecord
from accounts.source import AccountSource


class ConnectionState(str, Enum):
    """Lifecycle states of the managed connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class ConnectionEvent(str, Enum):
    """Signals a streaming connection reports to its manager."""
    OPENED = "opened"
    CLOSED = "closed"
    ERROR = "error"


class StreamConnectionError(Exception):
    """Raised when the managed connection is unavailable."""
    pass


EventListener = Callable[..., None]


class StreamingConnection(AccountSource):
    """
    A live connection to the ledger node.

    Implementations report transport failures by calling the listener they
    were constructed with: ``listener(ConnectionEvent.CLOSED)`` or
    ``listener(ConnectionEvent.ERROR, error)``.
    """

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def ping(self):
        """Send a keepalive probe."""
        pass

    @abstractmethod
    def close(self):
        pass


ConnectionFactory = Callable[[EventListener], StreamingConnection]


@dataclass(frozen=True)
class SubscriptionHandle:
    """A registered re-arm action, replayed after every reconnect."""
    handle_id: int
    name: str
    action: Callable[[], Any]

    def rearm(self):
        return self.action()


@dataclass(frozen=True)
class _Signal:
    event: ConnectionEvent
    generation: int
    error: Optional[BaseException] = None


_STOP = object()


class ConnectionManager(AccountSource):
    """
    Owner of the process' ledger connection and subscription registry.

    The manager is itself an AccountSource delegating to the current
    connection, so it can be injected wherever accounts are fetched.
    """

    DEFAULT_KEEPALIVE_INTERVAL = 30.0
    DEFAULT_RECONNECT_DELAY = 2.0

    def __init__(self, connection_factory: ConnectionFactory,
                 keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
                 reconnect_delay: float = DEFAULT_RECONNECT_DELAY):
        """
        Initialize the connection manager.

        Args:
            connection_factory: Callable building a connection wired to the given listener
            keepalive_interval: Seconds between keepalive pings
            reconnect_delay: Fixed backoff in seconds before each reconnect attempt
        """
        if keepalive_interval <= 0:
            raise ValueError("keepalive_interval must be positive")
        if reconnect_delay < 0:
            raise ValueError("reconnect_delay must be non-negative")

        self.connection_factory = connection_factory
        self.keepalive_interval = keepalive_interval
        self.reconnect_delay = reconnect_delay

        self.logger = logging.getLogger("network.connection")

        # Connection state, swapped only by connect() and the control loop
        self._connection: Optional[StreamingConnection] = None
        self._generation = 0
        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.RLock()
        self._state_changed = threading.Condition(self._state_lock)
        self._reconnecting = False

        # Subscription registry
        self._subscriptions: List[SubscriptionHandle] = []
        self._subscription_lock = threading.Lock()
        self._next_handle_id = 1

        # Control loop and keepalive
        self._events: "queue.Queue[Any]" = queue.Queue()
        self._stop_event = threading.Event()
        self._control_thread: Optional[threading.Thread] = None
        self._keepalive_thread: Optional[threading.Thread] = None

        self._stats = {
            "connects": 0,
            "reconnects": 0,
            "reconnect_failures": 0,
            "replay_failures": 0,
            "signals_ignored": 0,
            "pings_sent": 0,
            "ping_failures": 0
        }

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    @property
    def connection(self) -> Optional[StreamingConnection]:
        with self._state_lock:
            return self._connection

    @property
    def is_reconnecting(self) -> bool:
        with self._state_lock:
            return self._reconnecting

    def connect(self) -> StreamingConnection:
        """
        Open the connection and start the control loop and keepalive threads.

        Returns:
            The open connection

        Raises:
            StreamConnectionError: If already started or the connection cannot be built
        """
        with self._state_lock:
            if self._state != ConnectionState.DISCONNECTED:
                raise StreamConnectionError(f"Cannot connect from state {self._state.value}")

        try:
            connection = self._open_connection()
        except Exception as e:
            self._set_state(ConnectionState.DISCONNECTED)
            raise StreamConnectionError(f"Failed to open connection: {e}") from e

        self._stop_event.clear()
        self._control_thread = threading.Thread(
            target=self._control_loop, name="connection-control", daemon=True
        )
        self._keepalive_thread = threading.Thread(
            target=self._keepalive_loop, name="connection-keepalive", daemon=True
        )
        self._control_thread.start()
        self._keepalive_thread.start()

        return connection

    def close(self):
        """Stop background threads and close the connection."""
        self._stop_event.set()
        self._events.put(_STOP)

        for thread in (self._control_thread, self._keepalive_thread):
            if thread and thread is not threading.current_thread():
                thread.join(timeout=5.0)

        self._teardown_connection()
        self._set_state(ConnectionState.CLOSED)
        self.logger.info("Connection manager closed")

    def register(self, action: Callable[[], Any], name: Optional[str] = None) -> SubscriptionHandle:
        """
        Register a subscription re-arm action.

        The action is not called now; it is called after every reconnect and
        must re-issue its subscription.

        Args:
            action: Zero-argument callable re-issuing a subscription
            name: Label used in log lines

        Returns:
            SubscriptionHandle for unregister()
        """
        with self._subscription_lock:
            handle_id = self._next_handle_id
            self._next_handle_id += 1
            handle = SubscriptionHandle(
                handle_id=handle_id,
                name=name or getattr(action, "__name__", f"subscription-{handle_id}"),
                action=action
            )
            self._subscriptions.append(handle)

        self.logger.debug(f"Registered subscription {handle.name} (#{handle.handle_id})")
        return handle

    def unregister(self, handle: SubscriptionHandle) -> bool:
        """Remove a subscription; returns False if it was not registered."""
        with self._subscription_lock:
            try:
                self._subscriptions.remove(handle)
            except ValueError:
                return False
        return True

    @property
    def subscriptions(self) -> List[SubscriptionHandle]:
        """Registered subscriptions in registration order."""
        with self._subscription_lock:
            return list(self._subscriptions)

    def replay_subscriptions(self) -> int:
        """
        Call every registered re-arm action in registration order.

        A failing action is logged and skipped so it cannot block the rest.

        Returns:
            Number of actions that completed without raising
        """
        self.logger.info("Restoring subscriptions...")
        restored = 0

        for handle in self.subscriptions:
            try:
                handle.rearm()
                restored += 1
            except Exception as e:
                with self._state_lock:
                    self._stats["replay_failures"] += 1
                self.logger.error(f"Failed to restore subscription {handle.name}: {e}")

        return restored

    def get_multiple_accounts(self, identifiers: Sequence[MintAddress]) -> List[Optional[AccountRecord]]:
        """
        Fetch accounts over the current connection.

        Raises:
            StreamConnectionError: If no connection is open
        """
        with self._state_lock:
            connection = self._connection
            state = self._state

        if connection is None or state != ConnectionState.CONNECTED:
            raise StreamConnectionError(f"No open connection (state: {state.value})")

        return connection.get_multiple_accounts(identifiers)

    def send_keepalive(self) -> bool:
        """
        Ping the current connection if it is open.

        Returns:
            True if a ping was sent successfully
        """
        connection = self.connection
        if connection is None or not connection.is_open():
            return False

        try:
            connection.ping()
        except Exception as e:
            with self._state_lock:
                self._stats["ping_failures"] += 1
            self.logger.error(f"Keepalive ping failed: {e}")
            return False

        with self._state_lock:
            self._stats["pings_sent"] += 1
        return True

    def wait_for_reconnects(self, count: int = 1, timeout: Optional[float] = None) -> bool:
        """
        Block until at least ``count`` reconnects (with replay) have completed.

        Returns:
            True if the count was reached before the timeout
        """
        with self._state_changed:
            return self._state_changed.wait_for(
                lambda: self._stats["reconnects"] >= count, timeout=timeout
            )

    def get_statistics(self) -> Dict[str, Any]:
        """Get connection and subscription statistics."""
        with self._state_lock:
            stats = self._stats.copy()
            stats["state"] = self._state.value
            stats["generation"] = self._generation

        stats["subscriptions"] = len(self.subscriptions)
        return stats

    def _set_state(self, state: ConnectionState):
        with self._state_changed:
            if self._state != state:
                self.logger.debug(f"Connection state {self._state.value} -> {state.value}")
            self._state = state
            self._state_changed.notify_all()

    def _listener_for(self, generation: int) -> EventListener:
        """Build the listener a connection of the given generation reports to."""
        def listener(event: ConnectionEvent, error: Optional[BaseException] = None):
            self._events.put(_Signal(ConnectionEvent(event), generation, error))
        return listener

    def _open_connection(self) -> StreamingConnection:
        self._set_state(ConnectionState.CONNECTING)

        with self._state_lock:
            self._generation += 1
            generation = self._generation

        connection = self.connection_factory(self._listener_for(generation))

        with self._state_changed:
            self._connection = connection
            self._stats["connects"] += 1
        self._set_state(ConnectionState.CONNECTED)

        self.logger.info(f"Connection established (generation {generation})")
        return connection

    def _teardown_connection(self):
        with self._state_lock:
            connection = self._connection
            self._connection = None

        if connection is None:
            return

        try:
            connection.close()
        except Exception as e:
            self.logger.warning(f"Error closing connection: {e}")

    def _control_loop(self):
        """Consume connection signals one at a time until stopped."""
        while not self._stop_event.is_set():
            signal = self._events.get()
            if signal is _STOP:
                break
            self._handle_signal(signal)

    def _handle_signal(self, signal: _Signal):
        if signal.event == ConnectionEvent.OPENED:
            self.logger.info("Connection opened")
            return

        with self._state_lock:
            stale = signal.generation != self._generation or self._reconnecting
            if stale:
                self._stats["signals_ignored"] += 1

        if stale:
            self.logger.debug(
                f"Ignoring {signal.event.value} signal from generation {signal.generation}"
            )
            return

        if signal.event == ConnectionEvent.CLOSED:
            self.logger.warning("Connection closed. Reconnecting...")
        else:
            self.logger.error(f"Connection error: {signal.error}. Reconnecting...")

        self._reconnect()

    def _reconnect(self):
        """Recreate the connection after the backoff delay and replay subscriptions."""
        with self._state_lock:
            if self._reconnecting:
                return
            self._reconnecting = True
        self._set_state(ConnectionState.RECONNECTING)

        try:
            while not self._stop_event.wait(self.reconnect_delay):
                self.logger.info("Reconnecting to ledger node...")
                self._teardown_connection()

                try:
                    self._open_connection()
                except Exception as e:
                    with self._state_lock:
                        self._stats["reconnect_failures"] += 1
                    self._set_state(ConnectionState.RECONNECTING)
                    self.logger.error(f"Reconnect attempt failed: {e}")
                    continue

                self.replay_subscriptions()

                with self._state_changed:
                    self._stats["reconnects"] += 1
                    self._state_changed.notify_all()
                return
        finally:
            with self._state_lock:
                self._reconnecting = False

    def _keepalive_loop(self):
        while not self._stop_event.wait(self.keepalive_interval):
            self.send_keepalive()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
