"""Online/offline tracking with reconnect notifications."""

import inspect
import logging
from collections.abc import Awaitable, Callable

from focus_sync.client.api_client import ApiClient


logger = logging.getLogger(__name__)

ReconnectListener = Callable[[], Awaitable[object] | object]


class ConnectivityMonitor:
    """Tracks whether the network is reachable.

    Listeners registered with ``add_reconnect_listener`` run each time the
    state flips from offline to online.
    """

    def __init__(self, *, online: bool = True) -> None:
        self._online = online
        self._listeners: list[ReconnectListener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def add_reconnect_listener(self, listener: ReconnectListener) -> None:
        self._listeners.append(listener)

    def mark_offline(self) -> None:
        if self._online:
            logger.info("connectivity_lost")
        self._online = False

    async def mark_online(self) -> None:
        """Record that the network is back, notifying listeners on a transition."""
        was_online = self._online
        self._online = True
        if was_online:
            return

        logger.info("connectivity_restored", extra={"listeners": len(self._listeners)})
        for listener in list(self._listeners):
            result = listener()
            if inspect.isawaitable(result):
                await result

    async def probe(self, api: ApiClient) -> bool:
        """Ping the server and update the state from the answer."""
        if await api.ping():
            await self.mark_online()
        else:
            self.mark_offline()
        return self._online
