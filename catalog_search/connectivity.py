"""Online/offline signal consulted by the transport, normalizer and executor."""
from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ConnectivityProbe(Protocol):
    def is_online(self) -> bool: ...


class AlwaysOnline:
    """Server processes have no host-level connectivity signal."""

    def is_online(self) -> bool:
        return True


class ManualConnectivity:
    """Settable flag for hosts that report their own connectivity."""

    def __init__(self, online: bool = True) -> None:
        self._online = online

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info("Connectivity changed: online=%s", online)
        self._online = online
