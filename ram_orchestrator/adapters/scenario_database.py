"""Registry of exclusive local scenario database handles."""

from __future__ import annotations

import inspect
import logging
from typing import Any

from ram_orchestrator.domain import JobKey

from .interfaces import ScenarioDatabaseCloserPort

logger = logging.getLogger(__name__)


class ScenarioDatabaseRegistry(ScenarioDatabaseCloserPort):
    """Holds the open road network editing database per job key.

    An external export process needs exclusive access to the same files, so
    the local handle is closed before that process starts.

    The scenario editing component registers its handle through
    `adapter_register` when it opens the database. Keys with nothing
    registered are skipped, so the close step before export does nothing.
    """

    def __init__(self):
        self._handles: dict[JobKey, Any] = {}

    def adapter_register(self, key: JobKey, handle: Any) -> None:
        """Register one open handle exposing `close()`, replacing any previous one."""

        if not callable(getattr(handle, "close", None)):
            raise ValueError("handle must expose close()")
        self._handles[key] = handle

    def adapter_is_open(self, key: JobKey) -> bool:
        return key in self._handles

    async def adapter_close(self, key: JobKey) -> bool:
        """Close and forget the handle of one job key.

        Args:
            key: Job key of the scenario.

        Returns:
            bool: True when a handle was open and got closed.
        """

        handle = self._handles.pop(key, None)
        if handle is None:
            return False

        close_result = handle.close()
        if inspect.isawaitable(close_result):
            await close_result
        logger.info("%s scenario database closed", key)
        return True
