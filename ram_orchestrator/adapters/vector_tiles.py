"""Road network vector tile generation adapter."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile

from ram_orchestrator.domain import JobKey, ServiceError

from .interfaces import ObjectStoragePort, OperationLogSink, VectorTilesPort
from .process import SpawnCallable, SubprocessHandle

logger = logging.getLogger(__name__)

VECTOR_TILES_SERVICE_NAME = "generate-vector-tiles"
ROAD_NETWORK_TILE_LAYER = "road-network"


class VectorTilesHandle:
    """Stage handle for one tile generation run.

    The run is an asyncio task; killing it kills the tile process in flight and
    cancels the task.
    """

    def __init__(self, key: JobKey):
        self._key = key
        self._task: asyncio.Task[None] | None = None
        self._process: SubprocessHandle | None = None
        self._killed = False

    @property
    def killed(self) -> bool:
        return self._killed

    def kill(self) -> None:
        """Kill the tile process and cancel the pending run."""

        self._killed = True
        if self._process is not None:
            self._process.kill()
        if self._task is not None:
            self._task.cancel()

    async def stage_wait(self) -> None:
        """Wait for tile generation to finish.

        Raises:
            ServiceError: Raised when generation was killed or failed.
        """

        if self._task is None:
            raise RuntimeError("vector tiles handle was never started")
        try:
            await self._task
        except asyncio.CancelledError as error:
            if not self._killed:
                raise
            raise ServiceError("vector tiles generation was killed", service_name=VECTOR_TILES_SERVICE_NAME) from error


class VectorTilesAdapter(VectorTilesPort):
    """Adapter rendering road network tiles with a tippecanoe-compatible command."""

    def __init__(
        self,
        storage: ObjectStoragePort,
        command: str = "tippecanoe",
        min_zoom: int = 5,
        max_zoom: int = 16,
        spawn: SpawnCallable | None = None,
    ):
        """Initialize vector tiles adapter.

        Args:
            storage: Object storage used to read the road network and write tiles.
            command: Tile rendering executable.
            min_zoom: Minimum tile zoom.
            max_zoom: Maximum tile zoom.
            spawn: Optional process spawner, defaults to `SubprocessHandle.handle_spawn`.

        Raises:
            ValueError: Raised when command is blank or zoom bounds are inverted.
        """

        if storage is None:
            raise ValueError("storage must not be None")
        if not command.strip():
            raise ValueError("command must not be blank")
        if min_zoom > max_zoom:
            raise ValueError("min_zoom must be <= max_zoom")
        self._storage = storage
        self._command = command.strip()
        self._min_zoom = min_zoom
        self._max_zoom = max_zoom
        self._spawn = spawn or SubprocessHandle.handle_spawn

    def adapter_tiles_prefix(self, key: JobKey) -> str:
        """Return the storage prefix receiving the tiles of one scenario."""

        return f"project-{key.project_id}/scenario-{key.scenario_id}/tiles/{ROAD_NETWORK_TILE_LAYER}"

    def adapter_create_road_network_tiles(
        self,
        key: JobKey,
        operation: OperationLogSink,
        file_path: str,
    ) -> VectorTilesHandle:
        """Start tile generation for one stored road network file.

        Must be called from a running event loop.

        Args:
            key: Job key of the scenario.
            operation: Operation receiving progress entries.
            file_path: Storage key of the road network GeoJSON.

        Returns:
            VectorTilesHandle: Handle exposing kill and completion wait.
        """

        handle = VectorTilesHandle(key=key)
        handle._task = asyncio.create_task(self._adapter_run(handle=handle, operation=operation, file_path=file_path))
        return handle

    async def _adapter_run(self, handle: VectorTilesHandle, operation: OperationLogSink, file_path: str) -> None:
        key = handle._key
        await operation.operation_log("rn-vt", {"message": "Road network vector tiles started"})

        with tempfile.TemporaryDirectory(prefix=f"ram-vt-p{key.project_id}s{key.scenario_id}-") as work_dir:
            source_path = os.path.join(work_dir, "road-network.geojson")
            tiles_dir = os.path.join(work_dir, "tiles")
            await self._storage.adapter_download_file(file_path, source_path)

            command = [
                self._command,
                "-l",
                ROAD_NETWORK_TILE_LAYER,
                "-e",
                tiles_dir,
                "-Z",
                str(self._min_zoom),
                "-z",
                str(self._max_zoom),
                "--no-tile-compression",
                "--force",
                source_path,
            ]
            process = await self._spawn(command, f"[VT {key}]", None)
            handle._process = process
            return_code = await process.handle_wait()
            handle._process = None
            if return_code != 0:
                raise ServiceError(
                    process.stderr_text or f"vector tiles exited with code {return_code}",
                    service_name=VECTOR_TILES_SERVICE_NAME,
                )

            tile_count = await self._adapter_upload_tiles(key=key, tiles_dir=tiles_dir)

        logger.info("%s vector tiles uploaded count=%s", key, tile_count)
        await operation.operation_log("rn-vt", {"message": "Road network vector tiles created", "tiles": tile_count})

    async def _adapter_upload_tiles(self, key: JobKey, tiles_dir: str) -> int:
        prefix = self.adapter_tiles_prefix(key)
        tile_count = 0
        for directory, _, file_names in os.walk(tiles_dir):
            for file_name in sorted(file_names):
                local_path = os.path.join(directory, file_name)
                relative_path = os.path.relpath(local_path, tiles_dir).replace(os.sep, "/")
                await self._storage.adapter_upload_file(local_path, f"{prefix}/{relative_path}")
                tile_count += 1
        return tile_count
