"""Typed interfaces for adapter-layer responsibilities."""

from typing import Any, Mapping, Protocol

from ram_orchestrator.domain import JobKey


class StageHandle(Protocol):
    """Cancellable reference to one active external process or service invocation."""

    def kill(self) -> None:
        """Send a best-effort kill signal to the underlying work.

        Returns:
            None: Completion is observed through `stage_wait`.
        """

    async def stage_wait(self) -> None:
        """Wait for the work to finish.

        Raises:
            ServiceError: Raised when the work signalled failure or was killed.
            ProcessFailureError: Raised when a process exited with a nonzero code.
        """


class OperationLogSink(Protocol):
    """Progress logging capability handed to long-running adapters."""

    async def operation_log(self, event: str, data: dict[str, Any] | None = None) -> None:
        """Append one progress entry to the owning operation."""


class ObjectStoragePort(Protocol):
    """Port definition for blob read, write and delete on object storage."""

    async def adapter_remove_file(self, path: str) -> None:
        """Delete one stored object by key."""

    async def adapter_download_file(self, path: str, local_path: str) -> None:
        """Download one stored object into a local file."""

    async def adapter_upload_file(self, local_path: str, path: str) -> None:
        """Upload one local file under a storage key."""


class ServiceRunnerPort(Protocol):
    """Port definition for named out-of-process services."""

    async def adapter_start_service(self, service_name: str, key: JobKey, params: Mapping[str, object]) -> StageHandle:
        """Start one named service and return its handle.

        Raises:
            ConfigurationError: Raised when the service name is not configured.
        """


class VectorTilesPort(Protocol):
    """Port definition for road network vector tile generation."""

    def adapter_create_road_network_tiles(self, key: JobKey, operation: OperationLogSink, file_path: str) -> StageHandle:
        """Start tile generation for one stored road network file."""


class ContainerServicePort(Protocol):
    """Port definition for the analysis container runtime."""

    async def adapter_pull_image(self, key: JobKey) -> bool:
        """Pull the configured analysis image; failure is reported, not raised."""

    async def adapter_spawn_analysis(self, key: JobKey, operation_id: int) -> StageHandle:
        """Spawn the analysis container for one job key.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
        """

    async def adapter_force_remove(self, key: JobKey) -> None:
        """Force-remove the analysis container of one job key."""


class ScenarioDatabaseCloserPort(Protocol):
    """Port definition for releasing exclusive local scenario database handles."""

    async def adapter_close(self, key: JobKey) -> bool:
        """Close the handle held for one job key, returning whether one was open."""
