"""Container service adapter for pulling, running and removing analysis containers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from ram_orchestrator.domain import ConfigurationError, JobKey, ProcessFailureError

from .interfaces import ContainerServicePort
from .process import SpawnCallable, SubprocessHandle

logger = logging.getLogger(__name__)

SUPPORTED_CONTAINER_SERVICES: Final[tuple[str, ...]] = ("docker", "hyper")


@dataclass(frozen=True)
class ContainerServiceConfig:
    """Configuration values for the analysis container contract.

    Attributes:
        service: Container service binary (`docker` or `hyper`).
        container: Analysis image reference.
        instance_id: Deployment instance prefix for container names.
        db_uri: Database URI handed to the container.
        storage_host: Storage host reachable from the container.
        storage_port: Storage port reachable from the container.
        storage_engine: Storage engine name.
        storage_access_key: Storage access key.
        storage_secret_key: Storage secret key.
        storage_bucket: Storage bucket.
        storage_region: Storage region.
        docker_network: Network joined when running on `docker`.
        hyper_access: Access key for `hyper`.
        hyper_secret: Secret key for `hyper`.
        hyper_size: Optional instance size for `hyper`.
    """

    service: str
    container: str
    instance_id: str
    db_uri: str
    storage_host: str
    storage_port: int
    storage_engine: str
    storage_access_key: str
    storage_secret_key: str
    storage_bucket: str
    storage_region: str
    docker_network: str = "ram"
    hyper_access: str | None = None
    hyper_secret: str | None = None
    hyper_size: str | None = None


class AnalysisProcessHandle:
    """Stage handle for one running analysis container process."""

    def __init__(self, process: SubprocessHandle, key: JobKey):
        self._process = process
        self._key = key

    def kill(self) -> None:
        """Kill the local service client process."""

        self._process.kill()

    async def stage_wait(self) -> None:
        """Wait for container exit.

        Raises:
            ProcessFailureError: Raised with captured stderr when exit code is nonzero.
        """

        return_code = await self._process.handle_wait()
        logger.info("%s[EXIT] %s", self._key.log_prefix(), return_code)
        if return_code != 0:
            stderr_text = self._process.stderr_text
            raise ProcessFailureError(
                stderr_text or f"analysis process exited with code {return_code}",
                exit_code=return_code,
                stderr=stderr_text,
            )


class ContainerServiceAdapter(ContainerServicePort):
    """Adapter invoking the configured container service binary."""

    def __init__(self, config: ContainerServiceConfig, spawn: SpawnCallable | None = None):
        """Initialize container service adapter.

        Args:
            config: Analysis container contract values.
            spawn: Optional process spawner, defaults to `SubprocessHandle.handle_spawn`.

        Raises:
            ValueError: Raised when required config values are blank.
        """

        if not config.container.strip():
            raise ValueError("config.container must not be blank")
        if not config.instance_id.strip():
            raise ValueError("config.instance_id must not be blank")

        self._config = config
        self._spawn = spawn or SubprocessHandle.handle_spawn

    def adapter_service_environment(self) -> dict[str, str]:
        """Return extra child environment for the configured service.

        Returns:
            dict[str, str]: Environment additions, empty for `docker`.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
        """

        service = self._config.service
        if service == "docker":
            return {}
        if service == "hyper":
            return {
                "HYPER_ACCESS": self._config.hyper_access or "",
                "HYPER_SECRET": self._config.hyper_secret or "",
            }
        raise ConfigurationError(
            f"{service} is not a valid option. The analysis should be run on 'docker' or 'hyper'. "
            "Check your config file or env variables."
        )

    def adapter_build_run_arguments(self, key: JobKey, operation_id: int) -> list[str]:
        """Build the full container service command for one analysis run.

        Args:
            key: Job key of the analysis.
            operation_id: Running operation identifier.

        Returns:
            list[str]: Command starting with the service binary and ending with the image.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
        """

        self.adapter_service_environment()
        config = self._config
        arguments = [
            config.service,
            "run",
            "--name",
            key.container_name(config.instance_id),
            "--rm",
            "-e",
            f"DB_URI={config.db_uri}",
            "-e",
            f"PROJECT_ID={key.project_id}",
            "-e",
            f"SCENARIO_ID={key.scenario_id}",
            "-e",
            f"OPERATION_ID={operation_id}",
            "-e",
            f"STORAGE_HOST={config.storage_host}",
            "-e",
            f"STORAGE_PORT={config.storage_port}",
            "-e",
            f"STORAGE_ENGINE={config.storage_engine}",
            "-e",
            f"STORAGE_ACCESS_KEY={config.storage_access_key}",
            "-e",
            f"STORAGE_SECRET_KEY={config.storage_secret_key}",
            "-e",
            f"STORAGE_BUCKET={config.storage_bucket}",
            "-e",
            f"STORAGE_REGION={config.storage_region}",
            "-e",
            "CONVERSION_DIR=/conversion",
        ]
        if config.service == "docker":
            arguments.extend(["--network", config.docker_network])
        elif config.hyper_size:
            arguments.append(f"--size={config.hyper_size}")

        # Image name goes last.
        arguments.append(config.container)
        return arguments

    async def adapter_pull_image(self, key: JobKey) -> bool:
        """Pull the latest analysis image, continuing with the cached one on failure.

        Args:
            key: Job key used for log correlation.

        Returns:
            bool: True when the pull succeeded.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
        """

        environment = self.adapter_service_environment()
        command = [self._config.service, "pull", self._config.container]
        try:
            process = await self._spawn(command, key.log_prefix(), environment)
            return_code = await process.handle_wait()
        except OSError as error:
            logger.error("%s[ERROR] Pull image error %s", key.log_prefix(), error)
            logger.error("%s[ERROR] Continuing...", key.log_prefix())
            return False

        if return_code != 0:
            logger.error("%s[ERROR] Pull image error %s", key.log_prefix(), process.stderr_text)
            logger.error("%s[ERROR] Continuing...", key.log_prefix())
            return False
        return True

    async def adapter_spawn_analysis(self, key: JobKey, operation_id: int) -> AnalysisProcessHandle:
        """Spawn the analysis container for one job key.

        Args:
            key: Job key of the analysis.
            operation_id: Running operation identifier.

        Returns:
            AnalysisProcessHandle: Handle whose wait settles on container exit.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
            OSError: Raised when the service binary cannot be started.
        """

        environment = self.adapter_service_environment()
        arguments = self.adapter_build_run_arguments(key=key, operation_id=operation_id)
        logger.info("%s spawnAnalysisProcess", key.log_prefix())
        process = await self._spawn(arguments, key.log_prefix(), environment)
        return AnalysisProcessHandle(process=process, key=key)

    async def adapter_force_remove(self, key: JobKey) -> None:
        """Force-remove the analysis container of one job key.

        Failures are logged and swallowed; the running process exit handler
        settles the job state.

        Args:
            key: Job key of the analysis.

        Raises:
            ConfigurationError: Raised when the configured service is unsupported.
        """

        environment = self.adapter_service_environment()
        command = [self._config.service, "rm", "-f", key.container_name(self._config.instance_id)]
        try:
            process = await self._spawn(command, f"{key.log_prefix()}[ABORT]", environment)
            return_code = await process.handle_wait()
        except OSError as error:
            logger.error("%s[ABORT] stop %s", key.log_prefix(), error)
            return

        if return_code != 0:
            logger.error("%s[ABORT] stop exited with code %s: %s", key.log_prefix(), return_code, process.stderr_text)
