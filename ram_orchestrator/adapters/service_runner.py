"""Service runner adapter for named out-of-process services."""

from __future__ import annotations

import logging
import shlex
from typing import Mapping

from ram_orchestrator.domain import ConfigurationError, JobKey, ServiceError

from .interfaces import ServiceRunnerPort
from .process import SpawnCallable, SubprocessHandle

logger = logging.getLogger(__name__)


class ServiceHandle:
    """Stage handle emitting one completion signal per service invocation."""

    def __init__(self, service_name: str, process: SubprocessHandle, key: JobKey):
        self._service_name = service_name
        self._process = process
        self._key = key

    @property
    def service_name(self) -> str:
        return self._service_name

    def kill(self) -> None:
        """Kill the service process."""

        logger.info("%s %s kill requested", self._key, self._service_name)
        self._process.kill()

    async def stage_wait(self) -> None:
        """Wait for the service completion signal.

        Raises:
            ServiceError: Raised when the service was killed or exited with a nonzero code.
        """

        return_code = await self._process.handle_wait()
        logger.info("%s %s complete", self._key, self._service_name)
        if self._process.killed:
            raise ServiceError(f"{self._service_name} was killed", service_name=self._service_name)
        if return_code != 0:
            logger.info("%s %s ended in error and was captured", self._key, self._service_name)
            raise ServiceError(
                self._process.stderr_text or f"{self._service_name} exited with code {return_code}",
                service_name=self._service_name,
            )


class ServiceRunnerAdapter(ServiceRunnerPort):
    """Adapter that runs each named service as a configured external command.

    Parameters are passed as `--kebab-case value` flags in mapping order.
    """

    def __init__(self, commands: Mapping[str, str], spawn: SpawnCallable | None = None):
        """Initialize service runner adapter.

        Args:
            commands: Executable per service name.
            spawn: Optional process spawner, defaults to `SubprocessHandle.handle_spawn`.

        Raises:
            ValueError: Raised when a configured command is blank.
        """

        for service_name, command in commands.items():
            if not command.strip():
                raise ValueError(f"command for service {service_name} must not be blank")
        self._commands = dict(commands)
        self._spawn = spawn or SubprocessHandle.handle_spawn

    def adapter_build_command(self, service_name: str, params: Mapping[str, object]) -> list[str]:
        """Build the command line for one service invocation.

        Raises:
            ConfigurationError: Raised when the service name is not configured.
        """

        command = self._commands.get(service_name)
        if command is None:
            raise ConfigurationError(f"service {service_name} is not configured")

        arguments = shlex.split(command)
        for param_name, param_value in params.items():
            arguments.extend([f"--{param_name.replace('_', '-')}", str(param_value)])
        return arguments

    async def adapter_start_service(self, service_name: str, key: JobKey, params: Mapping[str, object]) -> ServiceHandle:
        """Start one named service.

        Args:
            service_name: Configured service name, for example `export-road-network`.
            key: Job key used for log correlation.
            params: Service parameters.

        Returns:
            ServiceHandle: Handle exposing kill and completion wait.

        Raises:
            ConfigurationError: Raised when the service name is not configured.
            OSError: Raised when the service executable cannot be started.
        """

        arguments = self.adapter_build_command(service_name=service_name, params=params)
        logger.info("%s %s start", key, service_name)
        process = await self._spawn(arguments, f"[{service_name.upper()} {key}]", None)
        return ServiceHandle(service_name=service_name, process=process, key=key)
