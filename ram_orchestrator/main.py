"""Main module entrypoint for local runtime execution.

This module validates startup configuration and launches the FastAPI service
or runs one result generation in the foreground.
"""

import argparse
import asyncio
import logging

import uvicorn

from ram_orchestrator.bootstrap import bootstrap_create_application, bootstrap_create_components
from ram_orchestrator.config import AppSettings, config_load_settings
from ram_orchestrator.jobs import JobExecutionResult

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with code 1 when a foreground generation fails.
    """

    argument_parser = argparse.ArgumentParser(description="RAM analysis orchestrator runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "generate"),
        help="Runtime command: `api` starts server, `generate` runs one result generation in the foreground",
        type=str,
    )
    argument_parser.add_argument("--project-id", dest="project_id", type=int, help="Project id for `generate`")
    argument_parser.add_argument("--scenario-id", dest="scenario_id", type=int, help="Scenario id for `generate`")
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    main_configure_logging(settings)

    if parsed_arguments.command == "generate":
        if parsed_arguments.project_id is None or parsed_arguments.scenario_id is None:
            argument_parser.error("`generate` requires --project-id and --scenario-id")
        execution_result = asyncio.run(
            main_run_generation(
                settings=settings,
                project_id=parsed_arguments.project_id,
                scenario_id=parsed_arguments.scenario_id,
            )
        )
        if execution_result.status != "success":
            raise SystemExit(1)
        return

    application = bootstrap_create_application(settings=settings)
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
        log_level=settings.log_level.lower(),
    )


def main_configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


async def main_run_generation(settings: AppSettings, project_id: int, scenario_id: int) -> JobExecutionResult:
    """Run one generation and wait for any forced removals it submitted.

    Args:
        settings: Validated settings.
        project_id: Project identifier.
        scenario_id: Scenario identifier.

    Returns:
        JobExecutionResult: Generation outcome.
    """

    components = bootstrap_create_components(settings=settings)
    try:
        execution_result = await components.orchestrator.job_generate_results(
            project_id=project_id,
            scenario_id=scenario_id,
        )
        await components.supervisor.job_wait_idle()
    finally:
        await components.engine.dispose()
    logger.info("p%s s%s generation finished with status %s", project_id, scenario_id, execution_result.status)
    return execution_result


if __name__ == "__main__":
    main()
