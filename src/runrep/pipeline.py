"""Report pipeline step: build, execute, fetch, clean up."""

import logging
import time
from typing import BinaryIO, Callable

from runrep.command.builder import build_command
from runrep.command.params import RunrepParameters
from runrep.errors import DomainError, RemoteFileError, TransportError
from runrep.executor.base import RemoteExecutor
from runrep.types import Command, Report, ReportRun

logger = logging.getLogger(__name__)


def cleanup(executor: RemoteExecutor, command: Command, target) -> bool:
    """Best-effort removal of the remote output file. Never raises RunrepError."""
    try:
        executor.delete(command, target)
        return True
    except (TransportError, RemoteFileError) as e:
        logger.warning(
            f"Fetched the report from `{command.output_resource}` but failed to clean it up: {e}"
        )
        return False


def run_report(
    executor: RemoteExecutor,
    target,
    params: RunrepParameters,
    report: Report,
    consumer: Callable[[BinaryIO], int],
    keep_remote: bool = False,
) -> ReportRun:
    """Run one report end to end and describe the outcome.

    ValidationError propagates to the caller; nothing touches the network
    before the parameters are valid. Remote failures are reported in the
    returned ReportRun rather than raised.
    """
    command = build_command(params, report)
    started = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    try:
        executor.execute(command, target)
        bytes_fetched = executor.fetch(command, target, consumer)
    except DomainError as e:
        logger.error(f"Got the error {e.remote_error_line} while executing command {e.redacted_command}")
        return ReportRun(
            status="runrep_failure",
            command=command.redacted_text,
            output_resource=command.output_resource,
            elapsed_ms=elapsed_ms(),
            error=e.message,
            remote_error_line=e.remote_error_line,
        )
    except (TransportError, RemoteFileError) as e:
        logger.error(f"Report run failed: {e}")
        return ReportRun(
            status="failure",
            command=command.redacted_text,
            output_resource=command.output_resource,
            elapsed_ms=elapsed_ms(),
            error=str(e),
        )

    elapsed = elapsed_ms()
    logger.info(f"Fetched {bytes_fetched} bytes from {command.output_resource} in {elapsed}ms")

    if not keep_remote:
        cleanup(executor, command, target)

    return ReportRun(
        status="success",
        command=command.redacted_text,
        output_resource=command.output_resource,
        bytes_fetched=bytes_fetched,
        elapsed_ms=elapsed,
    )
