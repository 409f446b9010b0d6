"""Post-install runtime check."""

import asyncio
import os
import signal
from pathlib import Path

from ralen.logging import get_logger
from ralen.types import LanguageDefinition, SmokeTestResult

logger = get_logger(__name__)

SMOKE_TEST_TIMEOUT = 8.0
KILL_WAIT_TIMEOUT = 2.0


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the runtime and anything it spawned into its session."""
    if os.name == "nt":
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Already gone
        pass


async def run_smoke_test(definition: LanguageDefinition, runtime_path: Path) -> SmokeTestResult:
    """Run `<runtime> <version_arg>` and report, never fail, on a bad result.

    Only an inability to start the process (missing file, exec format error)
    propagates as OSError. Timeouts and nonzero exits are logged as warnings.
    """
    args = [definition.version_arg] if definition.version_arg else []
    process = await asyncio.create_subprocess_exec(
        str(runtime_path),
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=os.name != "nt",
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=SMOKE_TEST_TIMEOUT)
    except asyncio.TimeoutError:
        _kill_process_group(process)
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_WAIT_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("smoke_test_kill_unconfirmed", runtime=str(runtime_path), pid=process.pid)
        logger.warning(
            "smoke_test_timeout",
            language=definition.key,
            runtime=str(runtime_path),
            timeout=SMOKE_TEST_TIMEOUT,
        )
        return SmokeTestResult(passed=False, returncode=process.returncode, timed_out=True)

    out = stdout.decode(errors="replace").strip()
    err = stderr.decode(errors="replace").strip()

    if process.returncode != 0:
        logger.warning(
            "smoke_test_failed",
            language=definition.key,
            runtime=str(runtime_path),
            returncode=process.returncode,
            stderr=err,
        )
        return SmokeTestResult(passed=False, returncode=process.returncode, stdout=out, stderr=err)

    logger.info("smoke_test_passed", language=definition.key, output=out)
    return SmokeTestResult(passed=True, returncode=0, stdout=out, stderr=err)
