from __future__ import annotations

import asyncio
import resource
from pathlib import Path
from typing import Dict, Optional, Sequence

DEFAULT_TIMEOUT = 60
MAX_MEMORY_BYTES = 1024 * 1024 * 1024


def _limit_resources() -> None:
    resource.setrlimit(resource.RLIMIT_AS, (MAX_MEMORY_BYTES, MAX_MEMORY_BYTES))


async def execute_safe(
    command: Sequence[str],
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT,
    cwd: Optional[Path] = None,
) -> Dict[str, object]:
    """
    Run a compiler subprocess with a memory cap and a wall-clock timeout.
    Never raises; failures are reported through ``exit_code`` and ``stderr``.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            preexec_fn=_limit_resources,
        )

        timed_out = False
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            timed_out = True
            process.kill()
            stdout, stderr = await process.communicate()

        return {
            "exit_code": process.returncode,
            "stdout": stdout.decode("utf-8", errors="ignore") if stdout else "",
            "stderr": stderr.decode("utf-8", errors="ignore") if stderr else "",
            "timed_out": timed_out,
        }
    except Exception as e:
        return {
            "exit_code": -1,
            "stdout": "",
            "stderr": str(e),
            "timed_out": False,
        }
