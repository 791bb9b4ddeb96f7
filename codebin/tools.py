import asyncio
import logging
import os
import shutil
from typing import Iterable, List, Mapping, Optional

from .errors import ToolExecutionError, ToolTimeoutError

logger = logging.getLogger(__name__)


def resolve_tool(cmd: str, overrides: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Resolve a command path with optional overrides (see config.TOOL_ENV_OVERRIDES).
    If an override is provided, prefer it; otherwise fall back to PATH.
    """
    override = ((overrides or {}).get(cmd) or "").strip()
    if override:
        # A direct path is used as-is; anything else is resolved via PATH
        if os.path.isfile(override):
            return override
        resolved = shutil.which(override)
        if resolved:
            return resolved
    return shutil.which(cmd)


def _kill(proc) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        # Exited on its own between the deadline and the kill
        pass


async def run_tool(
    command: List[str],
    cwd: Optional[str] = None,
    input_text: Optional[str] = None,
    timeout: Optional[float] = None,
    ok_returncodes: Iterable[int] = (0,),
) -> str:
    """Run an external tool once and return its stdout.

    Raises ToolExecutionError when the process cannot be spawned or exits with a
    status outside ``ok_returncodes``; the error message is the captured stderr,
    or the spawn error when stderr is empty. Raises ToolTimeoutError (after
    killing the process) when ``timeout`` elapses.
    """
    tool = os.path.basename(command[0]) if command else "tool"
    logger.debug(f"Running {tool}: {command!r} (cwd={cwd})")
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        logger.warning(f"Could not start {tool}: {e}")
        raise ToolExecutionError(str(e) or f"Could not start {tool}") from e

    data = input_text.encode("utf-8") if input_text is not None else None
    try:
        out, err = await asyncio.wait_for(proc.communicate(data), timeout=timeout)
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        logger.warning(f"{tool} timed out after {timeout}s")
        raise ToolTimeoutError(tool, timeout)
    except asyncio.CancelledError:
        # The request went away; do not leave the process behind
        _kill(proc)
        await asyncio.shield(proc.wait())
        raise

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode in tuple(ok_returncodes):
        return stdout
    logger.warning(f"{tool} exited with status {proc.returncode}")
    raise ToolExecutionError(
        stderr or f"{tool} exited with status {proc.returncode}",
        stdout=stdout,
        stderr=stderr,
        returncode=proc.returncode,
    )
