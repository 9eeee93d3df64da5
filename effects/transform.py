"""
Runs the external ffmpeg transform.
"""

import logging
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import List, Optional

from workers.errors import ConfigError, TransformError, TransformTimeout

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 4000


@dataclass
class TransformResult:
    argv: List[str]
    returncode: Optional[int]
    stdout: str
    stderr: str
    duration: float

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)

    def stderr_tail(self, limit: int = STDERR_TAIL_CHARS) -> str:
        return self.stderr[-limit:] if self.stderr else ''


def _decode(output) -> str:
    if output is None:
        return ''
    if isinstance(output, bytes):
        return output.decode('utf-8', errors='replace')
    return output


def run_transform(argv: List[str], timeout: Optional[float] = None) -> TransformResult:
    """
    Run a transform command synchronously, capturing its output.

    Args:
        argv: Command and arguments
        timeout: Seconds before the process is killed (None = no limit)

    Returns:
        TransformResult for a zero exit status

    Raises:
        TransformTimeout: process exceeded timeout
        TransformError: non-zero exit or the binary could not be started
    """
    logger.debug("Running: %s", shlex.join(argv))
    start = time.monotonic()

    try:
        proc = subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        result = TransformResult(
            argv=list(argv),
            returncode=None,
            stdout=_decode(e.stdout),
            stderr=_decode(e.stderr),
            duration=time.monotonic() - start,
        )
        raise TransformTimeout(f"{argv[0]} timed out after {timeout}s", timeout, result) from e
    except OSError as e:
        raise TransformError(f"Could not start {argv[0]}: {e}") from e

    result = TransformResult(
        argv=list(argv),
        returncode=proc.returncode,
        stdout=proc.stdout or '',
        stderr=proc.stderr or '',
        duration=time.monotonic() - start,
    )

    if proc.returncode != 0:
        raise TransformError(f"{argv[0]} exited with status {proc.returncode}", result)

    return result


def check_binary(binary: str) -> str:
    """
    Resolve the transform binary on PATH.

    Raises:
        ConfigError: binary not found
    """
    path = shutil.which(binary)
    if path is None:
        raise ConfigError(f"Transform binary '{binary}' not found on PATH")
    return path
