"""Local execution of fetched commands."""

import subprocess
from typing import Optional, Sequence

from config import COMMAND_TIMEOUT
from relay.errors import ExecutionError
from utils.logger import get_logger

logger = get_logger(__name__)


class CommandExecutor:
    """Runs a program with arguments and captures its output.

    No shell is involved; ``name`` is resolved on PATH. Output that is not
    valid UTF-8 is decoded with replacement characters.
    """

    def __init__(self, timeout: Optional[float] = COMMAND_TIMEOUT):
        self.timeout = timeout

    def run(self, name: str, args: Sequence[str] = ()) -> str:
        """Execute ``name`` with ``args`` and return its stdout.

        Raises:
            ExecutionError: the program could not start, timed out, or
                exited non-zero. Any stdout produced is kept on ``output``.
        """
        try:
            result = subprocess.run(
                [name, *args],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.stdout or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            raise ExecutionError(f"{name}: timed out after {self.timeout}s", output=output) from e
        except OSError as e:
            raise ExecutionError(f"{name}: {e.strerror or e}") from e

        stderr = result.stderr.strip()
        if result.returncode != 0:
            message = f"{name}: exit status {result.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise ExecutionError(message, output=result.stdout, returncode=result.returncode)

        if stderr:
            logger.debug(f"{name} stderr: {stderr}")
        return result.stdout
