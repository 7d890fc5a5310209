"""
9P access to acme's file system through plan9port's ``9p`` command.

Every call runs ``9p read``/``9p write`` as an asyncio subprocess against a
path such as ``acme/new/ctl`` or ``acme/12/body``. The event file is read
through one long-lived ``9p read`` whose stdout is streamed.
"""

from __future__ import annotations

import asyncio
import os
from typing import AsyncIterator, Dict, Optional

from acme_rss.core.logging import get_logger

logger = get_logger(__name__)

STREAM_CHUNK_SIZE = 8192


class AcmeError(Exception):
    """Raised when talking to acme fails."""


class NinePClient:
    """Thin async wrapper around the ``9p`` command line client."""

    def __init__(self, executable: str = "9p", namespace: Optional[str] = None):
        self.executable = executable
        self.namespace = namespace

    def _env(self) -> Optional[Dict[str, str]]:
        if not self.namespace:
            return None
        return {**os.environ, "NAMESPACE": self.namespace}

    async def _spawn(self, *args: str, stdin: int) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=stdin,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env(),
            )
        except FileNotFoundError as exc:
            raise AcmeError(f"{self.executable} not found; is plan9port on PATH?") from exc

    async def _run(self, *args: str, data: Optional[bytes] = None) -> bytes:
        stdin = asyncio.subprocess.PIPE if data is not None else asyncio.subprocess.DEVNULL
        proc = await self._spawn(*args, stdin=stdin)
        stdout, stderr = await proc.communicate(data)
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or f"exit status {proc.returncode}"
            logger.debug("ninep_command_failed", args=list(args), error=detail)
            raise AcmeError(f"{self.executable} {' '.join(args)}: {detail}")
        return stdout

    async def read(self, path: str) -> str:
        """Read a whole file."""
        return (await self._run("read", path)).decode("utf-8", errors="replace")

    async def write(self, path: str, data: str) -> None:
        """Write ``data`` to a file in one open/write/close cycle."""
        await self._run("write", path, data=data.encode("utf-8"))

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        """Yield raw chunks from ``path`` until the file reaches EOF.

        The subprocess is terminated if the consumer stops early.
        """
        proc = await self._spawn("read", path, stdin=asyncio.subprocess.DEVNULL)
        assert proc.stdout is not None
        try:
            while True:
                chunk = await proc.stdout.read(STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            if proc.returncode is None:
                proc.terminate()
            await proc.wait()
