"""
OS print primitives.

A driver is picked once at startup from the platform (or the printing.driver
setting) and receives files that the dispatcher already wrote to disk.

Types:
  windows — RAW via `copy /b` to a printer share, documents via SumatraPDF
  cups    — RAW via `lp -o raw` to the share's queue, documents via `lp`

Every command runs as an asyncio subprocess with a timeout; non-zero exit,
spawn errors and timeouts all surface as OSSubmissionFailure.
"""

import asyncio
import logging
import platform
from pathlib import Path
from typing import List, Optional

from anjungan_print_relay.config.manager import ServerConfig
from anjungan_print_relay.errors import OSSubmissionFailure
from anjungan_print_relay.payload.target import share_queue_name

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


async def run_command(cmd: List[str], timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Run a command without a shell and return its decoded stdout.

    Raises:
        OSSubmissionFailure: spawn error, non-zero exit, or timeout
    """
    logger.debug(f"exec: {' '.join(cmd)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise OSSubmissionFailure(f"Cannot run {cmd[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise OSSubmissionFailure(f"{cmd[0]} timed out after {timeout:g}s")

    out = (stdout or b'').decode('utf-8', errors='replace')
    if proc.returncode != 0:
        err = (stderr or b'').decode('utf-8', errors='replace').strip()
        raise OSSubmissionFailure(err or out.strip() or f"{cmd[0]} exited with code {proc.returncode}")
    return out


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class PrinterDriver:
    name = 'base'

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def submit_raw(self, path: Path, share_path: str) -> None:
        raise NotImplementedError

    async def print_document(self, path: Path, printer: str) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Windows (printer share + SumatraPDF)
# ---------------------------------------------------------------------------

class WindowsDriver(PrinterDriver):
    """Copies RAW files to a printer share; prints PDFs silently through SumatraPDF."""

    name = 'windows'

    def __init__(self, sumatra_path: str = 'SumatraPDF.exe', timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.sumatra_path = sumatra_path

    async def submit_raw(self, path: Path, share_path: str) -> None:
        logger.info(f"RAW → {share_path} ({path.stat().st_size} bytes)")
        await run_command(['cmd', '/c', 'copy', '/b', str(path), share_path], self.timeout)

    async def print_document(self, path: Path, printer: str) -> None:
        cmd = [
            self.sumatra_path,
            '-print-to', printer,
            '-print-settings', 'noscale',
            '-silent',
            str(path),
        ]
        logger.info(f"PDF → {printer} via SumatraPDF")
        await run_command(cmd, self.timeout)


# ---------------------------------------------------------------------------
# CUPS (lp)
# ---------------------------------------------------------------------------

class CUPSDriver(PrinterDriver):
    """
    Sends jobs to CUPS queues with `lp`. A share path maps to the queue named
    by its last segment, so \\\\127.0.0.1\\POS1 prints to queue POS1.
    """

    name = 'cups'

    async def submit_raw(self, path: Path, share_path: str) -> None:
        queue = share_queue_name(share_path)
        cmd = ['lp', '-d', queue, '-o', 'raw', str(path)]
        logger.info(f"CUPS: {' '.join(cmd)}")
        out = await run_command(cmd, self.timeout)
        logger.info(f"✓ CUPS job accepted: {out.strip()}")

    async def print_document(self, path: Path, printer: str) -> None:
        cmd = ['lp', '-d', printer, str(path)]
        logger.info(f"CUPS: {' '.join(cmd)}")
        out = await run_command(cmd, self.timeout)
        logger.info(f"✓ CUPS job accepted: {out.strip()}")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_printer_driver(config: ServerConfig, system: Optional[str] = None) -> PrinterDriver:
    """
    Return the driver for this host.

    Args:
        config: resolved server config (driver override, SumatraPDF path, timeout)
        system: platform.system() value, detected when None
    """
    kind = (config.driver or '').lower().strip()
    if not kind:
        kind = 'windows' if (system or platform.system()).lower() == 'windows' else 'cups'
    if kind == 'windows':
        return WindowsDriver(config.sumatra_path, timeout=config.submit_timeout)
    elif kind == 'cups':
        return CUPSDriver(timeout=config.submit_timeout)
    else:
        logger.warning(f"Unknown printing driver '{kind}', falling back to CUPSDriver")
        return CUPSDriver(timeout=config.submit_timeout)
