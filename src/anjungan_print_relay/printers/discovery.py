"""
Printer enumeration.

The spooler is asked first (pywin32 on Windows, `lpstat -e` elsewhere). When it
raises or reports nothing, a second source is tried: on Windows the
Win32_Printer inventory through PowerShell, on CUPS hosts the destination list
of `lpstat -a`. No printers at all is a valid result.
"""
import asyncio
import json
import logging
import platform
from typing import Awaitable, Callable, List, Optional

from anjungan_print_relay.errors import OSSubmissionFailure
from anjungan_print_relay.jobs.models import PrinterDescriptor
from anjungan_print_relay.printers.drivers import run_command

try:
    import win32print
except ImportError:  # pragma: no cover
    win32print = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

PrinterSource = Callable[[], Awaitable[List[PrinterDescriptor]]]

POWERSHELL_PRINTER_QUERY = (
    "$ErrorActionPreference='Stop'; "
    "Get-CimInstance Win32_Printer -Property DeviceID,Name,PrinterPaperNames | "
    "Select-Object -Property DeviceID,Name,PrinterPaperNames | "
    "ConvertTo-Json -Compress -Depth 4"
)


def _enum_win32_printers() -> List[PrinterDescriptor]:
    if not win32print:
        raise RuntimeError("pywin32 not installed")
    flags = win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
    return [
        PrinterDescriptor(name=entry[2], device_id=entry[2])
        for entry in win32print.EnumPrinters(flags)
        if entry[2]
    ]


def parse_lpstat_output(output: str) -> List[PrinterDescriptor]:
    """`lpstat -e` prints one destination name per line."""
    return [
        PrinterDescriptor(name=line.strip(), device_id=line.strip())
        for line in output.splitlines()
        if line.strip()
    ]


def parse_lpstat_accepting(output: str) -> List[PrinterDescriptor]:
    """`lpstat -a` prints "<name> accepting requests since ..." per destination."""
    names = [line.split()[0] for line in output.splitlines() if line.strip()]
    return [PrinterDescriptor(name=name, device_id=name) for name in names]


def parse_cim_printers(output: str) -> List[PrinterDescriptor]:
    """
    Parse ConvertTo-Json output: a single object for one printer, a list for
    several, nothing at all for none.

    Raises:
        OSSubmissionFailure: output is not JSON
    """
    trimmed = (output or '').strip().lstrip('\ufeff')
    if not trimmed:
        return []
    try:
        parsed = json.loads(trimmed)
    except json.JSONDecodeError as e:
        raise OSSubmissionFailure(f"Failed to parse printer list: {e}") from e
    entries = parsed if isinstance(parsed, list) else [parsed]
    printers = []
    for entry in entries:
        descriptor = PrinterDescriptor.from_cim(entry)
        if descriptor:
            printers.append(descriptor)
    return printers


class PrinterEnumerator:
    """Primary spooler listing with a platform-specific fallback."""

    def __init__(
        self,
        primary: Optional[PrinterSource] = None,
        fallback: Optional[PrinterSource] = None,
        timeout: float = 30.0,
        system: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.timeout = timeout
        self.system = (system or platform.system()).lower()
        self.primary = primary or self.list_from_spooler
        self.fallback = fallback or (
            self.list_from_powershell if self.system == 'windows' else self.list_from_cups_destinations
        )
        self.logger = logger or logging.getLogger(__name__)

    async def list_from_spooler(self) -> List[PrinterDescriptor]:
        if self.system == 'windows':
            loop = asyncio.get_running_loop()
            return await asyncio.wait_for(
                loop.run_in_executor(None, _enum_win32_printers), self.timeout
            )
        output = await run_command(['lpstat', '-e'], self.timeout)
        return parse_lpstat_output(output)

    async def list_from_powershell(self) -> List[PrinterDescriptor]:
        output = await run_command(
            ['powershell.exe', '-NoProfile', '-Command', POWERSHELL_PRINTER_QUERY],
            self.timeout,
        )
        return parse_cim_printers(output)

    async def list_from_cups_destinations(self) -> List[PrinterDescriptor]:
        """
        Destinations known to the CUPS scheduler. A host without a reachable
        scheduler has no printers, so a failing query reads as an empty list.
        """
        try:
            output = await run_command(['lpstat', '-a'], self.timeout)
        except OSSubmissionFailure as e:
            self.logger.warning(f"PRINTERS_CUPS_UNAVAILABLE error={e}")
            return []
        return parse_lpstat_accepting(output)

    async def list_printers(self) -> List[PrinterDescriptor]:
        """
        Raises:
            OSSubmissionFailure: the PowerShell fallback itself failed
        """
        try:
            printers = await self.primary()
            if printers:
                return list(printers)
            self.logger.warning("PRINTERS_FALLBACK_EMPTY reason=spooler returned empty list")
        except Exception as e:
            self.logger.warning(f"PRINTERS_FALLBACK_ERROR error={e}")

        printers = await self.fallback()
        if not printers:
            self.logger.warning("PRINTERS_FALLBACK_EMPTY reason=fallback returned empty list")
        return list(printers)
