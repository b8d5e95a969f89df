import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from anjungan_print_relay.config.manager import ServerConfig
from anjungan_print_relay.errors import OSSubmissionFailure
from anjungan_print_relay.printers.drivers import (
    CUPSDriver,
    WindowsDriver,
    get_printer_driver,
    run_command,
)

EXEC = 'anjungan_print_relay.printers.drivers.asyncio.create_subprocess_exec'


def fake_process(returncode=0, stdout=b'', stderr=b'', communicate=None):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = communicate or AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


class TestRunCommand(unittest.IsolatedAsyncioTestCase):

    async def test_returns_stdout(self):
        with patch(EXEC, AsyncMock(return_value=fake_process(stdout=b'request id is POS1-7\n'))) as ex:
            out = await run_command(['lp', '-d', 'POS1', 'x.bin'])
        self.assertEqual(out, 'request id is POS1-7\n')
        self.assertEqual(ex.call_args.args, ('lp', '-d', 'POS1', 'x.bin'))

    async def test_non_zero_exit_raises_stderr(self):
        proc = fake_process(returncode=1, stderr=b'The network path was not found.\r\n')
        with patch(EXEC, AsyncMock(return_value=proc)):
            with self.assertRaises(OSSubmissionFailure) as cm:
                await run_command(['cmd', '/c', 'copy'])
        self.assertEqual(cm.exception.message, 'The network path was not found.')

    async def test_spawn_error(self):
        with patch(EXEC, AsyncMock(side_effect=FileNotFoundError('lp'))):
            with self.assertRaises(OSSubmissionFailure) as cm:
                await run_command(['lp'])
        self.assertIn('Cannot run lp', cm.exception.message)

    async def test_timeout_kills_process(self):
        async def hang():
            await asyncio.sleep(10)

        proc = fake_process(communicate=hang)
        with patch(EXEC, AsyncMock(return_value=proc)):
            with self.assertRaises(OSSubmissionFailure) as cm:
                await run_command(['SumatraPDF.exe'], timeout=0.05)
        self.assertIn('timed out', cm.exception.message)
        proc.kill.assert_called_once()


class TestDrivers(unittest.IsolatedAsyncioTestCase):

    async def test_windows_raw_uses_binary_copy(self):
        driver = WindowsDriver()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'print-1.bin'
            path.write_bytes(b'Hello')
            with patch('anjungan_print_relay.printers.drivers.run_command', AsyncMock(return_value='')) as run:
                await driver.submit_raw(path, '\\\\127.0.0.1\\POS1')
        self.assertEqual(
            run.call_args.args[0],
            ['cmd', '/c', 'copy', '/b', str(path), '\\\\127.0.0.1\\POS1'],
        )

    async def test_windows_document_uses_sumatra_noscale(self):
        driver = WindowsDriver('C:\\Tools\\SumatraPDF.exe', timeout=5)
        with patch('anjungan_print_relay.printers.drivers.run_command', AsyncMock(return_value='')) as run:
            await driver.print_document(Path('job.pdf'), 'EPSON L3250')
        cmd, timeout = run.call_args.args
        self.assertEqual(cmd[0], 'C:\\Tools\\SumatraPDF.exe')
        self.assertIn('noscale', cmd)
        self.assertEqual(cmd[cmd.index('-print-to') + 1], 'EPSON L3250')
        self.assertEqual(timeout, 5)

    async def test_cups_raw_targets_share_queue(self):
        driver = CUPSDriver()
        with patch('anjungan_print_relay.printers.drivers.run_command', AsyncMock(return_value='')) as run:
            await driver.submit_raw(Path('/tmp/print-1.bin'), '\\\\127.0.0.1\\POS1')
        self.assertEqual(run.call_args.args[0], ['lp', '-d', 'POS1', '-o', 'raw', '/tmp/print-1.bin'])

    async def test_cups_document(self):
        driver = CUPSDriver()
        with patch('anjungan_print_relay.printers.drivers.run_command', AsyncMock(return_value='')) as run:
            await driver.print_document(Path('/tmp/print-1.pdf'), 'Office')
        self.assertEqual(run.call_args.args[0], ['lp', '-d', 'Office', '/tmp/print-1.pdf'])


class TestDriverFactory(unittest.TestCase):

    def test_by_platform(self):
        self.assertIsInstance(get_printer_driver(ServerConfig(), system='Windows'), WindowsDriver)
        self.assertIsInstance(get_printer_driver(ServerConfig(), system='Linux'), CUPSDriver)

    def test_override(self):
        driver = get_printer_driver(ServerConfig(driver='windows', submit_timeout=7), system='Linux')
        self.assertIsInstance(driver, WindowsDriver)
        self.assertEqual(driver.timeout, 7)

    def test_unknown_falls_back_to_cups(self):
        self.assertIsInstance(get_printer_driver(ServerConfig(driver='lpr'), system='Windows'), CUPSDriver)


if __name__ == '__main__':
    unittest.main()
