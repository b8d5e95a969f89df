import unittest
from unittest.mock import AsyncMock, patch

from anjungan_print_relay.errors import OSSubmissionFailure
from anjungan_print_relay.jobs.models import PrinterDescriptor, display_names
from anjungan_print_relay.printers.discovery import (
    PrinterEnumerator,
    parse_cim_printers,
    parse_lpstat_accepting,
    parse_lpstat_output,
)


class TestParsers(unittest.TestCase):

    def test_cim_list(self):
        output = (
            '\ufeff[{"DeviceID":"POS-80","Name":"POS-80","PrinterPaperNames":["80 x 297 mm"]},'
            '{"DeviceID":"Fax","Name":null,"PrinterPaperNames":null}]'
        )
        printers = parse_cim_printers(output)
        self.assertEqual(printers[0], PrinterDescriptor('POS-80', 'POS-80', ['80 x 297 mm']))
        self.assertEqual(printers[1].name, 'Fax')
        self.assertEqual(printers[1].paper_sizes, [])

    def test_cim_single_object(self):
        printers = parse_cim_printers('{"DeviceID":"LBL","Name":"LBL"}')
        self.assertEqual(display_names(printers), ['LBL'])

    def test_cim_empty(self):
        self.assertEqual(parse_cim_printers('  \r\n'), [])

    def test_cim_garbage(self):
        with self.assertRaises(OSSubmissionFailure):
            parse_cim_printers('Get-CimInstance : Access denied')

    def test_lpstat(self):
        self.assertEqual(display_names(parse_lpstat_output('POS1\nOffice\n\n')), ['POS1', 'Office'])

    def test_lpstat_accepting(self):
        output = (
            "POS1 accepting requests since Sat 17 Oct 2026 08:00:00 AM WIB\n"
            "Label not accepting requests since Sat 17 Oct 2026 08:01:00 AM WIB\n"
        )
        self.assertEqual(display_names(parse_lpstat_accepting(output)), ['POS1', 'Label'])


class TestPrinterEnumerator(unittest.IsolatedAsyncioTestCase):

    async def test_primary_wins(self):
        fallback = AsyncMock()
        enumerator = PrinterEnumerator(
            primary=AsyncMock(return_value=[PrinterDescriptor('POS-80')]),
            fallback=fallback,
        )
        self.assertEqual(display_names(await enumerator.list_printers()), ['POS-80'])
        fallback.assert_not_called()

    async def test_primary_error_falls_back(self):
        enumerator = PrinterEnumerator(
            primary=AsyncMock(side_effect=RuntimeError('pywin32 not installed')),
            fallback=AsyncMock(return_value=[PrinterDescriptor('LBL')]),
        )
        with self.assertLogs(level='WARNING') as logs:
            printers = await enumerator.list_printers()
        self.assertEqual(display_names(printers), ['LBL'])
        self.assertTrue(any('PRINTERS_FALLBACK_ERROR' in line for line in logs.output))

    async def test_primary_empty_falls_back(self):
        fallback = AsyncMock(return_value=[])
        enumerator = PrinterEnumerator(primary=AsyncMock(return_value=[]), fallback=fallback)
        self.assertEqual(await enumerator.list_printers(), [])
        fallback.assert_awaited_once()

    async def test_fallback_failure_propagates(self):
        enumerator = PrinterEnumerator(
            primary=AsyncMock(return_value=[]),
            fallback=AsyncMock(side_effect=OSSubmissionFailure('powershell.exe not found')),
        )
        with self.assertRaises(OSSubmissionFailure):
            await enumerator.list_printers()

    async def test_linux_spooler_uses_lpstat(self):
        enumerator = PrinterEnumerator(system='Linux', timeout=3)
        run = AsyncMock(return_value='POS1\n')
        with patch('anjungan_print_relay.printers.discovery.run_command', run):
            printers = await enumerator.list_from_spooler()
        run.assert_awaited_once_with(['lpstat', '-e'], 3)
        self.assertEqual(display_names(printers), ['POS1'])

    async def test_cups_host_falls_back_to_lpstat_accepting(self):
        async def run(cmd, timeout):
            return '' if cmd == ['lpstat', '-e'] else 'POS1 accepting requests since today\n'

        enumerator = PrinterEnumerator(system='Linux')
        with patch('anjungan_print_relay.printers.discovery.run_command', AsyncMock(side_effect=run)) as mock:
            printers = await enumerator.list_printers()
        self.assertEqual(display_names(printers), ['POS1'])
        self.assertEqual(mock.call_args.args[0], ['lpstat', '-a'])

    async def test_cups_unavailable_is_empty_list(self):
        run = AsyncMock(side_effect=OSSubmissionFailure('lpstat: Scheduler is not running.'))
        enumerator = PrinterEnumerator(system='Linux')
        with patch('anjungan_print_relay.printers.discovery.run_command', run):
            with self.assertLogs(level='WARNING') as logs:
                printers = await enumerator.list_printers()
        self.assertEqual(printers, [])
        self.assertTrue(any('PRINTERS_CUPS_UNAVAILABLE' in line for line in logs.output))
        for call in run.call_args_list:
            self.assertNotEqual(call.args[0][0], 'powershell.exe')

    async def test_windows_falls_back_to_powershell(self):
        enumerator = PrinterEnumerator(system='Windows')
        self.assertEqual(enumerator.fallback, enumerator.list_from_powershell)

    async def test_powershell_query(self):
        enumerator = PrinterEnumerator(system='Windows')
        run = AsyncMock(return_value='{"DeviceID":"POS-80","Name":"POS-80"}')
        with patch('anjungan_print_relay.printers.discovery.run_command', run):
            printers = await enumerator.list_from_powershell()
        self.assertEqual(run.call_args.args[0][0], 'powershell.exe')
        self.assertIn('Win32_Printer', run.call_args.args[0][-1])
        self.assertEqual(display_names(printers), ['POS-80'])


if __name__ == '__main__':
    unittest.main()
