"""
Print dispatch: one coroutine per print route.

Each operation validates the body, writes the job to a temp file, hands it to
the OS driver and removes the temp file again:

  print_raw    — RAW bytes (ESC/POS, TSPL, ZPL ...) copied to a printer share
  print_label  — label command text (or base64) copied to a printer share
  print_pdf    — base64 PDF printed on a named printer
  print_html   — HTML rendered to PDF, then printed on a named printer

Validation failures raise the client error kinds from errors.py; driver and
renderer failures propagate as OSSubmissionFailure / RenderFailure.
"""
import logging
import re
from typing import Any, List, Optional

from anjungan_print_relay.config.manager import ServerConfig
from anjungan_print_relay.errors import InvalidEncoding, MissingPayload, MissingTarget
from anjungan_print_relay.jobs.models import PrintResult, display_names
from anjungan_print_relay.jobs.tempfiles import temp_print_file
from anjungan_print_relay.payload.encoding import decode_base64_tolerant
from anjungan_print_relay.payload.extractor import extract_payload
from anjungan_print_relay.payload.target import build_share_path, resolve_printer_share
from anjungan_print_relay.printers.discovery import PrinterEnumerator
from anjungan_print_relay.printers.drivers import PrinterDriver
from anjungan_print_relay.render.html import HtmlRenderer

_NEWLINE_RE = re.compile(r'\r?\n')


def normalize_newlines(text: str) -> str:
    return _NEWLINE_RE.sub('\r\n', text)


def _as_dict(body: Any) -> dict:
    return body if isinstance(body, dict) else {}


def _string_field(body: dict, key: str) -> Optional[str]:
    value = body.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class PrintDispatcher:
    def __init__(
        self,
        driver: PrinterDriver,
        renderer: HtmlRenderer,
        enumerator: PrinterEnumerator,
        config: Optional[ServerConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.driver = driver
        self.renderer = renderer
        self.enumerator = enumerator
        self.config = config or ServerConfig()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def temp_dir(self) -> Optional[str]:
        return self.config.temp_dir or None

    async def _submit_to_share(self, content: bytes, ext: str, share: str) -> str:
        share_path = build_share_path(share)
        with temp_print_file(content, ext, self.temp_dir) as path:
            await self.driver.submit_raw(path, share_path)
        return share_path

    async def _print_document(self, content: bytes, printer: str) -> None:
        with temp_print_file(content, 'pdf', self.temp_dir) as path:
            await self.driver.print_document(path, printer)

    async def print_raw(self, body: Any, request_id: str = '') -> PrintResult:
        body = _as_dict(body)
        share = resolve_printer_share(body)
        if not share:
            raise MissingTarget("printerShare (or printer/share/shareName) is required")

        buffer = extract_payload(body)
        if not buffer:
            self.logger.warning(f"RAW_MISSING_PAYLOAD id={request_id} keys={sorted(body.keys())}")
            raise MissingPayload(
                "Raw payload is required. Provide rawBase64, dataBase64, raw, rawHex, or rawBytes."
            )

        share_path = await self._submit_to_share(buffer, 'bin', share)
        self.logger.info(f"RAW_OK id={request_id} sharePath={share_path} bytes={len(buffer)}")
        return PrintResult(kind='raw', target=share_path, size=len(buffer))

    async def print_label(self, body: Any, request_id: str = '') -> PrintResult:
        body = _as_dict(body)
        share = resolve_printer_share(body)
        data = body.get('data')
        data_base64 = body.get('dataBase64')
        if not share:
            raise MissingTarget("printerShare and data or dataBase64 are required")
        if not data and not data_base64:
            raise MissingPayload("printerShare and data or dataBase64 are required")

        if data_base64:
            buffer = decode_base64_tolerant(str(data_base64))
            if not buffer:
                raise InvalidEncoding("dataBase64 is not valid base64")
        else:
            text = str(data)
            if body.get('newline', True):
                text = normalize_newlines(text)
            buffer = text.encode('utf-8')

        share_path = await self._submit_to_share(buffer, 'lbl', share)
        self.logger.info(f"LABEL_OK id={request_id} sharePath={share_path} bytes={len(buffer)}")
        return PrintResult(kind='label', target=share_path, size=len(buffer))

    async def print_pdf(self, body: Any, request_id: str = '') -> PrintResult:
        body = _as_dict(body)
        pdf_base64 = body.get('pdfBase64')
        printer = _string_field(body, 'printer')
        if not printer:
            raise MissingTarget("pdfBase64 and printer are required")
        if not pdf_base64:
            raise MissingPayload("pdfBase64 and printer are required")

        pdf = decode_base64_tolerant(str(pdf_base64))
        if not pdf:
            raise InvalidEncoding("pdfBase64 is not valid base64")

        await self._print_document(pdf, printer)
        self.logger.info(f"PDF_OK id={request_id} printer={printer} bytes={len(pdf)}")
        return PrintResult(kind='pdf', target=printer, size=len(pdf))

    async def print_html(self, body: Any, request_id: str = '') -> PrintResult:
        body = _as_dict(body)
        html = body.get('html')
        printer = _string_field(body, 'printer')
        if not printer:
            raise MissingTarget("html and printer are required")
        if not html or not isinstance(html, str):
            raise MissingPayload("html and printer are required")

        width = _string_field(body, 'width') or self.config.thermal_width
        height_px = body.get('heightPx')
        if isinstance(height_px, bool) or not isinstance(height_px, (int, float)) or height_px <= 0:
            height_px = None
        else:
            height_px = int(height_px)

        pdf, final_height = await self.renderer.render(html, width, height_px)
        await self._print_document(pdf, printer)
        self.logger.info(
            f"HTML_OK id={request_id} printer={printer} width={width} heightPx={final_height}"
        )
        return PrintResult(kind='html', target=printer, size=len(pdf), height_px=final_height)

    async def list_printers(self) -> List[str]:
        return display_names(await self.enumerator.list_printers())
