"""
HTML → PDF rendering with a headless Chromium (Playwright).

A browser is launched per call and always closed afterwards. The page height
is either given by the caller or measured from `.page` (else `body`).
"""
import asyncio
import logging
import math
from typing import Optional

from anjungan_print_relay.errors import RenderFailure

logger = logging.getLogger(__name__)

MIN_MEASURED_HEIGHT_PX = 100
FALLBACK_HEIGHT_PX = 800
BROWSER_ARGS = ['--no-sandbox', '--disable-setuid-sandbox']
MEASURE_SCRIPT = (
    "() => { const el = document.querySelector('.page') || document.body;"
    " return el ? el.scrollHeight : 0; }"
)


def resolve_height(measured) -> int:
    """Round a measured scroll height up, replacing implausible values with the floor."""
    try:
        height = int(math.ceil(float(measured or 0)))
    except (TypeError, ValueError):
        height = 0
    if height < MIN_MEASURED_HEIGHT_PX:
        return FALLBACK_HEIGHT_PX
    return height


class HtmlRenderer:
    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    async def render(self, html: str, width: str, height_px: Optional[int] = None):
        """
        Render html to a PDF `width` wide.

        Returns:
            (pdf_bytes, height_px) with the height actually used

        Raises:
            RenderFailure: browser launch, page load or PDF export failed or timed out
        """
        try:
            return await asyncio.wait_for(
                self._render(html, width, height_px), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise RenderFailure(f"HTML rendering timed out after {self.timeout:g}s")
        except RenderFailure:
            raise
        except Exception as e:
            raise RenderFailure(f"HTML rendering failed: {e}") from e

    async def _render(self, html: str, width: str, height_px: Optional[int]):
        from playwright.async_api import async_playwright

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=BROWSER_ARGS)
            try:
                page = await browser.new_page()
                await page.set_content(html, wait_until='networkidle')

                final_height = height_px
                if not final_height:
                    final_height = resolve_height(await page.evaluate(MEASURE_SCRIPT))

                pdf = await page.pdf(
                    width=width,
                    height=f'{final_height}px',
                    print_background=True,
                    margin={'top': '0px', 'right': '0px', 'bottom': '0px', 'left': '0px'},
                )
                logger.debug(f"Rendered HTML → PDF ({len(pdf)} bytes, {width} x {final_height}px)")
                return pdf, final_height
            finally:
                await browser.close()
