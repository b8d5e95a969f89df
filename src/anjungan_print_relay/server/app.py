"""
HTTP surface of the print relay (aiohttp).

Routes:
  GET  /             liveness + timestamp
  GET  /printers     installed printer names
  POST /print-raw    RAW bytes to a printer share
  POST /print-label  label text / base64 to a printer share
  POST /print-pdf    base64 PDF to a named printer
  POST /print-html   HTML → PDF to a named printer

Middlewares, outermost first: request log (correlation id + timing), CORS,
error envelope, optional x-api-key check.
"""
import datetime
import logging
import time
import uuid
from typing import Optional

from aiohttp import web

from anjungan_print_relay.config.manager import ServerConfig
from anjungan_print_relay.errors import PrintRelayError
from anjungan_print_relay.jobs.dispatch import PrintDispatcher
from anjungan_print_relay.payload.extractor import summarize_body
from anjungan_print_relay.printers.discovery import PrinterEnumerator
from anjungan_print_relay.printers.drivers import get_printer_driver
from anjungan_print_relay.render.html import HtmlRenderer

CONFIG_KEY = web.AppKey('config', ServerConfig)
DISPATCHER_KEY = web.AppKey('dispatcher', PrintDispatcher)
LOGGER_KEY = web.AppKey('logger', logging.Logger)

REQUEST_ID = 'request_id'
LOG_TAG = 'log_tag'
REQUEST_ID_HEADER = 'X-Request-Id'
API_KEY_HEADER = 'x-api-key'
MAX_BODY_BYTES = 50 * 1024 * 1024
CORS_METHODS = 'GET,HEAD,PUT,PATCH,POST,DELETE'

_BODY_CACHE = 'json_body'


def build_dispatcher(config: ServerConfig, logger: Optional[logging.Logger] = None) -> PrintDispatcher:
    """Wire the real OS collaborators for this host."""
    driver = get_printer_driver(config)
    system = 'Windows' if driver.name == 'windows' else 'Linux'
    return PrintDispatcher(
        driver=driver,
        renderer=HtmlRenderer(timeout=config.render_timeout),
        enumerator=PrinterEnumerator(timeout=config.query_timeout, system=system, logger=logger),
        config=config,
        logger=logger,
    )


async def read_body(request: web.Request):
    """
    Parsed JSON body; an empty body reads as {}.

    Raises:
        web.HTTPBadRequest: body is not valid JSON
    """
    if _BODY_CACHE in request:
        return request[_BODY_CACHE]
    body = {}
    if request.can_read_body:
        text = await request.text()
        if text.strip():
            try:
                body = await request.json()
            except ValueError:
                raise web.HTTPBadRequest(reason="Invalid JSON body")
    request[_BODY_CACHE] = body
    return body


# ---------------------------------------------------------------------------
# Middlewares
# ---------------------------------------------------------------------------

@web.middleware
async def request_log_middleware(request: web.Request, handler):
    logger = request.app[LOGGER_KEY]
    request_id = str(uuid.uuid4())
    request[REQUEST_ID] = request_id
    start = time.monotonic()

    summary = None
    if request.method == 'POST':
        try:
            summary = summarize_body(await read_body(request))
        except web.HTTPBadRequest:
            summary = None
    logger.info(
        f"REQ id={request_id} method={request.method} url={request.path_qs} "
        f"ip={request.remote} body={summary}"
    )

    response = await handler(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    duration_ms = round((time.monotonic() - start) * 1000)
    logger.info(f"RES id={request_id} status={response.status} duration_ms={duration_ms}")
    return response


@web.middleware
async def cors_middleware(request: web.Request, handler):
    origin = request.app[CONFIG_KEY].cors_origin or '*'
    request_origin = request.headers.get('Origin')

    if request.method == 'OPTIONS' and 'Access-Control-Request-Method' in request.headers:
        response = web.Response(status=204)
        response.headers['Access-Control-Allow-Methods'] = CORS_METHODS
        requested_headers = request.headers.get('Access-Control-Request-Headers')
        if requested_headers:
            response.headers['Access-Control-Allow-Headers'] = requested_headers
    else:
        response = await handler(request)

    allow_origin = request_origin if origin == '*' else origin
    if allow_origin:
        response.headers['Access-Control-Allow-Origin'] = allow_origin
        response.headers['Vary'] = 'Origin'
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    logger = request.app[LOGGER_KEY]
    request_id = request.get(REQUEST_ID)
    try:
        return await handler(request)
    except PrintRelayError as e:
        tag = request.get(LOG_TAG, 'REQUEST')
        if e.status >= 500:
            logger.error(f"{tag}_ERROR id={request_id} error={e.message}", exc_info=True)
        else:
            logger.warning(f"{tag}_REJECTED id={request_id} error={e.message}")
        return web.json_response({'success': False, 'error': e.message}, status=e.status)
    except web.HTTPException as e:
        return web.json_response({'success': False, 'error': e.reason}, status=e.status)
    except Exception as e:
        logger.error(f"UNCAUGHT id={request_id} error={e}", exc_info=True)
        return web.json_response({'success': False, 'error': 'Internal Server Error'}, status=500)


@web.middleware
async def api_key_middleware(request: web.Request, handler):
    api_key = request.app[CONFIG_KEY].api_key
    if api_key and request.headers.get(API_KEY_HEADER) != api_key:
        return web.json_response({'success': False, 'error': 'Unauthorized'}, status=401)
    return await handler(request)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def index(request: web.Request) -> web.Response:
    now = datetime.datetime.now(datetime.timezone.utc).isoformat().replace('+00:00', 'Z')
    return web.json_response({'ok': True, 'service': 'print-server', 'time': now})


async def printers(request: web.Request) -> web.Response:
    request[LOG_TAG] = 'PRINTERS'
    names = await request.app[DISPATCHER_KEY].list_printers()
    return web.json_response({'success': True, 'printers': names})


def print_handler(tag: str, operation: str):
    """Handler that runs one PrintDispatcher operation on the JSON body."""

    async def handler(request: web.Request) -> web.Response:
        request[LOG_TAG] = tag
        body = await read_body(request)
        dispatch = getattr(request.app[DISPATCHER_KEY], operation)
        result = await dispatch(body, request_id=request[REQUEST_ID])
        return web.json_response({'success': True, 'message': result.message})

    handler.__name__ = operation
    return handler


def create_app(
    config: ServerConfig,
    dispatcher: Optional[PrintDispatcher] = None,
    logger: Optional[logging.Logger] = None,
) -> web.Application:
    logger = logger or logging.getLogger(__name__)
    app = web.Application(
        client_max_size=MAX_BODY_BYTES,
        middlewares=[
            request_log_middleware,
            cors_middleware,
            error_middleware,
            api_key_middleware,
        ],
    )
    app[CONFIG_KEY] = config
    app[LOGGER_KEY] = logger
    app[DISPATCHER_KEY] = dispatcher or build_dispatcher(config, logger)

    app.router.add_get('/', index)
    app.router.add_get('/printers', printers)
    app.router.add_post('/print-raw', print_handler('RAW', 'print_raw'))
    app.router.add_post('/print-label', print_handler('LABEL', 'print_label'))
    app.router.add_post('/print-pdf', print_handler('PDF', 'print_pdf'))
    app.router.add_post('/print-html', print_handler('HTML', 'print_html'))
    return app
