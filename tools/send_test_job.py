#!/usr/bin/env python3
"""
Send Test Job: posts a sample print job to a running print relay.

Usage:
    python send_test_job.py raw --share POS1
    python send_test_job.py label --share LABEL1 --text "SIZE 58 mm,40 mm\nCLS\nPRINT 1"
    python send_test_job.py pdf --printer "EPSON L3250" --file receipt.pdf
    python send_test_job.py html --printer "POS-80" --file ticket.html
    python send_test_job.py printers

Use --url for a relay that is not on http://127.0.0.1:2020 and --api-key when
the relay has a shared secret configured.
"""

import argparse
import base64
import sys

import requests

# ESC @ (init), sample text, feed and partial cut
SAMPLE_ESCPOS = b'\x1b@' + b'Anjungan Mandiri\nTest print\n\n\n' + b'\x1dV\x01'


def _post(args, path: str, body: dict) -> int:
    headers = {'x-api-key': args.api_key} if args.api_key else {}
    resp = requests.post(f"{args.url.rstrip('/')}{path}", json=body, headers=headers, timeout=120)
    request_id = resp.headers.get('X-Request-Id', '-')
    print(f"[{resp.status_code}] id={request_id} {resp.text}")
    return 0 if resp.ok else 1


def _read_file(path: str) -> bytes:
    with open(path, 'rb') as f:
        return f.read()


def send_raw(args) -> int:
    data = _read_file(args.file) if args.file else SAMPLE_ESCPOS
    return _post(args, '/print-raw', {
        'printerShare': args.share,
        'rawBase64': base64.b64encode(data).decode('ascii'),
    })


def send_label(args) -> int:
    body = {'printerShare': args.share, 'newline': not args.keep_newlines}
    if args.file:
        body['dataBase64'] = base64.b64encode(_read_file(args.file)).decode('ascii')
    else:
        body['data'] = args.text.replace('\\n', '\n')
    return _post(args, '/print-label', body)


def send_pdf(args) -> int:
    return _post(args, '/print-pdf', {
        'printer': args.printer,
        'pdfBase64': base64.b64encode(_read_file(args.file)).decode('ascii'),
    })


def send_html(args) -> int:
    body = {'printer': args.printer, 'html': _read_file(args.file).decode('utf-8')}
    if args.width:
        body['width'] = args.width
    if args.height:
        body['heightPx'] = args.height
    return _post(args, '/print-html', body)


def show_printers(args) -> int:
    headers = {'x-api-key': args.api_key} if args.api_key else {}
    resp = requests.get(f"{args.url.rstrip('/')}/printers", headers=headers, timeout=60)
    print(f"[{resp.status_code}] {resp.text}")
    return 0 if resp.ok else 1


def main():
    parser = argparse.ArgumentParser(description='Send a test job to the print relay')
    parser.add_argument('--url', default='http://127.0.0.1:2020', help='Relay base URL')
    parser.add_argument('--api-key', default='', help='x-api-key header value')
    sub = parser.add_subparsers(dest='kind', required=True)

    raw = sub.add_parser('raw', help='RAW bytes (sample ESC/POS unless --file)')
    raw.add_argument('--share', required=True, help='Share name or \\\\host\\share')
    raw.add_argument('--file', help='Binary file to send')
    raw.set_defaults(func=send_raw)

    label = sub.add_parser('label', help='Label commands (TSPL/ZPL/CPCL)')
    label.add_argument('--share', required=True)
    label.add_argument('--text', default='^XA^FO50,50^ADN,36,20^FDTEST^FS^XZ')
    label.add_argument('--file', help='Label file, sent as dataBase64')
    label.add_argument('--keep-newlines', action='store_true', help='Do not convert to CRLF')
    label.set_defaults(func=send_label)

    pdf = sub.add_parser('pdf', help='PDF document')
    pdf.add_argument('--printer', required=True)
    pdf.add_argument('--file', required=True)
    pdf.set_defaults(func=send_pdf)

    html = sub.add_parser('html', help='HTML page rendered to PDF')
    html.add_argument('--printer', required=True)
    html.add_argument('--file', required=True)
    html.add_argument('--width', help='Page width, e.g. 58mm')
    html.add_argument('--height', type=int, help='Page height in px (measured when omitted)')
    html.set_defaults(func=send_html)

    printers = sub.add_parser('printers', help='List printers known to the relay')
    printers.set_defaults(func=show_printers)

    args = parser.parse_args()
    try:
        sys.exit(args.func(args))
    except requests.RequestException as e:
        print(f'Request failed: {e}', file=sys.stderr)
        sys.exit(2)


if __name__ == '__main__':
    main()
