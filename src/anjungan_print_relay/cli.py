import argparse
import asyncio
import getpass
import shutil
import sys
from pathlib import Path

from anjungan_print_relay.config.manager import (
    DEFAULTS_FILE,
    ConfigManager,
    ServerConfig,
    default_config_path,
)
from anjungan_print_relay.errors import OSSubmissionFailure


def _prompt(label: str, current: str = '', secret: bool = False) -> str:
    """Prompt user for a value, showing current (masked if secret). Empty input keeps current."""
    current = '' if current is None else str(current)
    if current:
        display = ('*' * 6 + current[-4:]) if secret and len(current) > 4 else (('*' * 8) if secret else current)
        prompt_str = f"  {label} [{display}]: "
    else:
        prompt_str = f"  {label} (not set): "

    if secret:
        val = getpass.getpass(prompt_str)
    else:
        val = input(prompt_str).strip()

    return val if val else current


def _ensure_config(config_path: Path) -> ConfigManager:
    """Open the config file, bootstrapping it from the bundled defaults first."""
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(DEFAULTS_FILE, config_path)
        print(f"Created new configuration file at: {config_path}")
    return ConfigManager(str(config_path))


def run_setup(config_path: Path = None):
    """Interactive setup wizard for the relay settings."""
    config_path = config_path or default_config_path()
    config = _ensure_config(config_path)
    print(f"Editing config at: {config_path}")

    print("\n=== Print Relay Setup ===")
    print("Press Enter to keep the current value.\n")

    values = {}
    values['server.port'] = int(_prompt("HTTP port", config.get('server.port', 2020)))
    values['server.cors_origin'] = _prompt("Allowed CORS origin (* for any)",
                                           config.get('server.cors_origin', '*'))
    values['server.api_key'] = _prompt("Shared secret for x-api-key (blank disables)",
                                       config.get('server.api_key', ''), secret=True)
    values['printing.thermal_width'] = _prompt("Default HTML print width",
                                               config.get('printing.thermal_width', '80mm'))
    values['printing.sumatra_path'] = _prompt("SumatraPDF executable (Windows PDF printing)",
                                              config.get('printing.sumatra_path', 'SumatraPDF.exe'))
    values['logging.dir'] = _prompt("Log directory", config.get('logging.dir', 'logs'))

    print()
    config.update(values)
    print("✓ Configuration saved.")
    print(f"  Config file: {config_path}")
    print("\nRestart the relay to apply changes.\n")


def manage_config(args):
    """Show or update configuration settings"""
    config_path = Path(args.config) if args.config else default_config_path()
    config_manager = _ensure_config(config_path)

    if args.show:
        settings = ServerConfig.from_manager(config_manager)
        print("\n=== Current Configuration ===")
        print(f"Configuration file: {config_path}")
        print("\n[Server]")
        print(f"  Listen: {settings.host}:{settings.port}")
        print(f"  CORS origin: {settings.cors_origin}")
        print(f"  API key: {'*' * 10 if settings.api_key else 'Not set'}")
        print("\n[Printing]")
        print(f"  Driver: {settings.driver or 'auto'}")
        print(f"  Thermal width: {settings.thermal_width}")
        print(f"  SumatraPDF: {settings.sumatra_path}")
        print("\n[Logging]")
        print(f"  Level: {settings.log_level}")
        print(f"  Directory: {settings.log_dir}")
        return 0

    changes = {}
    shown = {}
    if args.port:
        changes['server.port'] = args.port
        shown['port'] = args.port
    if args.api_key is not None:
        changes['server.api_key'] = args.api_key
        shown['api_key'] = '***' if args.api_key else '(disabled)'
    if args.cors_origin:
        changes['server.cors_origin'] = args.cors_origin
        shown['cors_origin'] = args.cors_origin
    if args.thermal_width:
        changes['printing.thermal_width'] = args.thermal_width
        shown['thermal_width'] = args.thermal_width
    if args.log_dir:
        changes['logging.dir'] = args.log_dir
        shown['log_dir'] = args.log_dir

    if changes:
        config_manager.update(changes)
        print("\n✓ Configuration updated successfully!")
        for key, value in shown.items():
            print(f"  {key}: {value}")
    else:
        print("No configuration changes specified. Use --help to see available options.")
    return 0


def list_printers(args):
    """Print the printers the relay can see, one per line"""
    from anjungan_print_relay.printers.discovery import PrinterEnumerator

    settings = ServerConfig.load(args.config)
    enumerator = PrinterEnumerator(timeout=settings.query_timeout)
    try:
        printers = asyncio.run(enumerator.list_printers())
    except OSSubmissionFailure as e:
        print(f"Printer query failed: {e.message}", file=sys.stderr)
        return 1
    if not printers:
        print("No printers found.")
        return 0
    for printer in printers:
        papers = f"  ({', '.join(printer.paper_sizes)})" if printer.paper_sizes else ''
        print(f"{printer.display_name}{papers}")
    return 0


def start_server(args):
    """Start the print relay"""
    from anjungan_print_relay.main import run_server

    settings = ServerConfig.load(args.config)
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    print("Starting print relay...")
    run_server(settings)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='anjungan-print-relay',
        description='Kiosk print relay: RAW, label, PDF and HTML printing over HTTP',
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('setup', help='Interactive setup: port, API key, CORS, print defaults')

    config_parser = subparsers.add_parser('config', help='Manage configuration settings')
    config_parser.add_argument('--config', type=str, help='Config file to edit')
    config_parser.add_argument('--port', type=int, help='HTTP port (default 2020)')
    config_parser.add_argument('--api-key', type=str, help='Shared secret clients send as x-api-key ("" disables)')
    config_parser.add_argument('--cors-origin', type=str, help='Allowed CORS origin, * for any')
    config_parser.add_argument('--thermal-width', type=str, help='Default width for /print-html (e.g. 80mm)')
    config_parser.add_argument('--log-dir', type=str, help='Directory for rotated log files')
    config_parser.add_argument('--show', action='store_true', help='Show current configuration')

    start_parser = subparsers.add_parser('start', help='Start the print relay')
    start_parser.add_argument('--config', type=str, help='Config file to load')
    start_parser.add_argument('--host', type=str, help='Listen address')
    start_parser.add_argument('--port', type=int, help='Listen port')

    printers_parser = subparsers.add_parser('printers', help='List installed printers')
    printers_parser.add_argument('--config', type=str, help='Config file to load')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == 'setup':
        run_setup()
        return 0
    elif args.command == 'config':
        return manage_config(args)
    elif args.command == 'start':
        return start_server(args)
    elif args.command == 'printers':
        return list_printers(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
