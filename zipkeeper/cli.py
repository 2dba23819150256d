"""Command line entry point for zipkeeper."""

import argparse
import sys
from typing import List, Optional

from zipkeeper import __version__, configure_logging
from zipkeeper.backup.executor import run_backup


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='zipkeeper',
        description='Back up configured sources into a timestamped zip archive.'
    )
    parser.add_argument(
        'directory',
        nargs='?',
        help='Directory holding config.json; receives log.txt and backups/'
    )
    parser.add_argument(
        '--cron',
        metavar='EXPR',
        help='Stay in the foreground and run a backup on this crontab schedule (UTC)'
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run zipkeeper.

    Returns:
        0 on a clean run, 1 if errors were recorded
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.directory:
        parser.error('Not enough arguments. Usage: "backup <directory to store backups>"')

    if args.cron:
        from zipkeeper.scheduler import create_scheduler, start_scheduler

        try:
            scheduler = create_scheduler(args.directory, args.cron, args.debug)
        except ValueError as e:
            parser.error(f"Invalid cron expression '{args.cron}': {e}")

        try:
            configure_logging(args.directory, args.debug)
        except OSError as e:
            parser.exit(1, f"Unable to open log file: {e}\n")

        start_scheduler(scheduler)
        return 0

    errors = run_backup(args.directory, debug=args.debug)
    return 1 if errors.has_errors else 0


if __name__ == '__main__':
    sys.exit(main())
