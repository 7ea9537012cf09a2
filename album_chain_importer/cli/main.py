"""
Command line entry point for the album chain importer.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from album_chain_importer.exceptions import ConfigurationError
from album_chain_importer.orchestrator import ImportOrchestrator
from album_chain_importer.utils.security import validate_config_path

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Import photo albums into a capacity-limited destination service'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    import_parser = subparsers.add_parser('import', help='Import (or resume) a job')
    import_parser.add_argument('--job-id', required=True, help='Job identifier; re-use it to resume')
    import_parser.add_argument('--manifest', required=True, type=Path,
                               help='JSON or YAML file listing albums and items')

    status_parser = subparsers.add_parser('status', help='Show chain state for a job')
    status_parser.add_argument('--job-id', required=True)

    clear_parser = subparsers.add_parser('clear', help='Delete all stored state for a job')
    clear_parser.add_argument('--job-id', required=True)
    clear_parser.add_argument('--yes', action='store_true', help='Do not ask for confirmation')

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config_path = validate_config_path(args.config)
        orchestrator = ImportOrchestrator(str(config_path))
    except (ValueError, ConfigurationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.command == 'import':
        try:
            report = orchestrator.run_import(args.job_id, args.manifest)
        except ConfigurationError as e:
            logger.error(str(e))
            return 2
        print(
            f"Job {args.job_id}: {report.items_succeeded} items imported, "
            f"{report.items_failed} failed, {report.items_skipped} skipped; "
            f"{report.albums_failed} album failures"
        )
        return 1 if report.has_failures or report.cancelled else 0

    if args.command == 'status':
        print(json.dumps(orchestrator.job_status(args.job_id), indent=2))
        return 0

    if args.command == 'clear':
        if not args.yes:
            answer = input(f"Delete all stored state for job {args.job_id}? [y/N] ")
            if answer.strip().lower() not in ('y', 'yes'):
                print("Aborted")
                return 1
        orchestrator.clear_job(args.job_id)
        return 0

    return 2


if __name__ == '__main__':
    sys.exit(main())
