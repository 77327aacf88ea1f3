#!/usr/bin/env python3
"""
geo-blackhole - country-based BGP blackholing for gobgpd

Usage examples:
geo-blackhole --config /etc/geo-blackhole/config.json run
geo-blackhole plan
geo-blackhole build > blocked.txt
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from geo_blackhole import __version__
from geo_blackhole.pipeline.workflow import BlackholeWorkflow
from geo_blackhole.reconcile.engine import prefix_sort_key
from geo_blackhole.utils.config import ConfigManager
from geo_blackhole.utils.error_handling import (
    ConfigurationError,
    ErrorFormatter,
    handle_errors,
    print_error,
    print_success,
    print_warning,
)
from geo_blackhole.utils.exit_codes import BlackholeExitCodes, get_exit_code_description
from geo_blackhole.utils.logging import setup_logging


def signal_handler(signum, frame):
    """Exit on SIGTERM so open resources unwind normally"""
    sys.exit(int(BlackholeExitCodes.SIGTERM_TERMINATION))


def setup_app_logging(config, verbose: bool = False, quiet: bool = False):
    """Configure logging for the application"""
    if quiet:
        level = 'WARNING'
    elif verbose:
        level = 'DEBUG'
    else:
        level = None  # configured level

    setup_logging(config.logging if config else None, level=level)


def load_config(args):
    """Load and validate configuration, raising ConfigurationError on problems"""
    manager = ConfigManager(Path(args.config) if args.config else None)
    issues = manager.validate_config()
    if issues:
        raise ConfigurationError(
            f"Invalid configuration: {'; '.join(issues)}",
            guidance="Run 'geo-blackhole check-config' for details",
        )
    return manager.get_config()


def _print_report(result):
    report = result.report
    print(report.to_summary())
    if report.dry_run:
        for prefix in sorted(report.plan.to_withdraw, key=prefix_sort_key):
            print(f"  - withdraw {prefix}")
        for prefix in sorted(report.plan.to_announce, key=prefix_sort_key):
            print(f"  + announce {prefix}")


@handle_errors('geo-blackhole.run')
def cmd_run(args):
    """Reconcile the gobgpd route table with the desired block set"""
    config = load_config(args)
    workflow = BlackholeWorkflow(config)
    result = workflow.run(dry_run=args.dry_run)

    _print_report(result)
    statistics = result.statistics
    if statistics.skipped_prefixes or statistics.rejected_allow_entries:
        print_warning(f"Skipped {statistics.skipped_prefixes} malformed prefixes and "
                      f"{statistics.rejected_allow_entries} invalid allow-list entries")

    if not result.success:
        print_error(f"{len(result.report.failures)} operations failed",
                    "Re-run later; each run converges from scratch")
        return int(BlackholeExitCodes.PARTIAL_FAILURE)

    print_success("Dry run complete" if args.dry_run else "Route table reconciled")
    return int(BlackholeExitCodes.SUCCESS)


@handle_errors('geo-blackhole.plan')
def cmd_plan(args):
    """Show the reconciliation plan without submitting it"""
    args.dry_run = True
    return cmd_run.__wrapped__(args)


@handle_errors('geo-blackhole.build')
def cmd_build(args):
    """Print the desired block prefix list"""
    config = load_config(args)
    workflow = BlackholeWorkflow(config)
    for prefix in workflow.build_desired():
        print(prefix)
    return int(BlackholeExitCodes.SUCCESS)


@handle_errors('geo-blackhole.check-config')
def cmd_check_config(args):
    """Print the effective configuration and any problems with it"""
    manager = ConfigManager(Path(args.config) if args.config else None)
    manager.print_config()

    issues = manager.validate_config()
    if issues:
        for issue in issues:
            print_error(issue)
        return int(BlackholeExitCodes.CONFIG_ERROR)

    print_success("Configuration is valid")
    return int(BlackholeExitCodes.SUCCESS)


def create_parser():
    """Create and configure argument parser"""
    parser = argparse.ArgumentParser(
        prog='geo-blackhole',
        description='Blackhole the IPv4 space of selected countries through gobgpd',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument('--version', action='version', version=f'geo-blackhole {__version__}')
    parser.add_argument('-c', '--config', help='Configuration file (JSON or YAML)')

    verbose_group = parser.add_mutually_exclusive_group()
    verbose_group.add_argument('-v', '--verbose', action='store_true',
                               help='Enable verbose logging')
    verbose_group.add_argument('-q', '--quiet', action='store_true',
                               help='Quiet mode (warnings only)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Reconcile announced prefixes with the desired set')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Compute and print the plan without submitting it')

    subparsers.add_parser('plan', help='Print the withdraw/announce plan (same as run --dry-run)')
    subparsers.add_parser('build', help='Print the desired block prefix list')
    subparsers.add_parser('check-config', help='Show effective configuration and validate it')

    return parser


def main(argv=None):
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return int(BlackholeExitCodes.INVALID_USAGE)

    # Logging is configured before the config file is read so load errors are visible
    setup_app_logging(None, args.verbose, args.quiet)
    try:
        config = ConfigManager(Path(args.config) if args.config else None).get_config()
        setup_app_logging(config, args.verbose, args.quiet)
    except ConfigurationError as e:
        print(ErrorFormatter.format_error(e))
        return int(e.exit_code)

    signal.signal(signal.SIGTERM, signal_handler)

    command_functions = {
        'run': cmd_run,
        'plan': cmd_plan,
        'build': cmd_build,
        'check-config': cmd_check_config,
    }

    exit_code = command_functions[args.command](args)
    logging.getLogger('geo-blackhole.main').debug(
        f"Exit {exit_code}: {get_exit_code_description(BlackholeExitCodes(exit_code))}"
    )
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
