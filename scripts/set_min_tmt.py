#!/usr/bin/env python3
"""
set_min_tmt.py - Throttle an NVMe SSD by lowering its HCTM thresholds

This script uses the ThermalManagementComponent to:

1. Check that Host Controlled Thermal Management (HCTM) is supported
2. Read the drive's minimum/maximum settable thresholds (MNTMT/MXTMT)
3. Read the default and current TMT1/TMT2 values
4. Set TMT1 to MNTMT and, with --change-both true, TMT2 to MNTMT + 2K
5. Verify that the new settings have been applied

Requires nvme-cli 2.1 or newer (JSON output) and root privileges.

WARNING: on many drives HCTM settings survive power cycles. The drive stays
throttled until restore_default_tmt.py is run.
"""

import os
import sys
import logging
import argparse
from typing import Any, Dict, List, Optional

# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from hctm.cli import (
    PrerequisiteError, add_common_arguments, check_root, check_tools,
    resolve_settings, setup_logging
)
from hctm.components.thermal_component import ThermalManagementComponent
from hctm.nvme_cli import NvmeCli
from hctm.thermal import format_temperature, parse_bool

MIN_NVME_CLI_VERSION = (2, 1)


def bool_argument(value: str) -> bool:
    """argparse type for true/false values in any letter case."""
    try:
        return parse_bool(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Set the NVMe HCTM threshold TMT1 (and optionally TMT2) to the drive's minimum"
    )
    add_common_arguments(parser)

    parser.add_argument(
        "--change-both", "-change-both",
        dest="change_both",
        type=bool_argument,
        metavar="{true,false}",
        help="'true' changes TMT1 and TMT2, 'false' only TMT1 (default: false)"
    )
    parser.add_argument("--save", action="store_true", default=None,
                        help="Ask the controller to persist the values across power cycles")
    parser.add_argument("--dry-run", action="store_true", help="Compute the new values without writing them")

    return parser.parse_args(argv)


def check_nvme_cli_version(nvme: NvmeCli, logger: logging.Logger) -> bool:
    """
    Make sure nvme-cli is new enough for JSON output.

    Returns:
        False if the installed version is too old
    """
    version = nvme.get_version()
    if version is None:
        logger.warning("Could not determine nvme-cli version. Assuming it is sufficient.")
        return True

    if version < MIN_NVME_CLI_VERSION:
        logger.error("nvme-cli version must be 2.1 or newer for this script.")
        logger.error(f"Your version is: {version[0]}.{version[1]}")
        return False

    logger.debug(f"nvme-cli version {version[0]}.{version[1]}")
    return True


def set_min_tmt(settings: Dict[str, Any], dry_run: bool, logger: logging.Logger,
                nvme: Optional[NvmeCli] = None) -> Dict[str, Any]:
    """
    Run the throttling procedure on one device.

    Args:
        settings: Effective settings (device, nvme_bin, change_both, save, report_dir)
        dry_run: Skip the write
        logger: Logger instance
        nvme: Optional nvme-cli wrapper

    Returns:
        Housekeeping results of the component
    """
    config = {
        'device': settings['device'],
        'nvme_bin': settings['nvme_bin'],
        'mode': 'minimum',
        'change_both': settings.get('change_both', False),
        'save': settings.get('save', False),
        'dry_run': dry_run,
        'check_capabilities': True,
        'output_format': 'json',
        'report_dir': settings.get('report_dir'),
        'component_id': 'set-min-tmt'
    }

    logger.info(f"--- Starting Advanced Thermal Management for: {config['device']} ---")
    logger.info(f"--- Mode: Change Both TMT1 & TMT2 = {str(config['change_both']).lower()}")

    component = ThermalManagementComponent(config, logger, nvme=nvme)

    logger.info("Running discovery phase...")
    component.discover()

    logger.info("Running processing phase...")
    process_results = component.process()

    logger.info("Running housekeeping phase to verify the change...")
    housekeep_results = component.housekeep()

    if housekeep_results.get('changes_verified'):
        final = housekeep_results['final']
        logger.info(f"TMT1 is now {format_temperature(final['tmt1'])}, TMT2 is now {format_temperature(final['tmt2'])}")
    elif not process_results.get('dry_run'):
        for warning in housekeep_results.get('warnings', []):
            logger.warning(f"Warning: {warning}")

    return housekeep_results


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = parse_arguments(argv)
    logger = setup_logging(args.verbose)

    try:
        settings = resolve_settings(args)
        check_root()
        check_tools(settings['nvme_bin'])

        nvme = NvmeCli(settings['device'], nvme_bin=settings['nvme_bin'], output_format='json', logger=logger)
        if not check_nvme_cli_version(nvme, logger):
            return 1

        set_min_tmt(settings, args.dry_run, logger, nvme=nvme)
        logger.info("--- Script Finished ---")
        return 0

    except PrerequisiteError as e:
        logger.error(f"ERROR: {e}")
        return 1
    except (RuntimeError, ValueError, OSError) as e:
        logger.error(f"[FAIL] {e}. Aborting.")
        if args.verbose:
            import traceback
            logger.debug(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
