#!/usr/bin/env python3
"""
restore_default_tmt.py - Restore the factory HCTM thresholds of an NVMe SSD

Reads the default TMT1/TMT2 values (Get Features select 1), writes them back
as the current values and verifies the result. Works with nvme-cli 1.1 and
newer by parsing the plain text output; no Identify Controller data is needed.

Usage:
    sudo ./restore_default_tmt.py --save
    sudo ./restore_default_tmt.py --device /dev/nvme1 --save
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


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Restore the NVMe HCTM thresholds (TMT1/TMT2) to their factory defaults"
    )
    add_common_arguments(parser)

    parser.add_argument("--save", action="store_true", default=None,
                        help="Make the change persistent across reboots")
    parser.add_argument("--output-format", choices=["normal", "json"],
                        help="nvme-cli output format to parse (default: normal)")
    parser.add_argument("--dry-run", action="store_true", help="Show the default values without writing them")

    return parser.parse_args(argv)


def restore_defaults(settings: Dict[str, Any], dry_run: bool, logger: logging.Logger,
                     nvme: Optional[NvmeCli] = None) -> Dict[str, Any]:
    """
    Write the factory default thresholds back to the device.

    Returns:
        Housekeeping results of the component
    """
    config = {
        'device': settings['device'],
        'nvme_bin': settings['nvme_bin'],
        'mode': 'restore',
        'save': settings.get('save', False),
        'dry_run': dry_run,
        'check_capabilities': False,
        'output_format': settings.get('output_format') or 'normal',
        'report_dir': settings.get('report_dir'),
        'component_id': 'restore-default-tmt'
    }

    logger.info(f"--- Restoring Default Thermal Management for: {config['device']} ---")

    component = ThermalManagementComponent(config, logger, nvme=nvme)

    logger.info("Reading factory default TMT values...")
    component.discover()

    logger.info("Applying factory default values...")
    component.process()

    logger.info("Verifying the change...")
    housekeep_results = component.housekeep()

    if housekeep_results.get('changes_verified'):
        logger.info("[SUCCESS] The values were restored to defaults successfully.")
    elif not housekeep_results.get('dry_run'):
        logger.warning("[WARNING] Verification failed. The current values do not match the factory defaults.")

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
        if args.output_format:
            settings['output_format'] = args.output_format
        check_root()
        check_tools(settings['nvme_bin'])

        restore_defaults(settings, args.dry_run, logger)
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
