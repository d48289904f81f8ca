#!/usr/bin/env python3
"""
set_tmt.py - Set explicit HCTM thresholds on an NVMe SSD

Writes user supplied TMT1/TMT2 values after checking them against the range
the controller reports (MNTMT..MXTMT). Values are given in Celsius unless
--kelvin is passed. A threshold that is not given keeps its current value.

Usage:
    sudo ./set_tmt.py --tmt1 60 --tmt2 65
    sudo ./set_tmt.py --device /dev/nvme1 --tmt1 333 --kelvin --save
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
    resolve_output_format, resolve_settings, setup_logging
)
from hctm.components.thermal_component import ThermalManagementComponent
from hctm.nvme_cli import NvmeCli
from hctm.thermal import celsius_to_kelvin


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Set NVMe HCTM thresholds TMT1/TMT2 to explicit values")
    add_common_arguments(parser)

    parser.add_argument("--tmt1", type=int, help="Light throttling threshold")
    parser.add_argument("--tmt2", type=int, help="Heavy throttling threshold")
    parser.add_argument("--kelvin", action="store_true", help="Thresholds are given in Kelvin instead of Celsius")
    parser.add_argument("--save", action="store_true", default=None,
                        help="Ask the controller to persist the values across power cycles")
    parser.add_argument("--dry-run", action="store_true", help="Validate the values without writing them")

    args = parser.parse_args(argv)
    if args.tmt1 is None and args.tmt2 is None:
        parser.error("at least one of --tmt1/--tmt2 is required")
    return args


def to_kelvin(value: Optional[int], kelvin: bool) -> Optional[int]:
    if value is None or kelvin:
        return value
    return celsius_to_kelvin(value)


def set_tmt(settings: Dict[str, Any], tmt1: Optional[int], tmt2: Optional[int], dry_run: bool,
            logger: logging.Logger, nvme: Optional[NvmeCli] = None) -> Dict[str, Any]:
    """
    Write explicit thresholds (Kelvin) to the device.

    Returns:
        Housekeeping results of the component
    """
    config = {
        'device': settings['device'],
        'nvme_bin': settings['nvme_bin'],
        'mode': 'custom',
        'tmt1': tmt1,
        'tmt2': tmt2,
        'save': settings.get('save', False),
        'dry_run': dry_run,
        'check_capabilities': True,
        'output_format': settings.get('output_format') or 'json',
        'report_dir': settings.get('report_dir'),
        'component_id': 'set-tmt'
    }

    component = ThermalManagementComponent(config, logger, nvme=nvme)
    component.discover()
    component.process()
    housekeep_results = component.housekeep()

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
        settings['output_format'] = resolve_output_format(settings, logger)

        set_tmt(
            settings,
            to_kelvin(args.tmt1, args.kelvin),
            to_kelvin(args.tmt2, args.kelvin),
            args.dry_run,
            logger
        )
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
