#!/usr/bin/env python3
"""
show_tmt.py - Show the HCTM capability and thresholds of an NVMe SSD

Read-only: runs the discovery phase of the ThermalManagementComponent and
prints HCTMA, MNTMT/MXTMT and the default and current TMT1/TMT2 values.
"""

import os
import sys
import json
import argparse
from typing import List, Optional

# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from hctm.cli import (
    PrerequisiteError, add_common_arguments, check_root, check_tools,
    resolve_output_format, resolve_settings, setup_logging
)
from hctm.components.thermal_component import ThermalManagementComponent
from hctm.thermal import format_temperature


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Show NVMe HCTM capability and TMT1/TMT2 thresholds")
    add_common_arguments(parser)
    parser.add_argument("--json", action="store_true", help="Print the discovery results as JSON")
    parser.add_argument("--skip-id-ctrl", action="store_true",
                        help="Do not query Identify Controller (for drives or nvme-cli builds without HCTM fields)")
    return parser.parse_args(argv)


def render(discovery: dict) -> str:
    """Human readable summary of discovery results."""
    lines = [f"Device: {discovery['device']}"]

    capabilities = discovery.get('capabilities')
    if capabilities:
        lines.append(f"  HCTM supported: {'yes' if discovery.get('hctm_supported') else 'no'}")
        lines.append(f"  MNTMT: {format_temperature(capabilities['mntmt'])}")
        lines.append(f"  MXTMT: {format_temperature(capabilities['mxtmt'])}")

    for label in ('default', 'current'):
        values = discovery.get(label)
        if values:
            lines.append(f"  {label.capitalize()} TMT1: {format_temperature(values['tmt1'])}")
            lines.append(f"  {label.capitalize()} TMT2: {format_temperature(values['tmt2'])}")

    return "\n".join(lines)


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

        config = {
            'device': settings['device'],
            'nvme_bin': settings['nvme_bin'],
            'check_capabilities': not args.skip_id_ctrl,
            'output_format': resolve_output_format(settings, logger),
            'component_id': 'show-tmt'
        }
        component = ThermalManagementComponent(config, logger)
        results = component.execute(phases=["discover"])

    except PrerequisiteError as e:
        logger.error(f"ERROR: {e}")
        return 1
    except (RuntimeError, ValueError, OSError) as e:
        logger.error(f"[FAIL] {e}")
        return 1

    if 'error' in results:
        logger.error(f"[FAIL] {results['error']}")
        return 1

    if args.json:
        print(json.dumps(results['discovery'], indent=2))
    else:
        print(render(results['discovery']))
    return 0


if __name__ == "__main__":
    sys.exit(main())
