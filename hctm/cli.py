#!/usr/bin/env python3
"""
Shared helpers for the command line scripts in scripts/.
"""

import argparse
import logging
import os
import shutil
from typing import Any, Dict

from .config import DEFAULT_DEVICE, load_settings
from .nvme_cli import NvmeCli


class PrerequisiteError(RuntimeError):
    """Raised when the host is not set up to run the scripts."""


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Set up logging configuration with proper formatting.

    Args:
        verbose: Whether to use DEBUG level logging

    Returns:
        Configured logger instance
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )
    return logging.getLogger("hctm")


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the options every script accepts."""
    parser.add_argument(
        "--device", "-d",
        help=f"NVMe device, e.g. /dev/nvme1 (default: {DEFAULT_DEVICE})"
    )
    parser.add_argument("--config", help="YAML config file with device/nvme_bin/save/report_dir settings")
    parser.add_argument("--env-file", help="Load HCTM_* environment variables from this .env file")
    parser.add_argument("--report-dir", help="Write a JSON report of the run into this directory")
    parser.add_argument("--nvme-bin", help="Path to the nvme executable (default: nvme)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")


def resolve_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Merge defaults, environment, config file and command line flags.

    Command line flags win when they were given.
    """
    settings = load_settings(config_file=args.config, env_file=args.env_file)
    for key in ('device', 'report_dir', 'nvme_bin', 'save', 'change_both'):
        value = getattr(args, key, None)
        if value is not None:
            settings[key] = value
    return settings


def resolve_output_format(settings: Dict[str, Any], logger: logging.Logger) -> str:
    """
    Pick the nvme-cli output format: the configured one, otherwise JSON when
    the installed nvme-cli supports it and plain text when it does not.
    """
    if settings.get('output_format'):
        return settings['output_format']
    nvme = NvmeCli(settings['device'], nvme_bin=settings['nvme_bin'], logger=logger)
    output_format = 'json' if nvme.supports_json() else 'normal'
    logger.debug(f"Using nvme-cli output format '{output_format}'")
    return output_format


def check_root() -> None:
    """Abort unless running with root privileges."""
    if os.geteuid() != 0:
        raise PrerequisiteError("Please run this script as root or with sudo.")


def check_tools(nvme_bin: str = "nvme") -> None:
    """Abort unless nvme-cli can be found."""
    if shutil.which(nvme_bin) is None:
        raise PrerequisiteError(f"'{nvme_bin}' (nvme-cli) is not installed. Please install it to continue.")
