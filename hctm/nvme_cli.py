#!/usr/bin/env python3
"""
Thin wrapper around the nvme-cli binary.

All device access goes through subprocess calls to `nvme`. Output is taken
as JSON (nvme-cli 2.1 and newer) or parsed from the plain text format that
older releases print.
"""

import json
import logging
import re
import shutil
import subprocess
from typing import Any, Dict, List, Optional, Tuple, Literal

from .thermal import HCTM_FEATURE_ID, pack_tmt, unpack_tmt

OutputFormat = Literal["json", "normal"]

_VERSION_PATTERN = re.compile(r"version\s+v?(\d+)\.(\d+)")
# "get-feature:0x10 (Host Controlled Thermal Management), Current value:0x01670115"
_FEATURE_VALUE_PATTERN = re.compile(r"value\s*:\s*(0x[0-9a-fA-F]+|\d+)", re.IGNORECASE)
# "mntmt     : 273"
_ID_CTRL_LINE_PATTERN = re.compile(r"^\s*([A-Za-z0-9_]+)\s*:\s*(\S+)")


def _to_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Not an integer value: {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value).strip(), 0)


class NvmeCli:
    """
    Runs nvme-cli commands against a single controller.

    Args:
        device: Controller or namespace path, e.g. /dev/nvme0
        nvme_bin: Name or path of the nvme executable
        output_format: 'json' for nvme-cli >= 2.1, 'normal' for text parsing
        logger: Optional logger instance
    """

    def __init__(self, device: str, nvme_bin: str = "nvme", output_format: OutputFormat = "json",
                 logger: Optional[logging.Logger] = None):
        self.device = device
        self.nvme_bin = nvme_bin
        self.output_format = output_format
        self.logger = logger or logging.getLogger(__name__)

    def is_available(self) -> bool:
        return shutil.which(self.nvme_bin) is not None

    def _run(self, args: List[str]) -> str:
        command = [self.nvme_bin, *args]
        self.logger.debug(f"Executing: {' '.join(command)}")
        try:
            result = subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise RuntimeError(
                f"'{self.nvme_bin}' not found; install nvme-cli to continue"
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or '').strip()
            raise RuntimeError(
                f"Command failed ({exc.returncode}): {' '.join(command)}: {stderr}"
            ) from exc
        return result.stdout

    def get_version(self) -> Optional[Tuple[int, int]]:
        """
        Return the nvme-cli (major, minor) version, or None if it cannot be determined.
        """
        try:
            output = self._run(["--version"])
        except RuntimeError as e:
            self.logger.debug(f"Could not query nvme-cli version: {e}")
            return None

        match = _VERSION_PATTERN.search(output)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    def supports_json(self) -> bool:
        """
        Check that nvme-cli is new enough (2.1+) for JSON output.

        An undeterminable version is assumed to be sufficient.
        """
        version = self.get_version()
        if version is None:
            self.logger.warning("Could not determine nvme-cli version. Assuming it is sufficient.")
            return True
        major, minor = version
        return major > 2 or (major == 2 and minor > 0)

    def id_ctrl(self) -> Dict[str, Any]:
        """
        Read the Identify Controller data structure.

        Returns:
            Mapping of field name to value; contains 'hctma', 'mntmt' and
            'mxtmt' when the controller reports them
        """
        if self.output_format == "json":
            output = self._run(["id-ctrl", self.device, "-o", "json"])
            try:
                data = json.loads(output)
            except json.JSONDecodeError as e:
                raise RuntimeError(f"Failed to parse id-ctrl JSON output from {self.device}: {e}") from e
            return data

        fields: Dict[str, int] = {}
        for line in self._run(["id-ctrl", self.device]).splitlines():
            match = _ID_CTRL_LINE_PATTERN.match(line)
            if not match:
                continue
            try:
                fields[match.group(1).lower()] = int(match.group(2), 0)
            except ValueError:
                # Strings such as sn/mn/fr
                continue
        return fields

    def get_feature(self, feature_id: int, sel: int) -> int:
        """
        Read dword 0 of a feature.

        Args:
            feature_id: Feature identifier
            sel: Select field (0 current, 1 default, 2 saved)

        Returns:
            The feature value
        """
        args = ["get-feature", self.device, "-f", f"{feature_id:#x}", "-s", str(sel)]

        if self.output_format == "json":
            output = self._run(args + ["-o", "json"])
            try:
                return _to_int(json.loads(output)["dw0"])
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise RuntimeError(
                    f"Failed to parse get-feature {feature_id:#x} output from {self.device}: {output.strip()!r}"
                ) from e

        output = self._run(args)
        matches = _FEATURE_VALUE_PATTERN.findall(output)
        if not matches:
            raise RuntimeError(
                f"Failed to parse get-feature {feature_id:#x} output from {self.device}: {output.strip()!r}"
            )
        return int(matches[-1], 0)

    def set_feature(self, feature_id: int, value: int, save: bool = False) -> None:
        args = ["set-feature", self.device, "-f", f"{feature_id:#x}", "-v", str(value)]
        if save:
            args.append("--save")
        self._run(args)

    def get_tmt(self, sel: int) -> Tuple[int, int]:
        """Read (TMT1, TMT2) in Kelvin for the given select value."""
        return unpack_tmt(self.get_feature(HCTM_FEATURE_ID, sel))

    def set_tmt(self, tmt1: int, tmt2: int, save: bool = False) -> int:
        """
        Write TMT1/TMT2 in Kelvin.

        Returns:
            The packed feature value that was written
        """
        value = pack_tmt(tmt1, tmt2)
        self.set_feature(HCTM_FEATURE_ID, value, save=save)
        return value
