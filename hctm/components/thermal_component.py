#!/usr/bin/env python3
"""
Thermal Management Component for Discovery-Processing-Housekeeping Pattern

This component reads and changes the Host Controlled Thermal Management
thresholds (TMT1/TMT2) of an NVMe controller through nvme-cli. Lowering the
thresholds makes the drive throttle early, which keeps its power draw inside
the budget of a USB enclosure.

Modes:
- minimum: TMT1 = MNTMT, optionally TMT2 = MNTMT + 2
- restore: TMT1/TMT2 = factory defaults
- custom: caller supplied TMT1/TMT2
"""

import logging
import datetime
from typing import Dict, Any, Optional, TypedDict, Literal, NotRequired

from hctm.base_component import BaseComponent, ComponentConfig
from hctm.nvme_cli import NvmeCli, OutputFormat
from hctm.thermal import (
    HCTM_FEATURE_ID, SEL_CURRENT, SEL_DEFAULT, CHANGE_BOTH_TMT2_MARGIN,
    format_temperature, pack_tmt, validate_thresholds
)

Mode = Literal["minimum", "restore", "custom"]


class ThermalConfig(ComponentConfig, total=False):
    """TypedDict for thermal component configuration."""
    device: str
    nvme_bin: str
    mode: Mode
    change_both: bool
    tmt1: Optional[int]
    tmt2: Optional[int]
    save: bool
    check_capabilities: bool
    output_format: OutputFormat


class TmtValues(TypedDict):
    """TMT1/TMT2 pair in Kelvin."""
    tmt1: int
    tmt2: int


class Capabilities(TypedDict):
    """HCTM related Identify Controller fields."""
    hctma: int
    mntmt: int
    mxtmt: int


class DiscoveryResults(TypedDict, total=False):
    """TypedDict for thermal discovery results."""
    device: str
    hctm_supported: Optional[bool]
    capabilities: Capabilities
    default: TmtValues
    current: TmtValues
    warnings: list[str]


class ProcessingResults(TypedDict, total=False):
    """TypedDict for thermal processing results."""
    mode: Mode
    target: TmtValues
    value: int
    value_hex: str
    command: str
    saved: bool
    written: bool
    dry_run: NotRequired[bool]


class HousekeepingResults(TypedDict, total=False):
    """TypedDict for thermal housekeeping results."""
    final: TmtValues
    changes_verified: bool
    warnings: list[str]
    report_stored: bool
    dry_run: NotRequired[bool]


class ThermalManagementComponent(BaseComponent):
    """
    Component for managing the HCTM thresholds of one NVMe controller.
    """

    DEFAULT_CONFIG: ThermalConfig = {
        'device': '/dev/nvme0',
        'nvme_bin': 'nvme',
        'mode': 'minimum',
        'change_both': False,
        'tmt1': None,
        'tmt2': None,
        'save': False,
        'dry_run': False,
        'check_capabilities': True,
        'output_format': 'json',
        'report_dir': None
    }

    def __init__(self, config: ThermalConfig, logger: Optional[logging.Logger] = None,
                 nvme: Optional[NvmeCli] = None):
        """
        Initialize the thermal management component.

        Args:
            config: Configuration dictionary for the component
            logger: Optional logger instance
            nvme: Optional pre-built nvme-cli wrapper
        """
        merged_config = self.DEFAULT_CONFIG | {k: v for k, v in config.items() if v is not None}

        if merged_config['mode'] not in ('minimum', 'restore', 'custom'):
            raise ValueError(f"Unknown mode: {merged_config['mode']}")

        super().__init__(merged_config, logger)

        self.nvme: NvmeCli = nvme or NvmeCli(
            self.config['device'],
            nvme_bin=self.config['nvme_bin'],
            output_format=self.config['output_format'],
            logger=self.logger
        )

        self.discovery_results: DiscoveryResults = {}
        self.processing_results: ProcessingResults = {}
        self.housekeeping_results: HousekeepingResults = {}

        self.logger.debug(f"ThermalManagementComponent initialized for {self.config['device']} (mode: {self.config['mode']})")

    @property
    def device(self) -> str:
        return self.config['device']

    def discover(self) -> Dict[str, Any]:
        """
        Discovery phase: Read capabilities and the default/current thresholds.

        Returns:
            Dictionary of discovery results
        """
        self.timestamps['discover_start'] = datetime.datetime.now().isoformat()
        self.logger.info(f"Starting discovery phase for {self.device}")

        try:
            self.discovery_results = {
                'device': self.device,
                'hctm_supported': None,
                'warnings': []
            }

            # 1. Controller capabilities
            if self.config.get('check_capabilities', True):
                self._check_capabilities()

            # 2. Factory defaults
            self.discovery_results['default'] = self._read_tmt(SEL_DEFAULT, "Default")

            # 3. Current values
            self.discovery_results['current'] = self._read_tmt(SEL_CURRENT, "Current")

            self.phases_executed['discover'] = True
            self.timestamps['discover_end'] = datetime.datetime.now().isoformat()
            self.logger.info(f"Discovery phase completed for {self.device}")

            return self.discovery_results

        except Exception as e:
            self._phase_failed('discovery', e)
            self.timestamps['discover_end'] = datetime.datetime.now().isoformat()
            raise

    def process(self) -> Dict[str, Any]:
        """
        Processing phase: Compute the new thresholds and write them.

        Returns:
            Dictionary of processing results
        """
        if not self.phases_executed['discover']:
            self.logger.warning("Processing without prior discovery, running discovery first")
            self.discover()

        self.timestamps['process_start'] = datetime.datetime.now().isoformat()
        self.logger.info(f"Starting processing phase for {self.device}")

        try:
            self.processing_results = {
                'mode': self.config['mode'],
                'saved': bool(self.config.get('save')),
                'written': False
            }

            # 1. Compute
            target = self._calculate_target()
            self.processing_results['target'] = target

            self.logger.info(f"New target TMT1: {format_temperature(target['tmt1'])}")
            self.logger.info(f"New target TMT2: {format_temperature(target['tmt2'])}")

            # 2. Validate; factory defaults are written back as read
            capabilities = self.discovery_results.get('capabilities')
            if self.config['mode'] == 'restore':
                self.logger.debug("Skipping threshold validation for factory defaults")
            elif capabilities:
                validate_thresholds(target['tmt1'], target['tmt2'], capabilities['mntmt'], capabilities['mxtmt'])
                self.logger.info("New values are within the drive's supported range")
            else:
                validate_thresholds(target['tmt1'], target['tmt2'])

            value = pack_tmt(target['tmt1'], target['tmt2'])
            save_opt = " --save" if self.config.get('save') else ""
            command = f"{self.nvme.nvme_bin} set-feature {self.device} -f {HCTM_FEATURE_ID:#x} -v {value:#x}{save_opt}"
            self.processing_results['value'] = value
            self.processing_results['value_hex'] = f"{value:#x}"
            self.processing_results['command'] = command

            if self.config.get('save'):
                self.logger.info("Persistence: the values will be SAVED and persist after a reboot")
            else:
                self.logger.info("Persistence: the values are not saved and may reset on reboot")

            # 3. Write
            if self.config.get('dry_run', False):
                self.logger.info(f"DRY RUN: Would execute: {command}")
                self.processing_results['dry_run'] = True
            else:
                self.logger.info(f"Executing: {command}")
                self.nvme.set_tmt(target['tmt1'], target['tmt2'], save=bool(self.config.get('save')))
                self.processing_results['written'] = True
                self.logger.info("New values have been set")

            self.phases_executed['process'] = True
            self.timestamps['process_end'] = datetime.datetime.now().isoformat()
            self.logger.info(f"Processing phase completed for {self.device}")

            return self.processing_results

        except Exception as e:
            self._phase_failed('processing', e)
            self.timestamps['process_end'] = datetime.datetime.now().isoformat()
            raise

    def housekeep(self) -> Dict[str, Any]:
        """
        Housekeeping phase: Read back the thresholds and record a report.

        A readback that does not match the target is reported as a warning,
        the run itself is not failed.

        Returns:
            Dictionary of housekeeping results
        """
        self.timestamps['housekeep_start'] = datetime.datetime.now().isoformat()
        self.logger.info(f"Starting housekeeping phase for {self.device}")

        if not self.phases_executed['process']:
            self.logger.warning("Housekeeping without prior processing may lead to unexpected results")

        try:
            self.housekeeping_results = {
                'changes_verified': False,
                'warnings': [],
                'report_stored': False
            }

            if self.config.get('dry_run', False) or self.processing_results.get('dry_run', False):
                self.logger.info("DRY RUN: Would verify the new thresholds")
                self.housekeeping_results['dry_run'] = True
            else:
                self._verify_change()

            self._store_report()

            self.phases_executed['housekeep'] = True
            self.timestamps['housekeep_end'] = datetime.datetime.now().isoformat()
            self.logger.info(f"Housekeeping phase completed for {self.device}")

            return self.housekeeping_results

        except Exception as e:
            self._phase_failed('housekeeping', e)
            self.timestamps['housekeep_end'] = datetime.datetime.now().isoformat()
            raise

    # Helper methods for discovery phase
    def _check_capabilities(self) -> None:
        """Read HCTMA, MNTMT and MXTMT from Identify Controller."""
        self.logger.info("Checking controller capabilities")

        id_ctrl = self.nvme.id_ctrl()
        try:
            capabilities: Capabilities = {
                'hctma': int(id_ctrl.get('hctma', 0)),
                'mntmt': int(id_ctrl.get('mntmt', 0)),
                'mxtmt': int(id_ctrl.get('mxtmt', 0))
            }
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Unexpected id-ctrl values from {self.device}: {e}") from e

        self.discovery_results['capabilities'] = capabilities
        supported = bool(capabilities['hctma'] & 0x1)
        self.discovery_results['hctm_supported'] = supported

        if not supported:
            raise RuntimeError("Host Controlled Thermal Management (HCTMA) is NOT supported")
        self.logger.info("Host Controlled Thermal Management (HCTMA) is supported")

        self.logger.info(f"Minimum settable threshold (MNTMT): {format_temperature(capabilities['mntmt'])}")
        self.logger.info(f"Maximum settable threshold (MXTMT): {format_temperature(capabilities['mxtmt'])}")

        if capabilities['mntmt'] == 0 or capabilities['mxtmt'] == 0:
            message = ("Drive reports a min or max threshold of 0K; the feature may not be "
                       "fully supported despite the HCTMA flag")
            self.logger.warning(message)
            self.discovery_results['warnings'].append(message)

    def _read_tmt(self, sel: int, label: str) -> TmtValues:
        tmt1, tmt2 = self.nvme.get_tmt(sel)
        self.logger.info(f"{label} TMT1: {format_temperature(tmt1)}")
        self.logger.info(f"{label} TMT2: {format_temperature(tmt2)}")
        return {'tmt1': tmt1, 'tmt2': tmt2}

    # Helper methods for processing phase
    def _calculate_target(self) -> TmtValues:
        """Work out the thresholds to write for the configured mode."""
        mode = self.config['mode']
        current = self.discovery_results['current']

        if mode == 'restore':
            self.logger.info("Applying factory default values")
            return dict(self.discovery_results['default'])

        if mode == 'custom':
            tmt1 = self.config.get('tmt1')
            tmt2 = self.config.get('tmt2')
            if tmt1 is None and tmt2 is None:
                raise ValueError("Custom mode needs at least one of tmt1/tmt2")
            return {
                'tmt1': current['tmt1'] if tmt1 is None else tmt1,
                'tmt2': current['tmt2'] if tmt2 is None else tmt2
            }

        capabilities = self.discovery_results.get('capabilities')
        if not capabilities:
            raise RuntimeError("Minimum mode needs the controller capabilities (MNTMT)")

        # TMT1 always goes to the minimum
        tmt1 = capabilities['mntmt']
        if self.config.get('change_both'):
            self.logger.info("Both TMT1 and TMT2 will be changed")
            tmt2 = capabilities['mntmt'] + CHANGE_BOTH_TMT2_MARGIN
        else:
            self.logger.info("Only TMT1 will be changed, TMT2 is kept at its current value")
            tmt2 = current['tmt2']
        return {'tmt1': tmt1, 'tmt2': tmt2}

    # Helper methods for housekeeping phase
    def _verify_change(self) -> None:
        """Compare the current thresholds with the target."""
        self.logger.info("Verifying the change")

        final = self._read_tmt(SEL_CURRENT, "Final readout")
        self.housekeeping_results['final'] = final

        target = self.processing_results.get('target')
        if target and final['tmt1'] == target['tmt1'] and final['tmt2'] == target['tmt2']:
            self.housekeeping_results['changes_verified'] = True
            self.logger.info("The values were updated successfully")
        else:
            message = "Verification failed. The final values do not match the target values"
            self.logger.warning(message)
            self.housekeeping_results['warnings'].append(message)

    def _store_report(self) -> None:
        """Register the run summary as an artifact and write it out."""
        report = {
            'device': self.device,
            'mode': self.config['mode'],
            'saved': bool(self.config.get('save')),
            'dry_run': bool(self.config.get('dry_run')),
            'capabilities': self.discovery_results.get('capabilities'),
            'default': self.discovery_results.get('default'),
            'previous': self.discovery_results.get('current'),
            'target': self.processing_results.get('target'),
            'final': self.housekeeping_results.get('final'),
            'changes_verified': self.housekeeping_results.get('changes_verified', False)
        }
        self.add_artifact('tmt_report', report, {'description': f"HCTM thresholds for {self.device}"})

        try:
            written = self._store_artifacts()
        except OSError as e:
            message = f"Could not store the report in {self.config.get('report_dir')}: {e}"
            self.logger.warning(message)
            self.housekeeping_results['warnings'].append(message)
            return
        self.housekeeping_results['report_stored'] = bool(written)
