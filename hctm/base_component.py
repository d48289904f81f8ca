#!/usr/bin/env python3
"""
Base Component Class for Discovery-Processing-Housekeeping Pattern

Every device operation in this package is split into three phases:

- discover: read controller capabilities and feature values, change nothing
- process: compute and write new values
- housekeep: read back, verify and write a report

BaseComponent carries the bookkeeping shared by all components (timestamps,
phase tracking, status, artifacts and JSON reporting).
"""

import logging
import json
import datetime
import traceback
import uuid
from pathlib import Path
from typing import Dict, List, Any, Optional, TypedDict, Literal


class ComponentConfig(TypedDict, total=False):
    """TypedDict for configuration shared by all components."""
    component_id: str
    log_level: str
    report_dir: Optional[str]
    dry_run: bool


class TimestampData(TypedDict):
    """TypedDict for tracking execution timestamps."""
    start: Optional[str]
    discover_start: Optional[str]
    discover_end: Optional[str]
    process_start: Optional[str]
    process_end: Optional[str]
    housekeep_start: Optional[str]
    housekeep_end: Optional[str]
    end: Optional[str]


class StatusData(TypedDict):
    """TypedDict for component execution status."""
    success: bool
    error: Optional[str]
    message: Optional[str]


class PhaseResults(TypedDict, total=False):
    """TypedDict for the combined result of execute()."""
    discovery: Dict[str, Any]
    processing: Dict[str, Any]
    housekeeping: Dict[str, Any]
    error: Optional[str]
    traceback: Optional[str]
    metadata: Dict[str, Any]


class ArtifactMetadata(TypedDict, total=False):
    """TypedDict for artifact metadata."""
    artifact_id: str
    artifact_type: str
    component_id: str
    component_name: str
    timestamp: str
    description: Optional[str]


class Artifact(TypedDict):
    """TypedDict for artifact data."""
    id: str
    type: str
    content: Any
    metadata: ArtifactMetadata


class ExecutionSummary(TypedDict):
    """TypedDict for execution summary."""
    component_id: str
    component_name: str
    status: StatusData
    timestamps: TimestampData
    phases_executed: Dict[str, bool]
    artifacts_count: int
    discovery_results_count: int
    processing_results_count: int
    housekeeping_results_count: int


Phase = Literal["discover", "process", "housekeep"]

ALL_PHASES: List[Phase] = ["discover", "process", "housekeep"]


def _now() -> str:
    return datetime.datetime.now().isoformat()


class BaseComponent:
    """
    Base class for all components.

    Subclasses override discover(), process() and housekeep(). The default
    implementations only do the bookkeeping and log a warning, which keeps
    BaseComponent usable on its own in tests.
    """

    def __init__(self, config: ComponentConfig, logger: Optional[logging.Logger] = None) -> None:
        """
        Initialize a new component instance.

        Args:
            config: Configuration dictionary for the component
            logger: Optional logger instance (if not provided, a new one will be created)
        """
        self.config = config
        self.component_id: str = config.get('component_id', str(uuid.uuid4()))
        self.component_name: str = self.__class__.__name__

        self.logger: logging.Logger = logger or self._setup_logger()

        self.discovery_results: Dict[str, Any] = {}
        self.processing_results: Dict[str, Any] = {}
        self.housekeeping_results: Dict[str, Any] = {}

        self.artifacts: List[Artifact] = []

        self.phases_executed: Dict[str, bool] = {phase: False for phase in ALL_PHASES}

        self.timestamps: TimestampData = {
            'start': None,
            'discover_start': None,
            'discover_end': None,
            'process_start': None,
            'process_end': None,
            'housekeep_start': None,
            'housekeep_end': None,
            'end': None
        }

        self.status: StatusData = {
            'success': False,
            'error': None,
            'message': None
        }

        self.logger.debug(f"Initialized {self.component_name} (ID: {self.component_id})")

    def _setup_logger(self) -> logging.Logger:
        """
        Set up a logger for this component.

        Returns:
            A configured logger instance
        """
        logger = logging.getLogger(self.component_name)
        if not logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.config.get('log_level', 'INFO'))
        return logger

    def _phase_failed(self, phase: str, error: Exception) -> None:
        """Record a phase failure in the status dict."""
        self.logger.error(f"Error during {phase} phase: {error}")
        self.logger.debug(traceback.format_exc())
        self.status['success'] = False
        self.status['error'] = str(error)
        self.status['message'] = f"{phase.capitalize()} phase failed: {error}"

    def discover(self) -> Dict[str, Any]:
        """
        Discovery phase: Examine the device without making changes.

        Subclasses set phases_executed['discover'] and the discover_* timestamps.

        Returns:
            Dictionary of discovery results
        """
        raise NotImplementedError(f"{self.component_name} does not implement discover()")

    def process(self) -> Dict[str, Any]:
        """
        Processing phase: Perform the changes on the device.

        Returns:
            Dictionary of processing results
        """
        raise NotImplementedError(f"{self.component_name} does not implement process()")

    def housekeep(self) -> Dict[str, Any]:
        """
        Housekeeping phase: Verify the changes and store artifacts.

        Returns:
            Dictionary of housekeeping results
        """
        raise NotImplementedError(f"{self.component_name} does not implement housekeep()")

    def execute(self, phases: Optional[List[Phase]] = None) -> PhaseResults:
        """
        Execute the component lifecycle phases.

        A failing phase stops the run; its error and traceback end up in the
        returned dictionary instead of being raised.

        Args:
            phases: List of phases to execute (default: all phases)

        Returns:
            Dictionary with the results of all executed phases
        """
        phases = phases or ALL_PHASES
        self.timestamps['start'] = _now()
        self.logger.debug(f"Executing {self.component_name} with phases: {', '.join(phases)}")

        results: PhaseResults = {}

        try:
            if "discover" in phases:
                results["discovery"] = self.discover()

            if "process" in phases:
                results["processing"] = self.process()

            if "housekeep" in phases:
                results["housekeeping"] = self.housekeep()

            self.status['success'] = True
            self.status['message'] = "Execution completed successfully"

        except Exception as e:
            self.status['success'] = False
            if self.status['error'] is None:
                self.status['error'] = str(e)
            results["error"] = str(e)
            results["traceback"] = traceback.format_exc()

            # Keep whatever was collected before the failure
            if self.artifacts:
                try:
                    self._store_artifacts()
                except OSError as artifact_e:
                    self.logger.error(f"Error storing artifacts after failure: {artifact_e}")

        finally:
            self.timestamps['end'] = _now()

        results["metadata"] = {
            "component_id": self.component_id,
            "component_name": self.component_name,
            "timestamps": self.timestamps,
            "phases_executed": self.phases_executed,
            "status": self.status
        }

        self.logger.debug(f"Execution of {self.component_name} completed with status: {self.status['success']}")
        return results

    def add_artifact(self, artifact_type: str, content: Any, metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        Add an artifact to be stored during housekeeping.

        Args:
            artifact_type: Type of artifact (e.g., 'tmt_report')
            content: JSON-serializable artifact content
            metadata: Additional metadata for the artifact

        Returns:
            Artifact ID
        """
        artifact_id = str(uuid.uuid4())

        artifact_metadata: ArtifactMetadata = {
            "artifact_id": artifact_id,
            "artifact_type": artifact_type,
            "component_id": self.component_id,
            "component_name": self.component_name,
            "timestamp": _now(),
            **(metadata or {})
        }

        self.artifacts.append({
            "id": artifact_id,
            "type": artifact_type,
            "content": content,
            "metadata": artifact_metadata
        })

        self.logger.debug(f"Added artifact: {artifact_id} ({artifact_type})")

        return artifact_id

    def _store_artifacts(self) -> List[Path]:
        """
        Write all registered artifacts as JSON files into the report directory.

        Without a configured report_dir the artifacts are only logged.

        Returns:
            Paths of the written files
        """
        if not self.artifacts:
            self.logger.debug("No artifacts to store")
            return []

        report_dir = self.config.get('report_dir')
        if not report_dir:
            for artifact in self.artifacts:
                self.logger.debug(f"Not storing artifact {artifact['id']} ({artifact['type']}): no report directory")
            return []

        target_dir = Path(report_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        written: List[Path] = []
        for artifact in self.artifacts:
            stamp = artifact['metadata']['timestamp'].replace(':', '').replace('.', '-')
            path = target_dir / f"{artifact['type']}_{stamp}.json"
            with open(path, 'w', encoding='utf-8') as fh:
                json.dump({"metadata": artifact['metadata'], "content": artifact['content']}, fh, indent=2)
            self.logger.info(f"Stored {artifact['type']} artifact at {path}")
            written.append(path)

        return written

    def get_execution_summary(self) -> ExecutionSummary:
        """
        Get a summary of this component's execution.

        Returns:
            Dictionary with execution summary
        """
        return {
            "component_id": self.component_id,
            "component_name": self.component_name,
            "status": self.status,
            "timestamps": self.timestamps,
            "phases_executed": self.phases_executed,
            "artifacts_count": len(self.artifacts),
            "discovery_results_count": len(self.discovery_results),
            "processing_results_count": len(self.processing_results),
            "housekeeping_results_count": len(self.housekeeping_results)
        }

    def to_json(self) -> str:
        """
        Convert component results to a JSON string.

        Returns:
            JSON string representation of the component results
        """
        results = {
            "component_id": self.component_id,
            "component_name": self.component_name,
            "timestamps": self.timestamps,
            "phases_executed": self.phases_executed,
            "status": self.status,
            "discovery_results": self.discovery_results,
            "processing_results": self.processing_results,
            "housekeeping_results": self.housekeeping_results,
            "artifacts": [
                {
                    "id": a["id"],
                    "type": a["type"],
                    "metadata": a["metadata"]
                }
                for a in self.artifacts
            ]
        }

        return json.dumps(results, indent=2)
