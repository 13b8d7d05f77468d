"""
Analysis Pipeline for Deadlock Detective.

Validates a snapshot, picks a detector, runs it, and asks for recovery
suggestions when the snapshot is deadlocked. The returned report is the
envelope handed to whatever renders or serializes results.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from models.system_state import SystemState
from models.validation import request_warnings, validate
from algorithms.detection import MatrixResult, detect_matrix
from algorithms.wfg import WfgResult, detect_wfg
from algorithms.recovery import RecoveryPlan, generate_recovery
from utils.logger import DetectionLogger
from utils.samples import get_sample
from utils.state_loader import load_state

ALGORITHMS = ("auto", "wfg", "matrix")


@dataclass
class AnalysisConfig:
    """
    Settings for one analysis run.

    Attributes:
        algorithm: "auto" (WFG iff every resource type has one instance), "wfg" or "matrix"
        strict_requests: Reject requests exceeding a resource's total instead of warning
        search_limit: Largest deadlocked set searched for termination sets (None = no limit)
        verbose: Log full detector traces
        log_file: Optional file path for the log
    """
    algorithm: str = "auto"
    strict_requests: bool = False
    search_limit: Optional[int] = 20
    verbose: bool = False
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm '{self.algorithm}' (expected one of {', '.join(ALGORITHMS)})")
        if self.search_limit is not None and self.search_limit < 0:
            raise ValueError(f"search_limit must be non-negative, got {self.search_limit}")


@dataclass
class AnalysisReport:
    """
    Combined detection and recovery outcome.

    Attributes:
        state: The analysed snapshot
        algorithm: Detector used ("wfg" or "matrix")
        result: Detector result
        recovery: Recovery suggestions (empty when not deadlocked)
        warnings: Non-fatal findings from validation and algorithm selection
    """
    state: SystemState
    algorithm: str
    result: Union[WfgResult, MatrixResult]
    recovery: RecoveryPlan = field(default_factory=RecoveryPlan)
    warnings: List[str] = field(default_factory=list)

    @property
    def deadlocked(self) -> bool:
        return self.result.deadlocked

    @property
    def deadlocked_processes(self):
        return self.result.deadlocked_processes

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready envelope: detector fields, recovery and algorithm."""
        data: Dict[str, Any] = {
            'algorithm': self.algorithm,
            'deadlocked': self.result.deadlocked,
            'deadlocked_processes': list(self.result.deadlocked_processes),
            'trace': list(self.result.trace),
        }

        if isinstance(self.result, WfgResult):
            data['wait_for_edges'] = [_edge_dict(e) for e in self.result.wait_for_edges]
            data['cycles'] = [
                {'processes': list(c.processes), 'edges': [_edge_dict(e) for e in c.edges]}
                for c in self.result.cycles
            ]
        else:
            data['finish'] = list(self.result.finish)
            data['execution_order'] = list(self.result.execution_order)

        data['recovery'] = {
            'termination': [
                {
                    'action_type': s.action_type.value,
                    'description': s.description,
                    'processes': list(s.processes),
                    'explanation': s.explanation,
                }
                for s in self.recovery.termination
            ],
            'preemption': [
                {
                    'action_type': s.action_type.value,
                    'description': s.description,
                    'processes': list(s.processes),
                    'resources': list(s.resources),
                    'released_instances': s.released_instances,
                    'explanation': s.explanation,
                }
                for s in self.recovery.preemption
            ],
            'search_skipped': self.recovery.search_skipped,
        }
        data['warnings'] = list(self.warnings)
        return data

    def display(self) -> str:
        """
        Generate a plain-text report.

        Returns:
            Verdict, warnings, recovery suggestions and the detector trace
        """
        output = []
        output.append("\n" + "="*60)
        output.append("DEADLOCK ANALYSIS REPORT")
        output.append("="*60)

        name = "Wait-For Graph" if self.algorithm == "wfg" else "Matrix (Work/Finish)"
        output.append(f"\nAlgorithm: {name}")
        output.append(
            f"System: {self.state.num_processes} processes, {self.state.num_resources} resource types"
        )

        if self.deadlocked:
            names = ", ".join(self.state.process_name(p) for p in self.deadlocked_processes)
            output.append(f"Status: DEADLOCKED ({names})")
        else:
            output.append("Status: SAFE (no deadlock)")

        if self.warnings:
            output.append("\nWarnings:")
            for warning in self.warnings:
                output.append(f"  - {warning}")

        if self.deadlocked:
            output.append("\nRecovery - Process Termination:")
            if self.recovery.search_skipped:
                output.append("  Search skipped: deadlocked set exceeds search limit")
            elif not self.recovery.termination:
                output.append("  No termination set found")
            for idx, suggestion in enumerate(self.recovery.termination, start=1):
                output.append(f"  {idx}. {suggestion.description}")

            output.append("\nRecovery - Resource Preemption:")
            if not self.recovery.preemption:
                output.append("  No deadlocked process holds resources")
            for idx, suggestion in enumerate(self.recovery.preemption, start=1):
                output.append(f"  {idx}. {suggestion.description}")
                for line in suggestion.explanation.splitlines()[1:]:
                    output.append(f"     {line}")

        output.append("\nDetection Trace:")
        for line in self.result.trace:
            output.append(f"  {line}")

        output.append("\n" + "="*60)
        return "\n".join(output)


def _edge_dict(edge) -> Dict[str, int]:
    return {'from_pid': edge.from_pid, 'to_pid': edge.to_pid, 'resource_id': edge.resource_id}


def select_algorithm(state: SystemState) -> str:
    """
    Pick the detector for a state.

    The wait-for graph is only exact when every resource type has a single
    instance; anything else goes to the matrix detector.
    """
    return "wfg" if state.is_single_instance else "matrix"


def analyze(
    state: SystemState,
    config: Optional[AnalysisConfig] = None,
    logger: Optional[DetectionLogger] = None
) -> AnalysisReport:
    """
    Run the full detect-then-recover pipeline on one snapshot.

    Steps:
    1. Validate (fails fast with ValidationError; request warnings collected)
    2. Select detector (config override or select_algorithm)
    3. Detect
    4. If deadlocked, generate recovery suggestions from the detected set

    Args:
        state: Snapshot to analyse (not modified)
        config: Analysis settings (defaults if None)
        logger: Logger to use; one is created from config if None

    Returns:
        AnalysisReport envelope

    Raises:
        ValidationError: If the state breaks a structural invariant
    """
    config = config or AnalysisConfig()
    owns_logger = logger is None
    if owns_logger:
        logger = DetectionLogger(verbose=config.verbose, log_file=config.log_file)

    try:
        try:
            validate(state, strict_requests=config.strict_requests)
        except ValueError as e:
            logger.log_stage("validate", str(e), "error")
            raise

        warnings = request_warnings(state)
        logger.log_validation(state.num_processes, state.num_resources, warnings)

        algorithm = select_algorithm(state) if config.algorithm == "auto" else config.algorithm
        if algorithm == "wfg" and not state.is_single_instance:
            warning = ("Wait-for graph used on a multi-instance system: "
                       "a cycle does not necessarily mean deadlock")
            warnings.append(warning)
            logger.log_stage("detect", warning, "warning")

        result = detect_wfg(state) if algorithm == "wfg" else detect_matrix(state)
        logger.log_detection(
            algorithm, result.deadlocked,
            [state.process_name(p) for p in result.deadlocked_processes]
        )
        logger.log_trace(result.trace)

        report = AnalysisReport(state=state, algorithm=algorithm, result=result, warnings=warnings)

        if result.deadlocked:
            report.recovery = generate_recovery(
                state, result.deadlocked_processes, search_limit=config.search_limit
            )
            logger.log_recovery(
                [s.description for s in report.recovery.termination + report.recovery.preemption],
                skipped=report.recovery.search_skipped,
            )

        return report
    finally:
        if owns_logger:
            logger.close()


def analyze_file(
    file_path: Union[str, Path],
    config: Optional[AnalysisConfig] = None,
    logger: Optional[DetectionLogger] = None
) -> AnalysisReport:
    """Load a JSON state document and analyse it."""
    return analyze(load_state(file_path), config, logger)


def analyze_sample(
    name: str,
    config: Optional[AnalysisConfig] = None,
    logger: Optional[DetectionLogger] = None
) -> AnalysisReport:
    """Analyse one of the built-in samples."""
    return analyze(get_sample(name), config, logger)
