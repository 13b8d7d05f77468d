"""
Analysis Pipeline Tests

Tests algorithm selection, the detect-then-recover envelope, its
serialization and text report, configuration and logging.
"""

import json
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.process import Process
from models.resource import ResourceType
from models.system_state import SystemState
from models.validation import ValidationError
from algorithms.detection import MatrixResult
from algorithms.wfg import WfgResult
from analysis.pipeline import (
    AnalysisConfig, analyze, analyze_file, analyze_sample, select_algorithm
)
from utils.logger import DetectionLogger
from utils.samples import get_sample, list_samples
from utils.state_loader import save_state


def _quiet_logger(verbose=False):
    return DetectionLogger(verbose=verbose, quiet=True)


def _multi_instance_cycle():
    """Cycle in the wait-for graph that the matrix detector resolves."""
    return SystemState(
        processes=[Process(pid=i, name=f"P{i}") for i in range(3)],
        resource_types=[ResourceType(rid=0, name="R0", instances=2),
                        ResourceType(rid=1, name="R1", instances=1)],
        available=[0, 0],
        allocation=[[1, 0], [0, 1], [1, 0]],
        request=[[0, 1], [1, 0], [0, 0]],
    )


def test_algorithm_selection():
    """WFG only when every resource type has exactly one instance."""
    print("\n" + "="*60)
    print("TEST 1: Algorithm Selection")
    print("="*60)

    assert select_algorithm(get_sample("Chain Deadlock (Single-Instance)")) == "wfg"
    assert select_algorithm(get_sample("Multi-Instance Deadlock")) == "matrix"
    assert select_algorithm(get_sample("Banker's Algorithm (Safe)")) == "matrix"
    assert select_algorithm(SystemState()) == "wfg"

    for name in list_samples():
        report = analyze_sample(name, logger=_quiet_logger())
        expected = "wfg" if report.state.is_single_instance else "matrix"
        assert report.algorithm == expected, name
        assert isinstance(report.result, WfgResult if expected == "wfg" else MatrixResult)
        print(f"  ✓ {name}: {report.algorithm}")


def test_deadlocked_report():
    """Deadlocked states come back with recovery suggestions."""
    print("\n" + "="*60)
    print("TEST 2: Deadlocked Report")
    print("="*60)

    report = analyze_sample("Two Process Deadlock (Single-Instance)", logger=_quiet_logger())

    assert report.deadlocked
    assert report.deadlocked_processes == (0, 1)
    assert len(report.recovery.termination) == 2
    assert len(report.recovery.termination[0].processes) == 1
    assert len(report.recovery.preemption) == 2
    assert report.warnings == []

    text = report.display()
    print(text)
    assert "Status: DEADLOCKED (Process A, Process B)" in text
    assert "Recovery - Process Termination:" in text
    assert "1. Terminate 1 process(es): Process A" in text


def test_safe_report():
    """Safe states have no recovery section and an empty plan."""
    print("\n" + "="*60)
    print("TEST 3: Safe Report")
    print("="*60)

    report = analyze_sample("Banker's Algorithm (Safe)", logger=_quiet_logger())

    assert not report.deadlocked
    assert report.recovery.termination == [] and report.recovery.preemption == []
    assert report.result.execution_order == [1, 3, 4, 0, 2]

    text = report.display()
    assert "Status: SAFE" in text
    assert "Recovery" not in text


def test_envelope_serialization():
    """to_dict() is JSON-ready and mirrors the detector result."""
    print("\n" + "="*60)
    print("TEST 4: Envelope Serialization")
    print("="*60)

    wfg = analyze_sample("Circular Deadlock (Single-Instance)", logger=_quiet_logger()).to_dict()
    json.dumps(wfg)
    assert wfg['algorithm'] == "wfg"
    assert wfg['deadlocked'] is True
    assert wfg['deadlocked_processes'] == [0, 1, 2]
    assert len(wfg['wait_for_edges']) == 3
    assert wfg['cycles'][0]['processes'] == [0, 1, 2]
    assert wfg['recovery']['termination'][0]['action_type'] == "terminate"
    assert wfg['recovery']['preemption'][0]['resources'] == [0]
    assert 'finish' not in wfg

    matrix = analyze_sample("Partial Deadlock", logger=_quiet_logger()).to_dict()
    json.dumps(matrix)
    assert matrix['algorithm'] == "matrix"
    assert matrix['finish'] == [False, False, False, True]
    assert matrix['execution_order'] == [3]
    assert matrix['recovery']['search_skipped'] is False
    assert 'cycles' not in matrix
    print("  ✓ Both envelope shapes serialize")


def test_algorithm_override():
    """Forcing WFG on a multi-instance system warns about false positives."""
    print("\n" + "="*60)
    print("TEST 5: Algorithm Override")
    print("="*60)

    state = _multi_instance_cycle()

    auto = analyze(state, logger=_quiet_logger())
    assert auto.algorithm == "matrix"
    assert not auto.deadlocked

    forced = analyze(state, AnalysisConfig(algorithm="wfg"), logger=_quiet_logger())
    assert forced.algorithm == "wfg"
    assert forced.deadlocked
    assert len(forced.warnings) == 1
    assert "multi-instance" in forced.warnings[0]
    print(f"  ✓ Warning: {forced.warnings[0]}")


def test_validation_stops_pipeline():
    """Invalid states raise before any detection runs."""
    print("\n" + "="*60)
    print("TEST 6: Validation Failure")
    print("="*60)

    state = get_sample("Safe State")
    state.available = [0, 0, 0]

    try:
        analyze(state, logger=_quiet_logger())
        assert False, "Should raise ValidationError"
    except ValidationError as e:
        print(f"  ✓ Correctly rejected: {e}")


def test_request_warnings_and_strict_mode():
    """Infeasible requests are warnings unless strict mode is on."""
    print("\n" + "="*60)
    print("TEST 7: Request Warnings")
    print("="*60)

    state = SystemState(
        processes=[Process(pid=0, name="P0")],
        resource_types=[ResourceType(rid=0, name="R0", instances=2)],
        available=[2],
        allocation=[[0]],
        request=[[3]],
    )

    report = analyze(state, logger=_quiet_logger())
    assert len(report.warnings) == 1
    assert report.deadlocked
    assert report.deadlocked_processes == (0,)
    # Holds nothing, so nothing to preempt; terminating it is the only fix
    assert report.recovery.preemption == []
    assert [s.processes for s in report.recovery.termination] == [(0,)]

    try:
        analyze(state, AnalysisConfig(strict_requests=True), logger=_quiet_logger())
        assert False, "Strict mode should reject"
    except ValidationError as e:
        print(f"  ✓ Strict mode rejected: {e}")


def test_config_validation():
    """Unknown algorithms and negative limits are rejected."""
    print("\n" + "="*60)
    print("TEST 8: Config Validation")
    print("="*60)

    for kwargs in ({'algorithm': "bankers"}, {'search_limit': -1}):
        try:
            AnalysisConfig(**kwargs)
            assert False, f"AnalysisConfig({kwargs}) should be rejected"
        except ValueError as e:
            print(f"  ✓ Correctly rejected: {e}")

    assert AnalysisConfig(search_limit=None).search_limit is None


def test_search_limit_in_report():
    """A search limit smaller than the deadlocked set is reported."""
    print("\n" + "="*60)
    print("TEST 9: Search Limit")
    print("="*60)

    report = analyze_sample(
        "Dining Philosophers (Deadlock)",
        AnalysisConfig(search_limit=2),
        logger=_quiet_logger(),
    )

    assert report.recovery.search_skipped
    assert report.recovery.termination == []
    assert "Search skipped" in report.display()


def test_logging_to_file():
    """Stage messages go to the log file; traces only when verbose."""
    print("\n" + "="*60)
    print("TEST 10: Log File")
    print("="*60)

    with tempfile.TemporaryDirectory() as tmp:
        log_path = Path(tmp) / "analysis.log"
        state_path = Path(tmp) / "state.json"
        save_state(get_sample("Partial Deadlock"), state_path)

        logger = DetectionLogger(verbose=False, log_file=str(log_path), quiet=True)
        analyze_file(state_path, logger=logger)
        logger.close()

        content = log_path.read_text(encoding='utf-8')
        print(content)
        assert content.startswith("Deadlock Analysis Log - ")
        assert "[validate] OK (4 processes, 2 resource types)" in content
        assert "[detect] matrix: DEADLOCK - P0, P1, P2" in content
        assert "[recover] Terminate 1 process(es): P0" in content
        assert "[DEBUG]" not in content

        verbose_path = Path(tmp) / "verbose.log"
        report = analyze_file(state_path, AnalysisConfig(verbose=True, log_file=str(verbose_path)))
        content = verbose_path.read_text(encoding='utf-8')
        assert "[DEBUG] === Matrix-Based Deadlock Detection ===" in content
        assert report.deadlocked


def test_input_not_mutated():
    """The pipeline leaves the caller's state untouched."""
    print("\n" + "="*60)
    print("TEST 11: No Mutation")
    print("="*60)

    state = get_sample("Multi-Instance Deadlock")
    snapshot = (list(state.available), [list(r) for r in state.allocation], [list(r) for r in state.request])

    analyze(state, logger=_quiet_logger())
    analyze(state, AnalysisConfig(algorithm="wfg"), logger=_quiet_logger())

    assert (list(state.available), [list(r) for r in state.allocation],
            [list(r) for r in state.request]) == snapshot


def test_single_instance_recovery():
    """Every single-instance deadlock gets at least one termination suggestion."""
    print("\n" + "="*60)
    print("TEST 12: Single-Instance Recovery")
    print("="*60)

    states = {name: get_sample(name) for name in list_samples()}
    # Cycles 0 <-> 3 and 1 <-> 2, with P0 also waiting on P1
    states["Two Separate Cycles"] = SystemState(
        processes=[Process(pid=i, name=f"P{i}") for i in range(4)],
        resource_types=[ResourceType(rid=j, name=f"R{j}", instances=1) for j in range(4)],
        available=[0, 0, 0, 0],
        allocation=[[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1]],
        request=[[0, 1, 0, 1], [0, 0, 1, 0], [0, 1, 0, 0], [1, 0, 0, 0]],
    )

    for name, state in states.items():
        if not state.is_single_instance:
            continue
        report = analyze(state, logger=_quiet_logger())
        if not report.deadlocked:
            continue
        assert report.algorithm == "wfg", name
        assert report.recovery.termination, f"No termination suggestion for {name}"
        print(f"  ✓ {name}: {report.recovery.termination[0].description}")

    report = analyze(states["Two Separate Cycles"], logger=_quiet_logger())
    assert report.deadlocked_processes == (0, 1, 2, 3)
    assert all(len(s.processes) == 2 for s in report.recovery.termination)


def main():
    """Run all pipeline tests."""
    print("\n" + "="*70)
    print(" "*20 + "ANALYSIS PIPELINE TESTS")
    print("="*70)

    try:
        test_algorithm_selection()
        test_deadlocked_report()
        test_safe_report()
        test_envelope_serialization()
        test_algorithm_override()
        test_validation_stops_pipeline()
        test_request_warnings_and_strict_mode()
        test_config_validation()
        test_search_limit_in_report()
        test_logging_to_file()
        test_input_not_mutated()
        test_single_instance_recovery()

        print("\n✅ ALL PIPELINE TESTS PASSED\n")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
