"""
Logger utility for Deadlock Detective.

Provides stage-by-stage logging of an analysis with verbosity levels.
"""

from typing import List, Optional, Sequence
from datetime import datetime


class DetectionLogger:
    """
    Logger for validation, detection and recovery decisions.

    Format: "[stage] message", e.g. "[detect] matrix: DEADLOCK - P0, P1"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, quiet: bool = False):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output (including full detector traces)
            log_file: Optional file path for logging
            quiet: Suppress console output (file output still written)
        """
        self.verbose = verbose
        self.quiet = quiet
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Analysis Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        if not self.quiet:
            print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_stage(self, stage: str, message: str, level: str = "info") -> None:
        """Log a message for one pipeline stage."""
        self.log(f"[{stage}] {message}", level)

    def log_validation(self, num_processes: int, num_resources: int, warnings: List[str]) -> None:
        """
        Log a passed validation.

        Args:
            num_processes: Processes in the validated state
            num_resources: Resource types in the validated state
            warnings: Non-fatal findings (e.g. infeasible requests)
        """
        self.log_stage("validate", f"OK ({num_processes} processes, {num_resources} resource types)")
        for warning in warnings:
            self.log_stage("validate", warning, "warning")

    def log_detection(self, algorithm: str, deadlocked: bool, names: Sequence[str]) -> None:
        """
        Log a detector verdict.

        Args:
            algorithm: "wfg" or "matrix"
            deadlocked: Detector verdict
            names: Names of deadlocked processes
        """
        if deadlocked:
            message = f"{algorithm}: DEADLOCK - {', '.join(names)}"
        else:
            message = f"{algorithm}: no deadlock"
        self.log_stage("detect", message)

    def log_trace(self, trace: Sequence[str]) -> None:
        """Log a detector trace line by line (verbose only)."""
        for line in trace:
            self.log(line, "debug")

    def log_recovery(self, descriptions: Sequence[str], skipped: bool = False) -> None:
        """
        Log recovery suggestions.

        Args:
            descriptions: One-line description per suggestion
            skipped: Whether the termination search was refused by the search limit
        """
        if skipped:
            self.log_stage("recover", "termination search skipped: deadlocked set exceeds search limit", "warning")
        for description in descriptions:
            self.log_stage("recover", description)

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
