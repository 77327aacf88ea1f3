#!/usr/bin/env python3
"""
Subprocess Resource Manager for geo-blackhole

Runs external commands (the gobgp CLI) with:
- Context-managed process lifecycle
- Cleanup on all exit paths
- Timeout handling with graceful termination
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class ProcessState(Enum):
    """Process execution states"""

    COMPLETED = "completed"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass
class ProcessResult:
    """Result from managed subprocess execution"""

    returncode: int
    stdout: str
    stderr: str
    state: ProcessState
    execution_time: float
    command: List[str]
    pid: Optional[int] = None
    error_message: Optional[str] = None


class ManagedProcess:
    """
    Context manager for subprocess execution

    The child is terminated (then killed) if it is still running when the
    context exits, whatever the exit path.
    """

    def __init__(
        self,
        command: List[str],
        timeout: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        text: bool = True,
    ):
        self.command = command
        self.timeout = timeout
        self.env = env
        self.text = text

        self.process: Optional[subprocess.Popen] = None
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger("geo-blackhole.subprocess")
        self._cleanup_done = False

    def __enter__(self) -> "ManagedProcess":
        self.start_time = time.time()
        self.process = subprocess.Popen(
            self.command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            env=self.env,
            text=self.text,
        )
        self.logger.debug(f"Started process {self.process.pid}: {' '.join(self.command)}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._cleanup()

    def wait_for_completion(self) -> ProcessResult:
        """
        Wait for process completion

        Returns:
            ProcessResult with execution details
        """
        if not self.process:
            raise RuntimeError("Process not started - use within context manager")

        try:
            stdout, stderr = self.process.communicate(timeout=self.timeout)
            execution_time = time.time() - self.start_time

            state = ProcessState.COMPLETED if self.process.returncode == 0 else ProcessState.FAILED

            return ProcessResult(
                returncode=self.process.returncode,
                stdout=stdout or "",
                stderr=stderr or "",
                state=state,
                execution_time=execution_time,
                command=self.command,
                pid=self.process.pid,
            )

        except subprocess.TimeoutExpired:
            execution_time = time.time() - self.start_time
            self.logger.warning(f"Process {self.process.pid} timeout after {self.timeout}s")

            self.process.terminate()
            try:
                stdout, stderr = self.process.communicate(timeout=5)
            except subprocess.TimeoutExpired:
                self.logger.warning(f"Force killing process {self.process.pid}")
                self.process.kill()
                stdout, stderr = self.process.communicate()

            return ProcessResult(
                returncode=self.process.returncode or -1,
                stdout=stdout or "",
                stderr=stderr or "",
                state=ProcessState.TIMEOUT,
                execution_time=execution_time,
                command=self.command,
                pid=self.process.pid,
                error_message=f"Process timeout after {self.timeout}s",
            )

    def _cleanup(self):
        if self._cleanup_done:
            return
        self._cleanup_done = True

        if self.process and self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.logger.warning(f"Force killing unresponsive process {self.process.pid}")
                self.process.kill()
                self.process.wait()


def run_with_resource_management(
    command: List[str], timeout: Optional[int] = None, **kwargs
) -> ProcessResult:
    """
    Execute subprocess with resource management

    Args:
        command: Command and arguments to execute
        timeout: Execution timeout in seconds
        **kwargs: Additional ManagedProcess arguments

    Returns:
        ProcessResult with execution details

    Raises:
        OSError: If the executable cannot be started
    """
    with ManagedProcess(command, timeout=timeout, **kwargs) as managed:
        return managed.wait_for_completion()
