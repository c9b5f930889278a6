#
# src/testadapter/runtime/__init__.py
#
"""
Test-run orchestration: correlating runner events, supervising interpreter
processes and scheduling groups of tests.
"""
from .console_host import ConsoleFrameworkHandle
from .correlator import ResultCorrelator
from .scheduler import RunGroup, TestExecutor, partition_tests
from .supervisor import ProcessSupervisor

__all__ = [
    "ConsoleFrameworkHandle",
    "ProcessSupervisor",
    "ResultCorrelator",
    "RunGroup",
    "TestExecutor",
    "partition_tests",
]

# 🔼⚙️
