#
# src/testadapter/__init__.py
#
"""
testadapter: runs externally-defined script tests and reports one outcome per test.
"""
from .protocols import (
    FrameworkHandle,
    ProjectSettings,
    RunContext,
    TestCase,
    TestOutcome,
    TestResult,
)
from .runtime import TestExecutor

__all__ = [
    "FrameworkHandle",
    "ProjectSettings",
    "RunContext",
    "TestCase",
    "TestExecutor",
    "TestOutcome",
    "TestResult",
]
