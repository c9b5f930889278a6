#
# src/testadapter/frameworks/__init__.py
#
"""
Test framework argument builders for testadapter.
"""
from .base import TestCaseObject, TestFramework
from .factory import (
    BUILTIN_FRAMEWORKS,
    FrameworkRegistry,
    discover_frameworks,
    get_framework_registry,
)

__all__ = [
    "BUILTIN_FRAMEWORKS",
    "FrameworkRegistry",
    "TestCaseObject",
    "TestFramework",
    "discover_frameworks",
    "get_framework_registry",
]

# 🔼⚙️
