#
# config/__init__.py
#
"""
Configuration handling sub-package for testadapter.

Exports the loading function and core configuration models.
"""

from .loader import load_config
from .models import AdapterConfig, GlobalConfig, RunnerConfig

__all__ = [
    "AdapterConfig",
    "GlobalConfig",
    "RunnerConfig",
    "load_config",
]

# 🔼⚙️
