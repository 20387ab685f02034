#
# config/__init__.py
#
"""
Configuration handling sub-package for suiterun.

Exports the loading function and core configuration models.
"""

from .loader import build_config, load_config
from .models import OrchestratorConfig, RunnerConfig, TimeoutConfig

__all__ = [
    "OrchestratorConfig",
    "RunnerConfig",
    "TimeoutConfig",
    "build_config",
    "load_config",
]

# 🧪⚙️
