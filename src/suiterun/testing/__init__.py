#
# src/suiterun/testing/__init__.py
#
"""
Test execution, provisioning and result extraction sub-package for suiterun.
"""
from .engine import ExecutionEngine
from .extractor import ResultExtractor
from .factory import get_runner_profile
from .protocols import (
    ExecutionRequest,
    ParsedCounts,
    ProcessExecutionResult,
    ProjectRef,
    RunnerCommand,
    RunnerProfile,
)
from .provisioner import EnvironmentProvisioner, ProvisioningReport
from .reports import ReportLocator
from .subprocess_runner import ProcessRunner

__all__ = [
    "EnvironmentProvisioner",
    "ExecutionEngine",
    "ExecutionRequest",
    "ParsedCounts",
    "ProcessExecutionResult",
    "ProcessRunner",
    "ProjectRef",
    "ProvisioningReport",
    "ReportLocator",
    "ResultExtractor",
    "RunnerCommand",
    "RunnerProfile",
    "get_runner_profile",
]

# 🧪⚙️
