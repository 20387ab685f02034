#
# src/suiterun/testing/factory.py
#
"""
Factory for creating RunnerProfile instances.
"""
import structlog

from suiterun.config.models import RunnerConfig
from suiterun.exceptions import ConfigurationError
from suiterun.testing.playwright import PlaywrightProfile
from suiterun.testing.protocols import RunnerProfile

log = structlog.get_logger("testing.factory")

RUNNER_MAP = {
    "playwright": PlaywrightProfile,
}


def get_runner_profile(config: RunnerConfig) -> RunnerProfile:
    """
    Factory function to get an instance of a RunnerProfile.
    """
    runner_key = config.name.lower()
    runner_class = RUNNER_MAP.get(runner_key)

    if not runner_class:
        log.error("Unsupported test runner specified", runner=config.name)
        raise ConfigurationError(
            f"Unsupported test runner: '{config.name}'. "
            f"Available runners: {list(RUNNER_MAP.keys())}"
        )

    log.debug("Instantiating runner profile", runner=runner_key)
    return runner_class(reporters=config.reporters)

# 🧪⚙️
