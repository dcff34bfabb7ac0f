import os
from typing import Any

from hypothesis import HealthCheck, settings

# Recursive tree strategies are slow to generate
settings.register_profile(
    "mag", deadline=None, suppress_health_check=[HealthCheck.too_slow]
)
settings.register_profile("ci", parent=settings.get_profile("mag"), max_examples=500)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "mag"))

# Subprocess CLI runs report coverage when started under `coverage run`
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop
