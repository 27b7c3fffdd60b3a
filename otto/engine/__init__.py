"""Engine — plugin registry, scheduler generations and reloads."""

from otto.engine.coordinator import Coordinator
from otto.engine.registry import ALERT_PLUGINS, PROBE_PLUGINS, Registry, build_registry
from otto.engine.scheduler import Scheduler

__all__ = [
    "ALERT_PLUGINS",
    "PROBE_PLUGINS",
    "Coordinator",
    "Registry",
    "Scheduler",
    "build_registry",
]
