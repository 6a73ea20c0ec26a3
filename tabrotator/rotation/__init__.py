"""Tab rotation: registry, provisioning, timers, state machine and command surface."""

from .activity_log import ActivityLog, LogEntry, LogSeverity
from .exceptions import (
    AllEntriesFailed,
    ManagedTabClosed,
    NoEntriesConfigured,
    ProvisionFailed,
    RotationError,
    TabUnreachable,
    UnsupportedCommand,
)
from .provisioner import TabProvisioner
from .registry import TabRegistry, normalize_url, urls_match
from .router import COMMAND_ALIASES, CommandRouter
from .service import RotationService
from .state_machine import (
    RotationPhase,
    RotationState,
    RotationStateMachine,
    RotationStatus,
    RotationTiming,
)
from .timer import ADVANCE, TICK, SwitchTimer

__all__ = [
    "ADVANCE",
    "COMMAND_ALIASES",
    "TICK",
    "ActivityLog",
    "AllEntriesFailed",
    "CommandRouter",
    "LogEntry",
    "LogSeverity",
    "ManagedTabClosed",
    "NoEntriesConfigured",
    "ProvisionFailed",
    "RotationError",
    "RotationPhase",
    "RotationService",
    "RotationState",
    "RotationStateMachine",
    "RotationStatus",
    "RotationTiming",
    "SwitchTimer",
    "TabProvisioner",
    "TabRegistry",
    "TabUnreachable",
    "UnsupportedCommand",
    "normalize_url",
    "urls_match",
]
