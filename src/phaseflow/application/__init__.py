"""
Application layer for the lifecycle engine.

Contains orchestration logic that coordinates domain objects:
- LifecycleService: Phase and sprint operations
- Merge engine: Deterministic composition of sprint outputs
- ContextBuilder: Prompt and project context assembly
- VersionBrowser: Version viewing and edit buffers
- AutomationOrchestrator: Unattended driver
"""

from phaseflow.application.context import ContextBuilder, GenerationRequest
from phaseflow.application.event_emitter import LifecycleEventEmitter
from phaseflow.application.history import EntityRef, VersionBrowser
from phaseflow.application.lifecycle import LifecycleService
from phaseflow.application.merge import MERGE_SEPARATOR, compose, compose_phase
from phaseflow.application.orchestrator import AutomationOrchestrator, AutomationResult

__all__ = [
    "AutomationOrchestrator",
    "AutomationResult",
    "ContextBuilder",
    "EntityRef",
    "GenerationRequest",
    "LifecycleEventEmitter",
    "LifecycleService",
    "MERGE_SEPARATOR",
    "VersionBrowser",
    "compose",
    "compose_phase",
]
