"""Canvas artifact discovery and extraction for Gemini conversations."""

from .models import ExtractedArtifact, UISnapshot
from .orchestrator import ArtifactExtractionOrchestrator, Phase
from .polling import ConditionPoller
from .state import UIStateCoordinator

__all__ = [
    "ArtifactExtractionOrchestrator",
    "ConditionPoller",
    "ExtractedArtifact",
    "Phase",
    "UISnapshot",
    "UIStateCoordinator",
]
