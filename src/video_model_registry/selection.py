"""Caller-owned selection state for a video model."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .logging import LogEvent, log_debug
from .options import (
    AspectRatioOption,
    DurationOption,
    GenerationMode,
    ModelConfigurationProvider,
    ResolutionOption,
)

__all__ = ["GenerationMode", "Selection", "SelectionState"]


@dataclass
class Selection:
    """Indices and toggles the user has chosen.

    Indices refer to the model's current option lists and may be out of
    range after a model switch; readers must bounds-check.
    """

    aspect_index: int = 0
    duration_index: int = 0
    resolution_index: int = 0
    audio_enabled: bool = True
    mode: GenerationMode = GenerationMode.TEXT_TO_VIDEO
    motion_control_tier: Optional[str] = None
    reference_video_seconds: Optional[Decimal] = None


class SelectionState:
    """Holds a ``Selection`` for one model and keeps it consistent."""

    def __init__(
        self,
        configuration: ModelConfigurationProvider,
        model_name: str,
        selection: Optional[Selection] = None,
    ):
        self.configuration = configuration
        self.model_name = model_name
        if selection is None:
            self.selection = Selection()
            self.switch_model(model_name)
        else:
            self.selection = selection

    def clamp(self) -> Selection:
        """Reset every out-of-range index to 0."""
        model = self.model_name
        sel = self.selection
        sel.aspect_index = self.configuration.aspect_options(model).safe_index(sel.aspect_index)
        sel.duration_index = self.configuration.duration_options(model).safe_index(sel.duration_index)
        sel.resolution_index = self.configuration.resolution_options(model).safe_index(sel.resolution_index)
        return sel

    def switch_model(self, model_name: str) -> Selection:
        """Point the state at another model and reset its selection."""
        self.model_name = model_name
        sel = self.selection
        sel.aspect_index = 0
        sel.resolution_index = 0
        sel.duration_index = self.configuration.default_duration_index(model_name)
        if self.configuration.audio_required(model_name):
            sel.audio_enabled = True
        if sel.mode not in self.configuration.supported_modes(model_name):
            sel.mode = GenerationMode.TEXT_TO_VIDEO
            sel.motion_control_tier = None
            sel.reference_video_seconds = None
        log_debug(LogEvent.SELECTION, "Model selected", model=model_name, duration_index=sel.duration_index)
        return sel

    def set_audio(self, enabled: bool) -> bool:
        """Toggle audio; disabling is ignored for audio-required models."""
        if not enabled and self.configuration.audio_required(self.model_name):
            return self.selection.audio_enabled
        self.selection.audio_enabled = enabled
        return enabled

    def selected_aspect(self) -> Optional[AspectRatioOption]:
        return self.configuration.aspect_options(self.model_name).select(self.selection.aspect_index)

    def selected_duration(self) -> Optional[DurationOption]:
        return self.configuration.duration_options(self.model_name).select(self.selection.duration_index)

    def selected_resolution(self) -> Optional[ResolutionOption]:
        return self.configuration.resolution_options(self.model_name).select(self.selection.resolution_index)
