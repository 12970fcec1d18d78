"""Per-model option sets for the video model registry.

Each video model offers a list of aspect ratios, durations and resolutions.
Models without their own lists use the static defaults defined here, and
callers select options by index.

Default precedence, used everywhere a per-model value can be missing:

    model-specific config  ->  static default  ->  zero / empty

``resolve_layered`` implements that rule; callers pass the layers in order.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .logging import LogEvent, log_warning

T = TypeVar("T")


class GenerationMode(str, Enum):
    """How a video is generated."""

    TEXT_TO_VIDEO = "text-to-video"
    IMAGE_TO_VIDEO = "image-to-video"
    FRAME_IMAGES = "frame-images"
    MOTION_CONTROL = "motion-control"


def resolve_layered(*layers: Optional[T], default: T) -> T:
    """Return the first layer that is not None, else ``default``.

    Args:
        *layers: Candidate values in precedence order
        default: Value used when every layer is None

    Returns:
        The resolved value
    """
    for layer in layers:
        if layer is not None:
            return layer
    return default


def to_seconds(value: Any) -> Decimal:
    """Normalise a duration to Decimal seconds (5, 5.0 and "5" compare equal).

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Duration must be a number, got {value!r}")
    try:
        seconds = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Duration must be a number, got {value!r}") from e
    if not seconds.is_finite():
        raise ValueError(f"Duration must be finite, got {value!r}")
    return seconds


@dataclass(frozen=True)
class AspectRatioOption:
    """A selectable aspect ratio."""

    id: str
    label: str
    width: int
    height: int
    platforms: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DurationOption:
    """A selectable duration, in seconds."""

    id: str
    label: str
    duration: Decimal
    description: Optional[str] = None

    @classmethod
    def of(cls, seconds: Any, description: Optional[str] = None) -> "DurationOption":
        """Build an option from a number of seconds."""
        value = to_seconds(seconds)
        text = format(value.normalize(), "f")
        return cls(id=text, label=f"{text} seconds", duration=value, description=description)


@dataclass(frozen=True)
class ResolutionOption:
    """A selectable output resolution."""

    id: str
    label: str
    description: Optional[str] = None


DEFAULT_ASPECT_OPTIONS: Tuple[AspectRatioOption, ...] = (
    AspectRatioOption("3:4", "3:4", 3, 4, ("Portrait",)),
    AspectRatioOption("9:16", "9:16", 9, 16, ("TikTok", "Reels")),
    AspectRatioOption("1:1", "1:1", 1, 1, ("Instagram",)),
    AspectRatioOption("4:3", "4:3", 4, 3, ("Landscape",)),
    AspectRatioOption("16:9", "16:9", 16, 9, ("YouTube",)),
)

DEFAULT_DURATION_OPTIONS: Tuple[DurationOption, ...] = (
    DurationOption.of(5, "Standard duration"),
    DurationOption.of(10, "Extended duration"),
    DurationOption.of(3, "Quick clip"),
    DurationOption.of(8, "Medium duration"),
    DurationOption.of(12, "Maximum duration"),
)

DEFAULT_RESOLUTION_OPTIONS: Tuple[ResolutionOption, ...] = (
    ResolutionOption("480p", "480p", "Standard quality"),
    ResolutionOption("720p", "720p", "High quality"),
    ResolutionOption("1080p", "1080p", "Full HD"),
)


class OptionSet(Generic[T]):
    """An ordered, index-addressable list of options."""

    def __init__(self, options: Sequence[T]):
        self._options: Tuple[T, ...] = tuple(options)

    def __len__(self) -> int:
        return len(self._options)

    def __iter__(self) -> Iterator[T]:
        return iter(self._options)

    def __getitem__(self, index: int) -> T:
        return self._options[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OptionSet):
            return self._options == other._options
        return NotImplemented

    def __repr__(self) -> str:
        return f"OptionSet({list(self._options)!r})"

    def is_valid_index(self, index: int) -> bool:
        """Return True when ``index`` addresses an option."""
        return 0 <= index < len(self._options)

    def select(self, index: int) -> Optional[T]:
        """Return the option at ``index``, or None when out of range."""
        if not self.is_valid_index(index):
            return None
        return self._options[index]

    def safe_index(self, index: int) -> int:
        """Return ``index`` if valid, otherwise 0."""
        return index if self.is_valid_index(index) else 0

    def ids(self) -> List[str]:
        """Return the ids of all options, in order."""
        return [getattr(option, "id") for option in self._options]


@dataclass
class ModelOptions:
    """Configuration for a single model as read from ``models.yml``."""

    model_name: str
    provider_model: Optional[str] = None
    capabilities: List[str] = field(default_factory=list)
    aspect_ratios: Optional[List[AspectRatioOption]] = None
    durations: Optional[List[DurationOption]] = None
    resolutions: Optional[List[ResolutionOption]] = None
    default_duration: Optional[Decimal] = None
    audio_required: bool = False
    frame_images: bool = False
    description: Optional[str] = None


class ModelConfigurationProvider:
    """Answers per-model option and capability questions.

    Unknown models get the static default option lists and an empty
    capability list.
    """

    def __init__(
        self,
        models: Optional[Mapping[str, ModelOptions]] = None,
        motion_control_models: Optional[Sequence[str]] = None,
    ):
        """Initialize the provider.

        Args:
            models: Model options keyed by model name
            motion_control_models: Models that have a motion-control rate table
        """
        self._models: Dict[str, ModelOptions] = dict(models or {})
        self._motion_control_models = set(motion_control_models or [])

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._models

    def model_names(self) -> List[str]:
        """Return the names of all configured models."""
        return list(self._models)

    def get(self, model_name: str) -> Optional[ModelOptions]:
        """Return the raw options for a model, or None if unknown."""
        return self._models.get(model_name)

    def with_motion_control(self, model_names: Sequence[str]) -> "ModelConfigurationProvider":
        """Return a copy that knows which models support motion control."""
        return ModelConfigurationProvider(self._models, motion_control_models=model_names)

    def aspect_options(self, model_name: str) -> OptionSet[AspectRatioOption]:
        """Allowed aspect ratios, or the defaults."""
        model = self._models.get(model_name)
        return OptionSet(resolve_layered(model.aspect_ratios if model else None, default=list(DEFAULT_ASPECT_OPTIONS)))

    def duration_options(self, model_name: str) -> OptionSet[DurationOption]:
        """Allowed durations, or the defaults."""
        model = self._models.get(model_name)
        return OptionSet(resolve_layered(model.durations if model else None, default=list(DEFAULT_DURATION_OPTIONS)))

    def resolution_options(self, model_name: str) -> OptionSet[ResolutionOption]:
        """Allowed resolutions, or the defaults."""
        model = self._models.get(model_name)
        return OptionSet(
            resolve_layered(model.resolutions if model else None, default=list(DEFAULT_RESOLUTION_OPTIONS))
        )

    def capabilities(self, model_name: str) -> List[str]:
        """Capability labels such as "Text to Video" or "Audio"."""
        model = self._models.get(model_name)
        return list(model.capabilities) if model else []

    def supports_audio(self, model_name: str) -> bool:
        return "Audio" in self.capabilities(model_name)

    def audio_required(self, model_name: str) -> bool:
        """True for models that cannot generate without audio."""
        model = self._models.get(model_name)
        return bool(model and model.audio_required)

    def supports_frame_images(self, model_name: str) -> bool:
        model = self._models.get(model_name)
        return bool(model and model.frame_images)

    def supports_motion_control(self, model_name: str) -> bool:
        return model_name in self._motion_control_models

    def provider_model(self, model_name: str) -> Optional[str]:
        """Identifier the generation service uses for this model."""
        model = self._models.get(model_name)
        return model.provider_model if model else None

    def default_duration(self, model_name: str) -> Optional[Decimal]:
        """The model's preferred duration in seconds, if it has one."""
        model = self._models.get(model_name)
        return model.default_duration if model else None

    def default_duration_index(self, model_name: str) -> int:
        """Index of the model's default duration, or 0."""
        model = self._models.get(model_name)
        if model is None or model.default_duration is None:
            return 0
        for index, option in enumerate(self.duration_options(model_name)):
            if option.duration == model.default_duration:
                return index
        log_warning(
            LogEvent.SELECTION,
            "Default duration is not among the allowed durations",
            model=model_name,
            default_duration=str(model.default_duration),
        )
        return 0

    def supported_modes(self, model_name: str) -> List[GenerationMode]:
        """Generation modes that are legal for the model."""
        capabilities = self.capabilities(model_name)
        modes: List[GenerationMode] = []
        if "Text to Video" in capabilities:
            modes.append(GenerationMode.TEXT_TO_VIDEO)
        if "Image to Video" in capabilities:
            modes.append(GenerationMode.IMAGE_TO_VIDEO)
        if self.supports_frame_images(model_name):
            modes.append(GenerationMode.FRAME_IMAGES)
        if self.supports_motion_control(model_name):
            modes.append(GenerationMode.MOTION_CONTROL)
        return modes
