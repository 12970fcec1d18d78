"""Generation requests, their validation and dispatch to the generation service."""

import base64
import threading
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

import requests

from .config_paths import (
    DEFAULT_FAL_ENDPOINT,
    DEFAULT_RUNWARE_ENDPOINT,
    ENV_FAL_API_KEY,
    ENV_RUNWARE_API_KEY,
    get_fal_settings,
    get_runware_settings,
)
from .credits import CreditBalance
from .errors import DispatchError, GenerationValidationError, ValidationReason
from .logging import LogEvent, log_debug, log_error, log_info, log_warning
from .options import GenerationMode, ModelConfigurationProvider, to_seconds
from .pricing import ZERO, dimensions_for, to_money
from .resolver import PriceKind
from .selection import Selection

MAX_REFERENCE_VIDEO_SECONDS = 30

DEFAULT_TIMEOUT = 650

# Raw bytes are sent as a data URI; strings are passed through as URLs.
MediaInput = Union[bytes, str]


@dataclass
class GenerationRequest:
    """Everything needed to start one video generation.

    Attributes:
        model_name: Model name as used in the configuration
        prompt: Text prompt
        aspect_ratio: Selected aspect ratio id
        duration: Selected duration in seconds
        resolution: Selected resolution, None when the model has no variable resolution
        generate_audio: Audio toggle, None when the model has no audio
        mode: Generation mode
        reference_image: Source image for image-to-video, or the character image for motion control
        first_frame_image: First frame for frame-image generation
        last_frame_image: Optional last frame for frame-image generation
        reference_video: Driving video for motion control
        reference_video_seconds: Length of ``reference_video``
        motion_control_tier: Motion-control tier
        price: Resolved price in dollars
        provider_model: Identifier the generation service uses for the model
    """

    model_name: str
    prompt: str
    aspect_ratio: str
    duration: Decimal
    resolution: Optional[str] = None
    generate_audio: Optional[bool] = None
    mode: GenerationMode = GenerationMode.TEXT_TO_VIDEO
    reference_image: Optional[MediaInput] = None
    first_frame_image: Optional[MediaInput] = None
    last_frame_image: Optional[MediaInput] = None
    reference_video: Optional[MediaInput] = None
    reference_video_seconds: Optional[Decimal] = None
    motion_control_tier: Optional[str] = None
    price: Optional[Decimal] = None
    provider_model: Optional[str] = None


def validate_request(request: GenerationRequest, configuration: ModelConfigurationProvider) -> None:
    """Check that a request carries everything its mode needs.

    Args:
        request: The request to check
        configuration: Option configuration used for the mode check

    Raises:
        GenerationValidationError: With a user-facing message and a reason
    """
    model = request.model_name

    def fail(message: str, reason: ValidationReason) -> None:
        raise GenerationValidationError(message, reason=reason, model=model)

    if request.mode is not GenerationMode.MOTION_CONTROL and not (request.prompt or "").strip():
        fail("Please enter a prompt.", ValidationReason.EMPTY_PROMPT)

    if request.mode not in configuration.supported_modes(model):
        fail(f"{model} does not support {request.mode.value} generation.", ValidationReason.UNSUPPORTED_MODE)

    if request.mode is GenerationMode.IMAGE_TO_VIDEO and request.reference_image is None:
        fail("Please select an image to animate.", ValidationReason.MISSING_REFERENCE_IMAGE)

    if request.mode is GenerationMode.FRAME_IMAGES and request.first_frame_image is None:
        fail("Please select a first frame image.", ValidationReason.MISSING_FRAME_IMAGE)

    if request.mode is GenerationMode.MOTION_CONTROL:
        if request.reference_video is None:
            fail("Please select a reference video.", ValidationReason.MISSING_REFERENCE_VIDEO)
        if request.reference_image is None:
            fail("Please select a character image.", ValidationReason.MISSING_REFERENCE_IMAGE)
        if request.reference_video_seconds is not None:
            try:
                seconds = to_seconds(request.reference_video_seconds)
            except ValueError:
                seconds = ZERO
            if seconds <= ZERO:
                fail("The reference video has no length.", ValidationReason.INVALID_REFERENCE_VIDEO)
            if seconds > MAX_REFERENCE_VIDEO_SECONDS:
                fail(
                    f"Reference video must be {MAX_REFERENCE_VIDEO_SECONDS} seconds or shorter.",
                    ValidationReason.VIDEO_TOO_LONG,
                )


@dataclass(frozen=True)
class DispatchResult:
    """What the generation service returned for a submitted task."""

    task_id: str
    video_url: Optional[str] = None
    cost: Optional[Decimal] = None
    status: str = "success"

    @property
    def is_complete(self) -> bool:
        return self.video_url is not None


class GenerationDispatcher(Protocol):
    """Anything that can submit a request to a generation service."""

    def submit(self, request: GenerationRequest, task_id: str) -> DispatchResult:
        ...


def _media_uri(value: MediaInput, mime_type: str) -> str:
    if isinstance(value, bytes):
        return f"data:{mime_type};base64,{base64.b64encode(value).decode('ascii')}"
    return value


def _cost(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return to_money(value)
    except ValueError:
        log_warning(LogEvent.GENERATION, "Ignoring unreadable task cost", cost=value)
        return None


def _number(value: Decimal) -> Union[int, float]:
    return int(value) if value == value.to_integral_value() else float(value)


class RunwareDispatcher:
    """Submits video inference tasks to the Runware API."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_RUNWARE_ENDPOINT,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        delivery_method: str = "async",
    ):
        """Initialize the dispatcher.

        Args:
            api_key: Runware API key
            endpoint: API endpoint URL
            session: HTTP session, created if not given
            timeout: Request timeout in seconds
            delivery_method: "async" (poll with ``fetch_result``) or "sync"
        """
        if not api_key:
            raise ValueError("A Runware API key is required")
        self.api_key = api_key
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout
        self.delivery_method = delivery_method

    @classmethod
    def from_environment(cls, session: Optional[requests.Session] = None) -> "RunwareDispatcher":
        """Create a dispatcher from the VMR_RUNWARE_* environment variables.

        Raises:
            ValueError: If no API key is configured
        """
        settings = get_runware_settings()
        if not settings["api_key"]:
            raise ValueError(f"Set {ENV_RUNWARE_API_KEY} to dispatch generations")
        return cls(settings["api_key"], endpoint=settings["endpoint"] or DEFAULT_RUNWARE_ENDPOINT, session=session)

    def build_task(self, request: GenerationRequest, task_id: str) -> Dict[str, Any]:
        """Build the ``videoInference`` task for a request."""
        model_id = request.provider_model or request.model_name
        task: Dict[str, Any] = {
            "taskType": "videoInference",
            "taskUUID": task_id,
            "model": model_id,
            "duration": _number(request.duration),
            "deliveryMethod": self.delivery_method,
            "includeCost": True,
            "outputFormat": "MP4",
            "outputType": "URL",
            "numberResults": 1,
        }
        if request.prompt and request.prompt.strip():
            task["positivePrompt"] = request.prompt.strip()

        resolution = request.resolution or "720p"
        size = dimensions_for(request.aspect_ratio, resolution, model_id)
        if size is not None:
            task["width"], task["height"] = size
        else:
            log_warning(
                LogEvent.GENERATION,
                "No dimensions for selection, letting the provider choose",
                model=model_id,
                aspect_ratio=request.aspect_ratio,
                resolution=resolution,
            )

        frames: List[Dict[str, Any]] = []
        if request.mode is GenerationMode.FRAME_IMAGES:
            if request.first_frame_image is not None:
                frames.append({"inputImage": _media_uri(request.first_frame_image, "image/png"), "frame": "first"})
            if request.last_frame_image is not None:
                frames.append({"inputImage": _media_uri(request.last_frame_image, "image/png"), "frame": "last"})
        elif request.mode is GenerationMode.IMAGE_TO_VIDEO and request.reference_image is not None:
            frames.append({"inputImage": _media_uri(request.reference_image, "image/png"), "frame": "first"})
        if frames:
            task["frameImages"] = frames

        if request.generate_audio is not None:
            task["providerSettings"] = {model_id.split(":", 1)[0]: {"generateAudio": request.generate_audio}}

        return task

    def _post(self, body: List[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            response = self.session.post(self.endpoint, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise DispatchError(f"Could not reach the generation service: {e}", url=self.endpoint) from e

        if not 200 <= response.status_code < 300:
            raise DispatchError(
                f"Generation service returned HTTP {response.status_code}",
                url=self.endpoint,
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise DispatchError("Generation service returned invalid JSON", url=self.endpoint) from e
        if not isinstance(payload, dict):
            raise DispatchError("Generation service returned an unexpected payload", url=self.endpoint)
        return payload

    def _parse(self, payload: Dict[str, Any], task_id: str) -> DispatchResult:
        errors = payload.get("errors") or ([payload["error"]] if payload.get("error") else [])
        if errors:
            first = errors[0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise DispatchError(f"Generation failed: {message}", url=self.endpoint)

        items = [item for item in payload.get("data") or [] if isinstance(item, dict)]
        item = next((i for i in items if i.get("taskUUID") == task_id), items[0] if items else None)
        if item is None:
            raise DispatchError("Generation service returned no result", url=self.endpoint)

        video_url = item.get("videoURL") or item.get("videoUrl") or item.get("video_url")
        status = str(item.get("status") or ("success" if video_url else "processing"))
        if video_url is None and status not in ("processing", "pending"):
            raise DispatchError("No video URL returned", url=self.endpoint)
        cost = item.get("cost")
        return DispatchResult(
            task_id=str(item.get("taskUUID") or task_id),
            video_url=video_url,
            cost=_cost(cost),
            status=status,
        )

    def submit(self, request: GenerationRequest, task_id: str) -> DispatchResult:
        """Submit a request.

        Raises:
            DispatchError: On transport errors, non-2xx responses, service
                errors, a finished task without a video URL, or a motion-control
                request
        """
        if request.mode is GenerationMode.MOTION_CONTROL:
            raise DispatchError("Motion control is not available through Runware", url=self.endpoint)
        body = [{"taskType": "authentication", "apiKey": self.api_key}, self.build_task(request, task_id)]
        log_info(LogEvent.GENERATION, "Submitting video task", task_id=task_id, model=request.provider_model)
        return self._parse(self._post(body), task_id)

    def fetch_result(self, task_id: str) -> DispatchResult:
        """Poll the status of a task submitted with async delivery."""
        body = [
            {"taskType": "authentication", "apiKey": self.api_key},
            {"taskType": "getResponse", "taskUUID": task_id},
        ]
        return self._parse(self._post(body), task_id)


class FalAIDispatcher:
    """Submits motion-control generations to the fal.ai queue.

    The result is delivered to ``webhook_url`` when one is configured;
    ``submit`` only returns the queued request id.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_FAL_ENDPOINT,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        webhook_url: Optional[str] = None,
        character_orientation: str = "video",
        keep_original_sound: bool = True,
    ):
        """Initialize the dispatcher.

        Args:
            api_key: fal.ai API key
            endpoint: Queue URL of the motion-control application, without the tier
            session: HTTP session, created if not given
            timeout: Request timeout in seconds
            webhook_url: Where fal.ai posts the finished result
            character_orientation: Follow the orientation of the "video" or the "image"
            keep_original_sound: Keep the reference video's audio track
        """
        if not api_key:
            raise ValueError("A fal.ai API key is required")
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.webhook_url = webhook_url
        self.character_orientation = character_orientation
        self.keep_original_sound = keep_original_sound

    @classmethod
    def from_environment(cls, session: Optional[requests.Session] = None) -> "FalAIDispatcher":
        """Create a dispatcher from the VMR_FAL_* environment variables.

        Raises:
            ValueError: If no API key is configured
        """
        settings = get_fal_settings()
        if not settings["api_key"]:
            raise ValueError(f"Set {ENV_FAL_API_KEY} to dispatch motion-control generations")
        return cls(
            settings["api_key"],
            endpoint=settings["endpoint"] or DEFAULT_FAL_ENDPOINT,
            session=session,
            webhook_url=settings["webhook_url"],
        )

    def url_for(self, tier: Optional[str]) -> str:
        return f"{self.endpoint}/{tier or 'standard'}/motion-control"

    def build_body(self, request: GenerationRequest) -> Dict[str, Any]:
        """Build the JSON body for a motion-control request.

        Raises:
            ValueError: If the character image or reference video is missing
        """
        if request.reference_image is None or request.reference_video is None:
            raise ValueError("Motion control needs a character image and a reference video")
        body: Dict[str, Any] = {
            "image_url": _media_uri(request.reference_image, "image/png"),
            "video_url": _media_uri(request.reference_video, "video/mp4"),
            "character_orientation": self.character_orientation,
            "keep_original_sound": self.keep_original_sound,
        }
        if request.prompt and request.prompt.strip():
            body["prompt"] = request.prompt.strip()
        return body

    def submit(self, request: GenerationRequest, task_id: str) -> DispatchResult:
        """Queue a motion-control request.

        Raises:
            DispatchError: On transport errors, non-2xx responses or a
                request that is not motion control
        """
        if request.mode is not GenerationMode.MOTION_CONTROL:
            raise DispatchError(f"fal.ai only handles motion control, not {request.mode.value}")
        try:
            body = self.build_body(request)
        except ValueError as e:
            raise DispatchError(str(e)) from e

        url = self.url_for(request.motion_control_tier)
        params = {"fal_webhook": self.webhook_url} if self.webhook_url else None
        log_info(LogEvent.GENERATION, "Submitting motion-control task", task_id=task_id, url=url)
        try:
            response = self.session.post(
                url,
                json=body,
                params=params,
                headers={"Authorization": f"Key {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DispatchError(f"Could not reach the motion-control service: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            raise DispatchError(
                f"Motion-control service returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        # The queue answers with its own request id; keep ours if it does not
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            log_warning(LogEvent.GENERATION, "Could not read queue response, keeping task id", task_id=task_id)
            payload = {}
        request_id = payload.get("request_id") or payload.get("gateway_request_id") or payload.get("requestId")
        video = payload.get("video")
        video_url = video.get("url") if isinstance(video, dict) else None
        return DispatchResult(
            task_id=str(request_id or task_id),
            video_url=video_url,
            status="success" if video_url else "queued",
        )


class TaskStatus(str, Enum):
    """Lifecycle of a tracked generation task."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class GenerationTask:
    """A generation the coordinator is tracking."""

    task_id: str
    request: GenerationRequest
    status: TaskStatus = TaskStatus.PROCESSING
    result: Optional[DispatchResult] = None
    error: Optional[str] = None


class GenerationCoordinator:
    """Validates, prices and dispatches video generations.

    Tasks are tracked in memory until they are forgotten or pruned.
    """

    def __init__(
        self,
        registry: Any,
        dispatcher: GenerationDispatcher,
        balance: CreditBalance,
        motion_control_dispatcher: Optional[GenerationDispatcher] = None,
    ):
        """Initialize the coordinator.

        Args:
            registry: A ``VideoModelRegistry``
            dispatcher: Where validated requests are sent
            balance: The user's current balance
            motion_control_dispatcher: Where motion-control requests are sent;
                ``dispatcher`` when not given
        """
        self.registry = registry
        self.dispatcher = dispatcher
        self.motion_control_dispatcher = motion_control_dispatcher
        self.balance = balance
        self._tasks: Dict[str, GenerationTask] = {}
        self._lock = threading.RLock()

    def _check_indices(self, model_name: str, selection: Selection) -> None:
        cfg = self.registry.configuration
        checks = (
            ("aspect ratio", cfg.aspect_options(model_name), selection.aspect_index),
            ("duration", cfg.duration_options(model_name), selection.duration_index),
            ("resolution", cfg.resolution_options(model_name), selection.resolution_index),
        )
        for label, options, index in checks:
            if not options.is_valid_index(index):
                raise GenerationValidationError(
                    f"Please choose a valid {label}.",
                    reason=ValidationReason.INVALID_SELECTION,
                    model=model_name,
                )

    def build_request(
        self,
        model_name: str,
        selection: Selection,
        prompt: str,
        reference_image: Optional[MediaInput] = None,
        first_frame_image: Optional[MediaInput] = None,
        last_frame_image: Optional[MediaInput] = None,
        reference_video: Optional[MediaInput] = None,
    ) -> GenerationRequest:
        """Build and validate a request from the current selection.

        Raises:
            ModelNotSupportedError: If the model is unknown
            GenerationValidationError: If the selection or inputs are invalid
        """
        self.registry.get_model(model_name)
        self._check_indices(model_name, selection)
        cfg = self.registry.configuration
        resolutions = cfg.resolution_options(model_name)

        request = GenerationRequest(
            model_name=model_name,
            prompt=prompt,
            aspect_ratio=cfg.aspect_options(model_name)[selection.aspect_index].id,
            duration=cfg.duration_options(model_name)[selection.duration_index].duration,
            resolution=resolutions[selection.resolution_index].id,
            generate_audio=selection.audio_enabled if cfg.supports_audio(model_name) else None,
            mode=selection.mode,
            reference_image=reference_image,
            first_frame_image=first_frame_image,
            last_frame_image=last_frame_image,
            reference_video=reference_video,
            reference_video_seconds=selection.reference_video_seconds,
            motion_control_tier=selection.motion_control_tier,
            provider_model=cfg.provider_model(model_name),
        )
        validate_request(request, cfg)

        price = self.registry.resolver.resolve_price(model_name, selection)
        if price.kind is PriceKind.RATE_PENDING or price.payable_amount is None:
            raise GenerationValidationError(
                "The price cannot be determined until the reference video length is known.",
                reason=ValidationReason.PRICE_UNAVAILABLE,
                model=model_name,
            )
        return replace(request, price=price.payable_amount, motion_control_tier=price.tier or request.motion_control_tier)

    def start_video_generation(
        self,
        model_name: str,
        selection: Selection,
        prompt: str,
        reference_image: Optional[MediaInput] = None,
        first_frame_image: Optional[MediaInput] = None,
        last_frame_image: Optional[MediaInput] = None,
        reference_video: Optional[MediaInput] = None,
        on_complete: Optional[Callable[[DispatchResult], None]] = None,
        on_error: Optional[Callable[[DispatchError], None]] = None,
    ) -> str:
        """Validate, price and dispatch a generation.

        Returns:
            The task id

        Raises:
            GenerationValidationError: If the request is invalid
            InsufficientCreditsError: If the balance does not cover the price
        """
        request = self.build_request(
            model_name,
            selection,
            prompt,
            reference_image=reference_image,
            first_frame_image=first_frame_image,
            last_frame_image=last_frame_image,
            reference_video=reference_video,
        )
        self.balance.require(request.price)

        task_id = str(uuid.uuid4())
        task = GenerationTask(task_id=task_id, request=request)
        with self._lock:
            self._tasks[task_id] = task

        try:
            result = self.dispatcher_for(request).submit(request, task_id)
        except DispatchError as e:
            with self._lock:
                task.status = TaskStatus.FAILED
                task.error = str(e)
            log_error(
                LogEvent.GENERATION,
                "Video generation failed",
                task_id=task_id,
                model=model_name,
                status_code=e.status_code,
                error=str(e),
            )
            if on_error is not None:
                on_error(e)
            return task_id

        with self._lock:
            if task.status is not TaskStatus.CANCELLED:
                task.result = result
                task.status = TaskStatus.COMPLETED if result.is_complete else TaskStatus.PROCESSING
        log_info(
            LogEvent.GENERATION,
            "Video generation submitted",
            task_id=task_id,
            model=model_name,
            price=str(request.price),
            status=result.status,
        )
        if on_complete is not None:
            on_complete(result)
        return task_id

    def dispatcher_for(self, request: GenerationRequest) -> GenerationDispatcher:
        if request.mode is GenerationMode.MOTION_CONTROL and self.motion_control_dispatcher is not None:
            return self.motion_control_dispatcher
        return self.dispatcher

    def get_task(self, task_id: str) -> Optional[GenerationTask]:
        with self._lock:
            return self._tasks.get(task_id)

    def cancel(self, task_id: str) -> bool:
        """Stop tracking a task. Returns False if it is unknown or finished."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status is not TaskStatus.PROCESSING:
                return False
            task.status = TaskStatus.CANCELLED
        log_info(LogEvent.GENERATION, "Video generation cancelled", task_id=task_id)
        return True

    def active_tasks(self) -> List[GenerationTask]:
        with self._lock:
            return [t for t in self._tasks.values() if t.status is TaskStatus.PROCESSING]

    def forget(self, task_id: str) -> bool:
        """Drop a task that is no longer processing. Returns False otherwise."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status is TaskStatus.PROCESSING:
                return False
            del self._tasks[task_id]
        return True

    def prune(self) -> int:
        """Drop every task that is no longer processing.

        Returns:
            Number of tasks dropped
        """
        with self._lock:
            finished = [task_id for task_id, t in self._tasks.items() if t.status is not TaskStatus.PROCESSING]
            for task_id in finished:
                del self._tasks[task_id]
        if finished:
            log_debug(LogEvent.GENERATION, "Pruned finished tasks", count=len(finished))
        return len(finished)
