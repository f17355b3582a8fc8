"""
Editor Session.

Owns everything one editing round needs: the working GIF, its composited
frames (canonical and pristine), the mask, the settings, the encoded output
and the undo history.

State machine:
    EMPTY -> DECODED -> COMPOSITED -> {MASKED <-> PREVIEWED} -> COMMITTED -> ENCODED

    - Every paint re-renders the preview (MASKED -> PREVIEWED)
    - commit() is the only step that rewrites the canonical frames
    - undo() leaves ENCODED for COMPOSITED with the previous GIF
    - load_gif() and release() are accepted in every state

Heavy work runs synchronously on the caller's thread. ``load_gif_async``
moves decoding and compositing to an executor; its result is installed with
``complete_load`` on the caller's thread, and only the most recently
requested load is accepted.

Example:
    >>> session = EditorSession(load_session_config(path))
    >>> session.load_gif(Path("in.gif").read_bytes())
    >>> session.paint_stroke([(40, 40), (80, 60)])
    >>> session.commit()
    >>> Path("out.gif").write_bytes(session.encode())
"""

import logging
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np
from PIL import Image

from GR_Libs.constants import MASK_OVERLAY_COLOR, MASK_OVERLAY_OPACITY
from GR_Libs.errors import EncodeAbort, PreconditionError
from GR_Libs.FrameLib.compositor import extract_gif_frames
from GR_Libs.FrameLib.frame_models import CompositedFrame, ExtractionResult, OriginalGifData
from GR_Libs.FrameLib.reassembler import reconstruct_gif
from GR_Libs.GifCodecLib.gif_encoder import GifEncoder
from GR_Libs.ImageEditingLib.image_models import Point, ViewportRect
from GR_Libs.ImageEditingLib.mask_engine import MaskBuffer, render_mask_overlay, viewport_to_canvas
from GR_Libs.ImageEditingLib.pixel_transforms import preview_frame, process_all_frames
from GR_Libs.ImageEditingLib.transform_registry import TransformRegistry
from GR_Libs.SessionLib.settings_store import (
    BlurSettings,
    GifSettings,
    SessionConfig,
    settings_field_names,
)

logger = logging.getLogger(__name__)

TargetSize = Optional[Tuple[int, int]]


class SessionState(str, Enum):
    EMPTY = "empty"
    DECODED = "decoded"
    COMPOSITED = "composited"
    MASKED = "masked"
    PREVIEWED = "previewed"
    COMMITTED = "committed"
    ENCODED = "encoded"


_EDITING_STATES = frozenset({
    SessionState.COMPOSITED,
    SessionState.MASKED,
    SessionState.PREVIEWED,
    SessionState.COMMITTED,
    SessionState.ENCODED,
})

_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.EMPTY: frozenset(),
    SessionState.DECODED: frozenset({SessionState.COMPOSITED}),
    SessionState.COMPOSITED: _EDITING_STATES,
    SessionState.MASKED: _EDITING_STATES,
    SessionState.PREVIEWED: _EDITING_STATES,
    SessionState.COMMITTED: _EDITING_STATES,
    SessionState.ENCODED: _EDITING_STATES,
}


class RequestTracker:
    """Generation counter giving last-requested-wins ordering."""

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def current(self) -> int:
        with self._lock:
            return self._generation

    def begin(self) -> int:
        """Start a request, superseding every earlier one."""
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation


@dataclass(frozen=True)
class PendingLoad:
    """Result of a background load, waiting to be installed."""
    token: int
    data: bytes
    target_size: TargetSize
    extraction: ExtractionResult


class EditorSession:
    """
    One editing session over one animated GIF at a time.

    Attributes:
        config: Settings passed in at construction (copied)
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        registry: Optional[TransformRegistry] = None,
    ):
        self.config = config.copy() if config is not None else SessionConfig()
        self._registry = registry
        self._requests = RequestTracker()
        self._reset()

    def _reset(self) -> None:
        self._state = SessionState.EMPTY
        self._frames: List[np.ndarray] = []
        self._pristine: List[np.ndarray] = []
        self._original: Optional[OriginalGifData] = None
        self._mask: Optional[MaskBuffer] = None
        self._current_index = 0
        self._preview: Optional[np.ndarray] = None
        self._current_output: Optional[bytes] = None
        self._history: List[bytes] = []
        self._target_size: TargetSize = None
        self._encoder: Optional[GifEncoder] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def blur_settings(self) -> BlurSettings:
        return self.config.blur

    @property
    def gif_settings(self) -> GifSettings:
        return self.config.gif

    @property
    def frames(self) -> List[CompositedFrame]:
        """Canonical composited frames (live buffers)."""
        return list(self._frames)

    @property
    def pristine_frames(self) -> List[CompositedFrame]:
        return list(self._pristine)

    @property
    def original_gif_data(self) -> Optional[OriginalGifData]:
        return self._original

    @property
    def mask(self) -> Optional[MaskBuffer]:
        return self._mask

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def preview_output(self) -> Optional[np.ndarray]:
        return self._preview

    @property
    def current_output(self) -> Optional[bytes]:
        """Latest successfully encoded GIF, or None."""
        return self._current_output

    @property
    def history(self) -> Tuple[bytes, ...]:
        """Source GIF followed by every encoded output, oldest first."""
        return tuple(self._history)

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise PreconditionError(f"cannot go from {self._state.value} to {target.value}")
        if target != self._state:
            logger.debug(f"Session state {self._state.value} -> {target.value}")
        self._state = target

    def _require_loaded(self) -> None:
        if self._state not in _EDITING_STATES:
            raise PreconditionError(f"no GIF loaded (state: {self._state.value})")

    def _check_index(self, index: int) -> int:
        if not (0 <= index < len(self._frames)):
            raise IndexError(f"frame index {index} out of range 0-{len(self._frames) - 1}")
        return index

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _extract(data: bytes, target_size: TargetSize) -> ExtractionResult:
        width, height = target_size if target_size is not None else (None, None)
        return extract_gif_frames(data, width, height)

    def _install(
        self,
        data: bytes,
        extraction: ExtractionResult,
        target_size: TargetSize,
        history: List[bytes],
    ) -> None:
        # release the previous round's buffers before taking the new ones
        self._frames.clear()
        self._pristine.clear()
        self._preview = None

        self._state = SessionState.DECODED
        self._original = extraction.original_gif_data
        self._target_size = target_size
        self._pristine = [frame.copy() for frame in extraction.extracted_frames]
        self._frames = list(extraction.extracted_frames)
        height, width = self._frames[0].shape[:2]
        self._mask = MaskBuffer(width, height)
        self._current_index = 0
        self._history = history
        self._current_output = history[-1] if len(history) > 1 else None
        self._transition(SessionState.COMPOSITED)
        logger.debug(f"Session holds {len(self._frames)} frame(s) at {width}x{height}")

    def load_gif(self, data: bytes, target_size: TargetSize = None) -> int:
        """
        Decode and composite a GIF, replacing the current one.

        Args:
            data: GIF file contents
            target_size: Optional (width, height) for the composited frames

        Returns:
            Number of composited frames

        Raises:
            DecodeError: If the GIF cannot be decoded
            ExtractionError: If no frame survives
        """
        self._requests.begin()
        extraction = self._extract(data, target_size)
        self._install(bytes(data), extraction, target_size, [bytes(data)])
        return len(self._frames)

    def load_gif_async(
        self,
        data: bytes,
        executor: Executor,
        target_size: TargetSize = None,
    ) -> "Future[PendingLoad]":
        """
        Decode and composite on an executor.

        Pass the future's result to ``complete_load``; only the most
        recently requested load is installed.
        """
        token = self._requests.begin()
        data = bytes(data)

        def _work() -> PendingLoad:
            return PendingLoad(token, data, target_size, self._extract(data, target_size))

        return executor.submit(_work)

    def complete_load(self, pending: PendingLoad) -> bool:
        """
        Install a finished background load.

        Returns:
            True if installed, False if a newer request superseded it
        """
        if not self._requests.is_current(pending.token):
            logger.warning(f"Discarding stale load result (request {pending.token})")
            return False
        self._install(pending.data, pending.extraction, pending.target_size, [pending.data])
        return True

    def release(self) -> None:
        """Drop all frames, the mask and the history."""
        self._requests.begin()
        self._frames.clear()
        self._pristine.clear()
        self._history.clear()
        self._reset()
        logger.debug("Session released")

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def select_frame(self, index: int) -> None:
        self._require_loaded()
        self._current_index = self._check_index(index)
        self._preview = None

    def _after_paint(self, added: int) -> int:
        if self._mask.is_empty():
            return added
        self._transition(SessionState.MASKED)
        self.preview()
        return added

    def paint(self, point: Point, radius: Optional[float] = None) -> int:
        """
        Paint a brush circle and refresh the preview.

        Args:
            point: (x, y) in canvas pixel coordinates
            radius: Brush radius (default: brush size / 2)

        Returns:
            Number of newly masked pixels
        """
        self._require_loaded()
        if radius is None:
            radius = self.config.blur.brush_radius
        return self._after_paint(self._mask.paint(point, radius))

    def paint_viewport(
        self,
        point: Point,
        rendered_rect: ViewportRect,
        radius: Optional[float] = None,
    ) -> int:
        """Paint at a pointer position given in display coordinates."""
        self._require_loaded()
        canvas_point = viewport_to_canvas(point, rendered_rect, self._mask.size)
        return self.paint(canvas_point, radius)

    def paint_stroke(self, points: Iterable[Point], radius: Optional[float] = None) -> int:
        self._require_loaded()
        if radius is None:
            radius = self.config.blur.brush_radius
        return self._after_paint(self._mask.paint_stroke(points, radius))

    def preview(self, index: Optional[int] = None) -> np.ndarray:
        """
        Render a masked transform of one canonical frame on a scratch copy.

        Args:
            index: Frame to preview (default: the selected frame)

        Returns:
            The preview frame; the canonical frame is not modified
        """
        self._require_loaded()
        index = self._current_index if index is None else self._check_index(index)
        self._preview = preview_frame(
            self._frames[index], self._mask, self.config.blur, registry=self._registry
        )
        self._transition(SessionState.PREVIEWED)
        return self._preview

    def commit(self) -> int:
        """
        Apply the masked transform to every canonical frame.

        Returns:
            Number of frames processed
        """
        self._require_loaded()
        process_all_frames(
            self._frames, self._mask, self.config.blur, in_place=True, registry=self._registry
        )
        self._preview = None
        self._transition(SessionState.COMMITTED)
        logger.debug(f"Committed {self.config.blur.blur_type} to {len(self._frames)} frame(s)")
        return len(self._frames)

    def clear_mask(self) -> None:
        """Clear the mask and restore every frame to its pristine composite."""
        self._require_loaded()
        self._mask.clear()
        self._frames = [frame.copy() for frame in self._pristine]
        self._preview = None
        self._transition(SessionState.COMPOSITED)

    def update_blur_settings(self, **changes) -> BlurSettings:
        """
        Change blur settings.

        Raises:
            ValueError: On unknown fields or invalid values
            TypeError: On values of the wrong type
        """
        unknown = set(changes) - set(settings_field_names(BlurSettings))
        if unknown:
            raise ValueError(f"Unknown blur settings: {', '.join(sorted(unknown))}")
        self.config.blur = replace(self.config.blur, **changes).validate()
        if self._state == SessionState.PREVIEWED:
            self.preview()
        return self.config.blur

    def update_gif_settings(self, **changes) -> GifSettings:
        unknown = set(changes) - set(settings_field_names(GifSettings))
        if unknown:
            raise ValueError(f"Unknown GIF settings: {', '.join(sorted(unknown))}")
        self.config.gif = replace(self.config.gif, **changes).validate()
        return self.config.gif

    def overlay_image(
        self,
        color=MASK_OVERLAY_COLOR,
        opacity: float = MASK_OVERLAY_OPACITY,
    ) -> Image.Image:
        """The selected frame (or its preview) with the mask tinted on top."""
        self._require_loaded()
        frame = self._preview if self._preview is not None else self._frames[self._current_index]
        return render_mask_overlay(frame, self._mask, color, opacity)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def encode(self, on_progress: Optional[Callable[[float], None]] = None) -> bytes:
        """
        Re-assemble and encode the canonical frames.

        On success the GIF becomes the current output and is added to the
        history, and the mask is cleared. ``cancel_encode`` stops a running
        encode, from another thread or from ``on_progress``.

        Args:
            on_progress: Called with the encoded fraction (0-1] after each frame

        Raises:
            EncodeAbort: If the encoder aborted; the session is unchanged
            PreconditionError: If no GIF is loaded
        """
        self._require_loaded()

        def _attach(encoder: GifEncoder) -> None:
            if on_progress is not None:
                encoder.on("progress", on_progress)
            self._encoder = encoder

        try:
            data = reconstruct_gif(self._frames, self._original, self.config.gif, on_encoder=_attach)
        except EncodeAbort:
            logger.warning("Encoding aborted; keeping previous output")
            raise
        finally:
            self._encoder = None

        self._current_output = data
        self._history.append(data)
        self._mask.clear()
        self._preview = None
        self._transition(SessionState.ENCODED)
        return data

    def cancel_encode(self) -> bool:
        """
        Abort the running encode.

        Returns:
            True if an encode was running and has been asked to stop
        """
        encoder = self._encoder
        if encoder is None or not encoder.running:
            return False
        encoder.abort()
        logger.info("Encode cancel requested")
        return True

    def undo(self) -> bool:
        """
        Go back to the previous GIF in the history.

        Returns:
            False when only the source GIF remains, True otherwise
        """
        self._require_loaded()
        if len(self._history) <= 1:
            return False

        previous = self._history[-2]
        extraction = self._extract(previous, self._target_size)
        self._requests.begin()
        self._install(previous, extraction, self._target_size, self._history[:-1])
        return True
