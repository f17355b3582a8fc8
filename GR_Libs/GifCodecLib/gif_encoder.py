"""
GIF Encoder.

Serializes a sequence of frame-local RGBA frames into an animated GIF89a
stream. Every frame keeps the rectangle, delay and disposal method it is
given, so the output has the same temporal and spatial structure as the
source the frames were re-assembled from.

The encoder follows an event contract: listeners subscribe with ``on()`` to
``"progress"`` (fraction done), ``"finished"`` (GIF bytes) and ``"abort"``;
``render()`` runs the encode on a worker and returns a Future.

Palette policy:
    - At most 255 distinct opaque colors: exact palette, no color loss
    - More colors: Pillow median-cut quantization to 255 colors; ``quality``
      (1 best - 30 fastest) controls k-means refinement passes and
      ``dither`` enables Floyd-Steinberg
    - One extra slot is reserved for transparency when a frame has pixels
      with alpha below the threshold

Example:
    >>> encoder = GifEncoder(width=320, height=240, quality=10)
    >>> for frame in output_frames:
    ...     encoder.add_frame(frame)
    >>> encoder.on("finished", lambda data: Path("out.gif").write_bytes(data))
    >>> gif_bytes = encoder.render().result()
"""

import logging
import struct
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from GR_Libs.constants import (
    ALPHA_THRESHOLD,
    BLOCK_EXTENSION,
    BLOCK_IMAGE,
    BLOCK_TRAILER,
    DEFAULT_GIF_DITHER,
    DEFAULT_GIF_QUALITY,
    DEFAULT_GIF_REPEAT,
    ENCODER_EVENTS,
    EXT_APPLICATION,
    EXT_GRAPHIC_CONTROL,
    GIF_OUTPUT_HEADER,
    MAX_GIF_QUALITY,
    MAX_PALETTE_COLORS,
    MAX_SUBBLOCK_SIZE,
    MIN_GIF_QUALITY,
)
from GR_Libs.errors import EncodeAbort, PreconditionError
from GR_Libs.GifCodecLib.gif_models import OutputFrame, RgbColor
from GR_Libs.GifCodecLib.lzw import lzw_encode, min_code_size_for

logger = logging.getLogger(__name__)

EventCallback = Callable[..., Any]


def quality_to_kmeans(quality: int) -> int:
    """Map encoder quality (1 best - 30 fastest) to Pillow k-means refinement passes."""
    return max(0, (MAX_GIF_QUALITY - quality) // 10)


def quantize_frame(
    pixels: np.ndarray,
    quality: int = DEFAULT_GIF_QUALITY,
    dither: bool = DEFAULT_GIF_DITHER,
    transparent: Optional[str] = "auto",
) -> Tuple[List[RgbColor], np.ndarray, Optional[int]]:
    """
    Build a palette and index map for one RGBA frame.

    Args:
        pixels: RGBA array (h, w, 4)
        quality: Quantization quality (1-30, lower is better)
        dither: Use Floyd-Steinberg dithering when quantizing
        transparent: "auto" to map low-alpha pixels to a transparent index,
                     None to treat every pixel as opaque

    Returns:
        (palette, indices, transparent_index) where indices is a uint8
        array (h, w) and transparent_index is None when unused
    """
    height, width = pixels.shape[:2]
    rgb = np.ascontiguousarray(pixels[..., :3])

    if transparent == "auto":
        transparent_mask = pixels[..., 3] < ALPHA_THRESHOLD
    else:
        transparent_mask = np.zeros((height, width), dtype=bool)
    opaque = ~transparent_mask

    keys = (
        (rgb[..., 0].astype(np.uint32) << 16)
        | (rgb[..., 1].astype(np.uint32) << 8)
        | rgb[..., 2].astype(np.uint32)
    )
    unique_keys, inverse = np.unique(keys[opaque], return_inverse=True)

    indices = np.zeros((height, width), dtype=np.uint8)
    if len(unique_keys) <= MAX_PALETTE_COLORS:
        palette = [((k >> 16) & 0xFF, (k >> 8) & 0xFF, k & 0xFF) for k in unique_keys.tolist()]
        indices[opaque] = inverse.reshape(-1)
    else:
        image = Image.fromarray(rgb, "RGB")
        quantized = image.quantize(
            colors=MAX_PALETTE_COLORS,
            method=Image.Quantize.MEDIANCUT,
            kmeans=quality_to_kmeans(quality),
            dither=Image.Dither.FLOYDSTEINBERG if dither else Image.Dither.NONE,
        )
        indices = np.array(quantized, dtype=np.uint8)
        flat = quantized.getpalette() or []
        count = max(int(indices.max()) + 1, min(len(flat) // 3, MAX_PALETTE_COLORS))
        flat = list(flat) + [0] * max(0, count * 3 - len(flat))
        palette = [tuple(flat[i * 3:i * 3 + 3]) for i in range(count)]

    transparent_index = None
    if transparent_mask.any():
        transparent_index = len(palette)
        palette.append((0, 0, 0))
        indices[transparent_mask] = transparent_index

    if not palette:
        palette = [(0, 0, 0)]
    return palette, indices, transparent_index


def _u16(value: int) -> bytes:
    return struct.pack("<H", max(0, min(0xFFFF, int(value))))


def _subblocks(data: bytes) -> bytes:
    out = bytearray()
    for start in range(0, len(data), MAX_SUBBLOCK_SIZE):
        chunk = data[start:start + MAX_SUBBLOCK_SIZE]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def _color_table_bytes(palette: Sequence[RgbColor]) -> Tuple[int, bytes]:
    size_bits = max(1, (len(palette) - 1).bit_length())
    table = bytearray()
    for color in palette:
        table += bytes(int(c) & 0xFF for c in color)
    table += bytes(((1 << size_bits) - len(palette)) * 3)
    return size_bits, bytes(table)


class GifEncoder:
    """
    Animated GIF writer with gif.js-style events.

    Attributes:
        width: Logical screen width
        height: Logical screen height
        quality: Quantization quality (1 best - 30 fastest)
        dither: Floyd-Steinberg dithering when quantizing
        repeat: Loop count; 0 loops forever, -1 writes no loop extension
        transparent: "auto" or None
    """

    def __init__(
        self,
        width: int,
        height: int,
        quality: int = DEFAULT_GIF_QUALITY,
        dither: bool = DEFAULT_GIF_DITHER,
        repeat: int = DEFAULT_GIF_REPEAT,
        transparent: Optional[str] = "auto",
        executor: Optional[Executor] = None,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"width and height must be > 0, got {width}x{height}")
        if not (MIN_GIF_QUALITY <= quality <= MAX_GIF_QUALITY):
            raise ValueError(f"quality must be {MIN_GIF_QUALITY}-{MAX_GIF_QUALITY}, got {quality}")
        if transparent not in ("auto", None):
            raise ValueError(f"transparent must be 'auto' or None, got {transparent!r}")

        self.width = int(width)
        self.height = int(height)
        self.quality = int(quality)
        self.dither = bool(dither)
        self.repeat = int(repeat)
        self.transparent = transparent
        self._executor = executor
        self._frames: List[OutputFrame] = []
        self._listeners: Dict[str, List[EventCallback]] = {event: [] for event in ENCODER_EVENTS}
        self._abort_requested = threading.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def add_frame(self, frame: OutputFrame) -> None:
        if not isinstance(frame, OutputFrame):
            raise TypeError(f"Expected OutputFrame, got {type(frame)}")
        self._frames.append(frame)

    def on(self, event: str, callback: EventCallback) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown encoder event: {event}. Valid events: {', '.join(ENCODER_EVENTS)}")
        if not callable(callback):
            raise ValueError(f"callback must be callable, got {type(callback)}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    def abort(self) -> None:
        """Request the running render to stop before its next frame."""
        if self._running:
            self._abort_requested.set()

    def render(self) -> "Future[bytes]":
        """
        Start encoding on a worker.

        Returns:
            Future resolving to the GIF bytes, or raising EncodeAbort

        Raises:
            PreconditionError: If already running or no frames were added
        """
        if self._running:
            raise PreconditionError("encoder is already running")
        if not self._frames:
            raise PreconditionError("no frames to encode")

        self._abort_requested.clear()
        self._running = True

        if self._executor is not None:
            return self._executor.submit(self._render_frames)

        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(self._render_frames)
        pool.shutdown(wait=False)
        return future

    def _render_frames(self) -> bytes:
        total = len(self._frames)
        try:
            chunks = [self._header()]
            for number, frame in enumerate(self._frames):
                if self._abort_requested.is_set():
                    raise EncodeAbort(f"GIF rendering aborted before frame {number}")
                chunks.append(self._encode_frame(frame))
                self._emit("progress", (number + 1) / total)
            if self._abort_requested.is_set():
                raise EncodeAbort("GIF rendering aborted")
            chunks.append(bytes((BLOCK_TRAILER,)))
        except EncodeAbort as e:
            self._running = False
            logger.error(str(e))
            self._emit("abort")
            raise
        except Exception:
            self._running = False
            raise

        data = b"".join(chunks)
        self._running = False
        logger.info(f"Encoded {total} frame(s) into {len(data)} bytes")
        self._emit("finished", data)
        return data

    def _header(self) -> bytes:
        out = bytearray(GIF_OUTPUT_HEADER)
        # no global color table, 8-bit color resolution
        out += struct.pack("<2H3B", self.width, self.height, 0x70, 0, 0)
        if self.repeat >= 0:
            out += bytes((BLOCK_EXTENSION, EXT_APPLICATION, 11)) + b"NETSCAPE2.0"
            out += bytes((3, 1)) + _u16(self.repeat) + b"\x00"
        return bytes(out)

    def _encode_frame(self, frame: OutputFrame) -> bytes:
        palette, indices, transparent_index = quantize_frame(
            frame.pixels, self.quality, self.dither, self.transparent
        )
        size_bits, color_table = _color_table_bytes(palette)
        min_code_size = min_code_size_for(1 << size_bits)

        packed = (int(frame.disposal) & 0b111) << 2
        if transparent_index is not None:
            packed |= 0b1

        out = bytearray((BLOCK_EXTENSION, EXT_GRAPHIC_CONTROL, 4, packed))
        out += _u16(frame.delay)
        out += bytes((transparent_index or 0, 0))

        rect = frame.rect
        out += struct.pack("<B4HB", BLOCK_IMAGE, rect.left, rect.top, rect.width, rect.height, 0x80 | (size_bits - 1))
        out += color_table
        out.append(min_code_size)
        out += _subblocks(lzw_encode(indices.tobytes(), min_code_size))
        return bytes(out)


def encode_gif(
    frames: Sequence[OutputFrame],
    width: int,
    height: int,
    settings: Optional[Any] = None,
    on_encoder: Optional[Callable[[GifEncoder], None]] = None,
) -> bytes:
    """
    Encode frames synchronously.

    Args:
        frames: Re-assembled output frames
        width: Logical screen width
        height: Logical screen height
        settings: Object with ``quality``, ``dither`` and ``repeat``
                  attributes (e.g. GifSettings); defaults when None
        on_encoder: Called with the encoder before rendering starts, so the
                    caller can subscribe to its events or abort it

    Raises:
        PreconditionError: If frames is empty
        EncodeAbort: If the encoder aborted
    """
    encoder = GifEncoder(
        width,
        height,
        quality=getattr(settings, "quality", DEFAULT_GIF_QUALITY),
        dither=getattr(settings, "dither", DEFAULT_GIF_DITHER),
        repeat=getattr(settings, "repeat", DEFAULT_GIF_REPEAT),
    )
    for frame in frames:
        encoder.add_frame(frame)
    if on_encoder is not None:
        on_encoder(encoder)
    return encoder.render().result()
