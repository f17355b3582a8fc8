"""
Constants and configuration values for Gif Retouch.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the engine.
"""

# GIF container
GIF_SIGNATURE = b"GIF"
GIF_VERSIONS = (b"87a", b"89a")
GIF_OUTPUT_HEADER = b"GIF89a"

BLOCK_EXTENSION = 0x21
BLOCK_IMAGE = 0x2C
BLOCK_TRAILER = 0x3B

EXT_PLAIN_TEXT = 0x01
EXT_GRAPHIC_CONTROL = 0xF9
EXT_COMMENT = 0xFE
EXT_APPLICATION = 0xFF

LOOP_APPLICATION_IDS = (b"NETSCAPE2.0", b"ANIMEXTS1.0")

MAX_SUBBLOCK_SIZE = 255
MAX_COLOR_TABLE_SIZE = 256

# LZW
LZW_MAX_CODE_BITS = 12
LZW_MAX_CODES = 1 << LZW_MAX_CODE_BITS
LZW_MIN_CODE_SIZE = 2

# Interlaced row passes: (start row, step)
INTERLACE_PASSES = ((0, 8), (4, 8), (2, 4), (1, 2))

# Pixel buffers
RGBA_CHANNELS = 4
TRANSPARENT_PIXEL = (0, 0, 0, 0)
ALPHA_THRESHOLD = 128

# Blur settings
BLUR_TYPE_GAUSSIAN = "gaussian"
BLUR_TYPE_PIXELATED = "pixelated"
BLUR_TYPE_MOSAIC = "mosaic"
BLUR_TYPES = (BLUR_TYPE_GAUSSIAN, BLUR_TYPE_PIXELATED, BLUR_TYPE_MOSAIC)

DEFAULT_BLUR_TYPE = BLUR_TYPE_GAUSSIAN
DEFAULT_BLUR_INTENSITY = 10
MIN_BLUR_INTENSITY = 1
MAX_BLUR_INTENSITY = 50
DEFAULT_BRUSH_SIZE = 20
MIN_BRUSH_SIZE = 1
MAX_BRUSH_SIZE = 200

# Mask painting
MASK_PAINT_COLOR = (255, 255, 255, 255)
MASK_OVERLAY_COLOR = (255, 0, 0)
MASK_OVERLAY_OPACITY = 0.4

# Encoder
DEFAULT_GIF_QUALITY = 10
MIN_GIF_QUALITY = 1
MAX_GIF_QUALITY = 30
DEFAULT_GIF_DITHER = False
DEFAULT_GIF_REPEAT = 0
MAX_PALETTE_COLORS = 255
ENCODER_EVENTS = ("progress", "finished", "abort")

# Settings persistence
SETTINGS_FILE_NAME = "gif_retouch_settings.json"
SCHEMA_VERSION = 1
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_BLUR_SETTINGS = "blur_settings"
FIELD_GIF_SETTINGS = "gif_settings"
