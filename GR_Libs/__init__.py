"""
GR_Libs - Gif Retouch Library Modules

This package contains the animated GIF retouching engine, organized into
specialized sub-packages:

- GifCodecLib: GIF bitstream decoding, LZW coding and encoding
- FrameLib: Disposal-aware compositing and frame re-assembly
- ImageEditingLib: Mask painting and masked pixel transforms
- SessionLib: Persisted settings and the editor session state machine
"""

__version__ = "0.1.0"
