"""
GifCodecLib - GIF bitstream decoding and encoding

This module provides the GIF data models, the LZW codec, the
bitstream decoder and the animated GIF encoder.
"""

from GR_Libs.GifCodecLib.gif_models import (
    DecodedGif,
    DisposalMethod,
    Frame,
    FrameRect,
    OutputFrame,
    RgbColor,
)
from GR_Libs.GifCodecLib.lzw import lzw_decode, lzw_encode, min_code_size_for
from GR_Libs.GifCodecLib.gif_decoder import build_patch, decode_gif
from GR_Libs.GifCodecLib.gif_encoder import GifEncoder, encode_gif, quantize_frame

__all__ = [
    "DecodedGif",
    "DisposalMethod",
    "Frame",
    "FrameRect",
    "OutputFrame",
    "RgbColor",
    "lzw_decode",
    "lzw_encode",
    "min_code_size_for",
    "build_patch",
    "decode_gif",
    "GifEncoder",
    "encode_gif",
    "quantize_frame",
]
