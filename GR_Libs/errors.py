"""
Error taxonomy for Gif Retouch.

Each class maps to one generic, user-facing message (``user_message``);
the exception text itself carries the technical detail for logs.

Classes:
    GifRetouchError: Common base class
    DecodeError: Malformed, truncated or unsupported GIF input
    LzwError: Invalid LZW code stream inside one image block
    ExtractionError: No composited frame survived extraction
    PreconditionError: Operation requested in an invalid state (caller bug)
    EncodeAbort: The encoder signalled an abort
"""


class GifRetouchError(Exception):
    user_message = "Something went wrong while editing the GIF."


class DecodeError(GifRetouchError, ValueError):
    user_message = "The GIF is corrupted or unsupported."


class LzwError(DecodeError):
    pass


class ExtractionError(GifRetouchError):
    user_message = "No frames could be extracted from the GIF."


class PreconditionError(GifRetouchError):
    user_message = "The editor is not ready for this action."


class EncodeAbort(GifRetouchError):
    user_message = "Rendering the GIF was aborted. Please try again."
