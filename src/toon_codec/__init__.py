"""
toon-codec - TOON encoder and decoder

TOON is a compact, line-oriented text rendering of JSON-shaped data. Arrays
of uniform objects become tables with one header, nested objects become
indented blocks, and the decoder reads it all back to the same value tree.

Usage:
    import toon_codec

    # Encode Python data to TOON
    data = {"users": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]}
    encoded = toon_codec.encode(data)

    # Decode TOON to Python data
    decoded = toon_codec.decode(encoded)

    # With options
    from toon_codec import EncodeOptions, DecodeOptions

    encoded = toon_codec.encode(data, EncodeOptions(delimiter="pipe", key_folding="safe"))
    decoded = toon_codec.decode(encoded, DecodeOptions(strict=False, expand_paths="safe"))
"""

__version__ = "0.1.0"

from .decode import decode, decode_lines
from .encode import encode, encode_lines
from .errors import (
    ArrayLengthMismatch,
    BlankLineInArrayBlock,
    DelimiterMismatch,
    InvalidEscapeSequence,
    InvalidIndentation,
    InvalidRootStructure,
    MissingSyntax,
    NestingTooDeep,
    PathConflict,
    RowWidthMismatch,
    TabInIndentation,
    ToonError,
    UnterminatedString,
)
from .flatten import flatten, has_nested_objects, unflatten
from .normalize import ToonConvertible
from .types import DecodeOptions, EncodeOptions, JsonValue
from .utils import diff, only

__all__ = [
    # Version
    "__version__",
    # Main API
    "encode",
    "encode_lines",
    "decode",
    "decode_lines",
    # Helpers
    "diff",
    "only",
    "flatten",
    "unflatten",
    "has_nested_objects",
    # Options
    "EncodeOptions",
    "DecodeOptions",
    # Types
    "JsonValue",
    "ToonConvertible",
    # Errors
    "ToonError",
    "ArrayLengthMismatch",
    "RowWidthMismatch",
    "BlankLineInArrayBlock",
    "InvalidEscapeSequence",
    "TabInIndentation",
    "InvalidIndentation",
    "UnterminatedString",
    "MissingSyntax",
    "InvalidRootStructure",
    "DelimiterMismatch",
    "PathConflict",
    "NestingTooDeep",
]
