"""Error contracts shared by the chainhash core and CLI."""

from .error import (
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    TypeMismatchError,
    die,
    guard_cli,
)

__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvariantError",
    "PolicyError",
    "IOErrorEnvelope",
    "InvalidArgumentError",
    "TypeMismatchError",
    "IndexOutOfRangeError",
    "guard_cli",
    "die",
]
