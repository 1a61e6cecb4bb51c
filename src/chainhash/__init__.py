"""Separate-chaining hash table with load-factor driven growth."""

from . import contracts, core
from .contracts.error import IndexOutOfRangeError, InvalidArgumentError, TypeMismatchError
from .core.maps import DEFAULT_INITIAL_CAPACITY, DEFAULT_LOAD_FACTOR, HashTable, TypedHashTable

__all__ = [
    "contracts",
    "core",
    "DEFAULT_INITIAL_CAPACITY",
    "DEFAULT_LOAD_FACTOR",
    "HashTable",
    "TypedHashTable",
    "IndexOutOfRangeError",
    "InvalidArgumentError",
    "TypeMismatchError",
]
