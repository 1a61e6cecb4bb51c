"""Student key type and the Student -> int table used by the demo."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .core.maps import TypedHashTable


@dataclass(frozen=True)
class Student:
    """Immutable student record; identity is name plus date of birth."""

    name: str
    date_of_birth: date
    details: str = field(default="", compare=False)


class StudentMap(TypedHashTable[Student, int]):
    """Table keyed by ``Student`` holding ``int`` values."""

    __slots__ = ()

    def __init__(self, initial_capacity: Optional[int] = None, **kwargs) -> None:
        super().__init__(Student, int, initial_capacity, **kwargs)


__all__ = ["Student", "StudentMap"]
