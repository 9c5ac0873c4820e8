from __future__ import annotations

from typing import Optional


class ProtolatorError(Exception):
    """Base class for every conversion failure raised by protolator."""


class JSONTypeError(ProtolatorError, TypeError):
    """A decoded JSON value was not of the shape a converter expected."""


class FieldConversionError(ProtolatorError):
    """
    A ProtoField failed to convert its value.

    ``key`` is set for map entries, ``index`` for slice elements; the
    rendered message follows the shape of each case so callers can tell
    them apart from the text alone.
    """

    def __init__(
        self,
        direction: str,
        label: str,
        field_name: str,
        message_type: str,
        cause: BaseException,
        *,
        key: Optional[str] = None,
        index: Optional[int] = None,
    ):
        self.direction = direction
        self.label = label
        self.field_name = field_name
        self.message_type = message_type
        self.cause = cause
        self.key = key
        self.index = index
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.key is not None:
            joiner = "with key" if self.direction == "PopulateFrom" else "and key"
            where = f"map field {self.field_name} {joiner} {self.key}"
        elif self.index is not None:
            where = f"slice field {self.field_name} at index {self.index}"
        else:
            where = f"{self.label} {self.field_name}"
        return f"error in {self.direction} for {where} for message {self.message_type}: {self.cause}"
