# File: wpstudio/infrastructure/lmstudio/dto/base.py
# Purpose: Shared helpers for immutable LM Studio request/response value objects
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from wpstudio.core.exceptions import ValidationError

T = TypeVar("T", bound="DataTransferObject")

TypeSpec = Union[type, tuple[type, ...]]

SERVICE = "lmstudio"


class DataTransferObject:
    """
    Base class for LM Studio DTOs.

    Subclasses are frozen dataclasses that implement ``_from_map`` and
    ``to_map``. ``from_map`` turns missing keys and wrongly typed values into
    ValidationError so callers deal with a single failure type.
    """

    @classmethod
    def from_map(cls: Type[T], payload: Mapping[str, Any]) -> T:
        if not isinstance(payload, Mapping):
            raise ValidationError(
                f"{cls.__name__} expects a mapping payload, {type(payload).__name__} given.",
                context={"dto": cls.__name__},
                service=SERVICE,
            )
        try:
            return cls._from_map(payload)
        except ValidationError:
            raise
        except KeyError as e:
            raise ValidationError(
                f"{cls.__name__} payload is missing required field '{e.args[0]}'.",
                context={"dto": cls.__name__, "field": e.args[0]},
                service=SERVICE,
                cause=e,
            ) from e
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"{cls.__name__} payload is invalid: {e}",
                context={"dto": cls.__name__},
                service=SERVICE,
                cause=e,
            ) from e

    @classmethod
    def _from_map(cls: Type[T], payload: Mapping[str, Any]) -> T:
        raise NotImplementedError

    def to_map(self) -> dict[str, Any]:
        raise NotImplementedError


def type_name(value: Any) -> str:
    return type(value).__name__


def check_type(value: Any, expected: TypeSpec, argument: str, optional: bool = False) -> None:
    """
    Raise ValidationError unless value is an instance of expected.

    Booleans are rejected where numbers are expected.
    """
    if value is None and optional:
        return
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in expected_types:
        valid = False
    else:
        valid = isinstance(value, expected_types)
    if not valid:
        names = " | ".join(t.__name__ for t in expected_types)
        raise ValidationError(
            f"{argument} expects {names}, {type_name(value)} given.",
            context={"argument": argument, "expected": names, "actual": type_name(value)},
            service=SERVICE,
        )


def check_items(items: Any, expected: TypeSpec, argument: str) -> tuple:
    """
    Validate every element of a sequence and return it as a tuple.

    The error message reads "{argument} expects items of type {type}, {actual} given."
    """
    if not isinstance(items, (list, tuple)):
        raise ValidationError(
            f"{argument} expects a list, {type_name(items)} given.",
            context={"argument": argument, "actual": type_name(items)},
            service=SERVICE,
        )
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    for item in items:
        rejected_bool = isinstance(item, bool) and bool not in expected_types
        if rejected_bool or not isinstance(item, expected_types):
            names = " | ".join(t.__name__ for t in expected_types)
            raise ValidationError(
                f"{argument} expects items of type {names}, {type_name(item)} given.",
                context={"argument": argument, "expected": names, "actual": type_name(item)},
                service=SERVICE,
            )
    return tuple(items)


def check_non_negative(value: Optional[int], argument: str) -> None:
    check_type(value, int, argument, optional=True)
    if value is not None and value < 0:
        raise ValidationError(
            f"{argument} must be a non-negative integer, {value} given.",
            context={"argument": argument, "value": value},
            service=SERVICE,
        )


def compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in payload.items() if value is not None}
