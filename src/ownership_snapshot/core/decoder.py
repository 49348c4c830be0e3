"""Decoding of raw contract store values into typed records."""

import json
from enum import StrEnum
from typing import Any, TypeVar, get_args, get_origin

from pydantic import BaseModel, ValidationError

from ownership_snapshot.core.errors import DecodeError, MissingQuantityError
from ownership_snapshot.core.models import is_quantity_field

T = TypeVar("T", bound=BaseModel)


class DecodeMode(StrEnum):
    """How a stored value is turned into a record."""

    # Structural decode; big integers stay as decimal strings or None
    PLAIN = "plain"
    # Typed decode; Uint128 quantities become arbitrary-precision ints
    NUMERIC = "numeric"


def _load_json(value: bytes | str | Any) -> Any:
    if isinstance(value, (bytes, bytearray, str)):
        try:
            return json.loads(value)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            msg = f"Value is not valid JSON: {e}"
            raise DecodeError(msg) from e
    # already-decoded query responses
    return value


def _field_names(shape: type[BaseModel]) -> list[str]:
    return [field.alias or name for name, field in shape.model_fields.items()]


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    """Record model inside an annotation such as `Asset`, `list[Asset]` or `Asset | None`."""
    if get_origin(annotation) is None and isinstance(annotation, type):
        return annotation if issubclass(annotation, BaseModel) else None
    for arg in get_args(annotation):
        model = _nested_model(arg)
        if model is not None:
            return model
    return None


def _is_quantity(shape: type[BaseModel], loc: tuple[int | str, ...]) -> bool:
    """True when the error location points at a Uint128 or Dec18 field."""
    model: type[BaseModel] | None = shape
    field = None
    for part in loc:
        # list indices
        if isinstance(part, int):
            continue
        if model is None or part not in model.model_fields:
            return False
        field = model.model_fields[part]
        model = _nested_model(field.annotation)
    return field is not None and is_quantity_field(field)


def decode(value: bytes | str | Any, shape: type[T], mode: DecodeMode = DecodeMode.NUMERIC) -> T | dict[str, Any]:
    """
    Decode a stored value into the given record shape.

    Unknown fields are ignored in both modes.

    Parameters
    ----------
    value : bytes | str | Any
        Raw JSON bytes from the store, or an already-parsed query response
    shape : type[BaseModel]
        Record model describing the expected fields
    mode : DecodeMode
        PLAIN returns a dict of the shape's fields with values left as parsed;
        NUMERIC returns a validated model instance

    Returns
    -------
    BaseModel | dict[str, Any]
        Decoded record

    Raises
    ------
    MissingQuantityError
        If a required quantity is null or absent (NUMERIC mode)
    DecodeError
        If the value cannot be parsed into the shape

    """
    data = _load_json(value)

    if mode == DecodeMode.PLAIN:
        if not isinstance(data, dict):
            msg = f"Expected a JSON object for {shape.__name__}, got {type(data).__name__}"
            raise DecodeError(msg)
        return {name: data.get(name) for name in _field_names(shape)}

    try:
        return shape.model_validate(data)
    except ValidationError as e:
        missing = [
            ".".join(str(part) for part in error["loc"])
            for error in e.errors()
            if error["type"] == "missing_quantity"
            or (error["type"] == "missing" and _is_quantity(shape, error["loc"]))
        ]
        if missing:
            msg = f"{shape.__name__} is missing required quantities: {', '.join(missing)}"
            raise MissingQuantityError(msg) from e
        msg = f"Cannot decode {shape.__name__}: {e}"
        raise DecodeError(msg) from e


def decode_record(value: bytes | str | Any, shape: type[T]) -> T:
    """Decode a value in NUMERIC mode; typed shorthand for `decode`."""
    return decode(value, shape, DecodeMode.NUMERIC)  # type: ignore[return-value]


def require_quantity(value: int | str | None, field: str) -> int:
    """
    Turn an optional quantity into an int, failing on null.

    Parameters
    ----------
    value : int | str | None
        Quantity as decoded in either mode
    field : str
        Field name, for the error message

    Raises
    ------
    MissingQuantityError
        If the value is None
    DecodeError
        If the value is not an unsigned integer

    """
    if value is None:
        msg = f"Required quantity '{field}' is null"
        raise MissingQuantityError(msg)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    msg = f"Quantity '{field}' is not an unsigned integer: {value!r}"
    raise DecodeError(msg)
