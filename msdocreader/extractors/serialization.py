"""
JSON-friendly (de)serialization of the extraction records.

Dataclasses become dicts tagged with their class name under ``"_type"``;
raw bytes (image data) become ``{"_bytes": <base64>}``. The tag lets
``deserialize_extraction`` rebuild the same dataclass tree.
"""

import base64
import typing
from dataclasses import fields, is_dataclass

# Type marker key used for serialization/deserialization
_TYPE_KEY = "_type"
_BYTES_KEY = "_bytes"

# Registry mapping type names to classes (populated lazily)
_TYPE_REGISTRY: dict[str, type] = {}


def _bytes_to_base64(data: bytes | bytearray) -> str:
    return base64.b64encode(bytes(data)).decode("utf-8")


def _base64_to_bytes(data: str) -> bytes:
    return base64.b64decode(data.encode("utf-8"))


def _serialize_for_json(value: typing.Any) -> typing.Any:
    if isinstance(value, (bytes, bytearray)):
        return {_BYTES_KEY: _bytes_to_base64(value)}
    if is_dataclass(value) and not isinstance(value, type):
        result = {_TYPE_KEY: type(value).__name__}
        for item in fields(value):
            result[item.name] = _serialize_for_json(getattr(value, item.name))
        return result
    if isinstance(value, dict):
        return {str(key): _serialize_for_json(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_for_json(item) for item in value]
    return value


def serialize_extraction(value: typing.Any) -> dict:
    serialized = _serialize_for_json(value)
    if isinstance(serialized, dict):
        return serialized
    return {"value": serialized}


def _get_type_registry() -> dict[str, type]:
    """Lazily populate and return the type registry."""
    if _TYPE_REGISTRY:
        return _TYPE_REGISTRY

    from msdocreader.extractors import data_types

    for name in dir(data_types):
        obj = getattr(data_types, name)
        if isinstance(obj, type) and is_dataclass(obj):
            _TYPE_REGISTRY[name] = obj

    return _TYPE_REGISTRY


def _unwrap_optional(tp: typing.Any) -> typing.Any:
    """Optional[X] -> X, anything else unchanged."""
    if typing.get_origin(tp) is typing.Union:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _deserialize_value(value: typing.Any, expected_type: typing.Any) -> typing.Any:
    if value is None:
        return None
    expected_type = _unwrap_optional(expected_type)

    if isinstance(value, dict):
        if _BYTES_KEY in value:
            return _base64_to_bytes(value[_BYTES_KEY])
        if _TYPE_KEY in value:
            return _deserialize_dataclass(value)

    origin = typing.get_origin(expected_type)
    args = typing.get_args(expected_type)

    if origin is list and isinstance(value, list):
        item_type = args[0] if args else typing.Any
        return [_deserialize_value(item, item_type) for item in value]

    if origin is tuple and isinstance(value, list):
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_deserialize_value(item, args[0]) for item in value)
        if args and len(args) == len(value):
            return tuple(
                _deserialize_value(item, tp) for item, tp in zip(value, args)
            )
        return tuple(value)

    if origin is dict and isinstance(value, dict):
        value_type = args[1] if len(args) > 1 else typing.Any
        return {k: _deserialize_value(v, value_type) for k, v in value.items()}

    if expected_type in (bytes, bytearray) and isinstance(value, str):
        return _base64_to_bytes(value)

    return value


def _deserialize_dataclass(
    data: dict, expected_class: typing.Optional[type] = None
) -> typing.Any:
    registry = _get_type_registry()

    type_name = data.get(_TYPE_KEY)
    if type_name and type_name in registry:
        cls = registry[type_name]
    elif expected_class is not None:
        cls = expected_class
    else:
        return data

    field_types = typing.get_type_hints(cls)
    kwargs = {}
    for item in fields(cls):
        if item.name in data:
            kwargs[item.name] = _deserialize_value(
                data[item.name], field_types.get(item.name, typing.Any)
            )
    return cls(**kwargs)


def deserialize_extraction(data: dict) -> typing.Any:
    """
    Rebuild the dataclass tree produced by ``serialize_extraction``.

    Args:
        data: A dictionary produced by serialize_extraction() or to_json().

    Returns:
        The restored record, typically a DocContent.

    Raises:
        ValueError: The input is not a dict or carries no type tag.

    Example:
        >>> content = read_file("report.doc")
        >>> restored = deserialize_extraction(content.to_json())
        >>> assert restored.get_full_text() == content.get_full_text()
    """
    if not isinstance(data, dict):
        raise ValueError("Input must be a dictionary")

    if _TYPE_KEY not in data:
        raise ValueError(
            f"Input dictionary must contain '{_TYPE_KEY}' key for deserialization"
        )

    return _deserialize_dataclass(data)
