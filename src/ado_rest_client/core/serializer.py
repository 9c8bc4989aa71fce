"""Contract serializer converting between wire JSON and in-memory values.

The serializer walks a value against ContractMetadata and translates only the
fields the metadata declares: dates, enums and the collections and nested
contracts that contain them. Everything else passes through, so a server that
adds fields or enum members never breaks the client.

Directions:
    serialize: datetime -> ISO-8601 string, enum number -> enum name
    deserialize: ISO-8601 string -> datetime, enum name -> enum number,
        optionally unwrapping {"count": N, "value": [...]} envelopes

Failure policy:
    The walker never raises on malformed input. A value that does not have
    the shape the metadata expects is logged at debug level and returned
    unchanged.

Example:
    ```python
    from ado_rest_client.core.contracts import ContractEnumMetadata, ContractMetadata, DateField, EnumField
    from ado_rest_client.core.serializer import ContractSerializer

    Change = ContractMetadata(
        {
            "changeType": EnumField(ContractEnumMetadata({"add": 0, "remove": 1})),
            "timestamp": DateField(),
        }
    )

    wire = {"changeType": "Remove", "timestamp": "2024-03-01T10:00:00.1234567Z"}
    change = ContractSerializer.deserialize(wire, Change)
    # {"changeType": 1, "timestamp": datetime(2024, 3, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)}

    ContractSerializer.serialize(change, Change, preserve_original=True)
    # {"changeType": "remove", "timestamp": "2024-03-01T10:00:00.123456+00:00"}
    ```
"""

import copy
import dataclasses
import logging
import re
from datetime import datetime
from typing import Any

from ado_rest_client.core.contracts import (
    ArrayField,
    ContractEnumMetadata,
    ContractField,
    ContractMetadata,
    DateField,
    DictionaryField,
    EnumField,
    FieldType,
    PlainField,
)

# Servers emit 1 to 7 fractional digits; datetime.fromisoformat on 3.10 needs exactly 3 or 6
_FRACTION = re.compile(r"\.(\d+)")


def serialize(data: Any, metadata: ContractMetadata | None, preserve_original: bool = False) -> Any:
    """
    Convert an in-memory value to its wire representation.

    Args:
        data: A contract (dict or dataclass instance) or a list of contracts
        metadata: Contract metadata, None to pass the value through
        preserve_original: Deep copy the input before translating it

    Returns:
        The translated value. Without preserve_original the input graph itself
        is modified and returned.
    """
    if data is None or metadata is None:
        return data
    if preserve_original:
        data = copy.deepcopy(data)
    if isinstance(data, list):
        for index, item in enumerate(data):
            data[index] = _translate_contract(item, metadata, serializing=True)
        return data
    return _translate_contract(data, metadata, serializing=True)


def deserialize(
    data: Any,
    metadata: ContractMetadata | None,
    preserve_original: bool = False,
    unwrap_wrapped_collections: bool = False,
) -> Any:
    """
    Convert a wire value to its in-memory representation.

    Args:
        data: Parsed JSON
        metadata: Contract metadata, None to pass the value through
        preserve_original: Deep copy the input before translating it
        unwrap_wrapped_collections: Replace a {"count": N, "value": [...]}
            envelope with its value list

    Returns:
        The translated value.
    """
    if data is None:
        return data
    if unwrap_wrapped_collections and is_wrapped_collection(data):
        data = data["value"]
    if metadata is None:
        return data
    if preserve_original:
        data = copy.deepcopy(data)
    if isinstance(data, list):
        for index, item in enumerate(data):
            data[index] = _translate_contract(item, metadata, serializing=False)
        return data
    return _translate_contract(data, metadata, serializing=False)


def is_wrapped_collection(data: Any) -> bool:
    """Check for the {"count": N, "value": [...]} collection envelope."""
    if not isinstance(data, dict):
        return False
    count = data.get("count")
    return isinstance(count, int) and not isinstance(count, bool) and isinstance(data.get("value"), list)


def enum_to_string(enum_type: ContractEnumMetadata, value: int, upper_first: bool = False) -> str | None:
    """
    Convert a numeric enum value to its declared name.

    Used to build query string filters the server expects as names. Flags
    values that match no single member are spelled as their member names
    joined by commas.

    Args:
        enum_type: Enum metadata
        value: Numeric enum value
        upper_first: Capitalize the first letter of each name

    Returns:
        The name, or None when the value has no declared name.
    """
    names = _enum_names(enum_type, value)
    if not names:
        return None
    if upper_first:
        names = [name[:1].upper() + name[1:] for name in names]
    return ",".join(names)


class ContractSerializer:
    """Namespace for the serializer entry points used by generated clients."""

    serialize = staticmethod(serialize)
    deserialize = staticmethod(deserialize)


def _translate_contract(value: Any, metadata: ContractMetadata, serializing: bool) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if not isinstance(value, dict):
        logging.debug("serializer: expected a contract object, got %s", type(value).__name__)
        return value

    for name, field_type in metadata.fields.items():
        source, target = (name, metadata.wire_name(name)) if serializing else (metadata.wire_name(name), name)
        if source not in value:
            continue
        try:
            translated = _translate_field(value[source], field_type, serializing)
        except Exception:  # noqa: BLE001
            logging.debug("serializer: leaving field '%s' untranslated", source, exc_info=True)
            continue
        if source != target:
            del value[source]
        value[target] = translated
    return value


def _translate_field(value: Any, field_type: FieldType, serializing: bool) -> Any:  # noqa: PLR0911
    if value is None or isinstance(field_type, PlainField):
        return value
    if isinstance(field_type, DateField):
        return _translate_date(value, serializing)
    if isinstance(field_type, EnumField):
        return _translate_enum(value, field_type.enum_type, serializing)
    if isinstance(field_type, ContractField):
        return _translate_contract(value, field_type.metadata, serializing)
    if isinstance(field_type, ArrayField):
        if not isinstance(value, list):
            logging.debug("serializer: expected a list, got %s", type(value).__name__)
            return value
        for index, item in enumerate(value):
            value[index] = _translate_field(item, field_type.item, serializing)
        return value
    if isinstance(field_type, DictionaryField):
        if not isinstance(value, dict):
            logging.debug("serializer: expected a dictionary, got %s", type(value).__name__)
            return value
        return {
            _translate_field(key, field_type.key, serializing): _translate_field(item, field_type.value, serializing)
            for key, item in value.items()
        }
    return value


def _translate_date(value: Any, serializing: bool) -> Any:
    if serializing:
        return value.isoformat() if isinstance(value, datetime) else value
    if not isinstance(value, str):
        return value
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logging.debug("serializer: '%s' is not an ISO-8601 date", value)
        return value


def _translate_enum(value: Any, enum_type: ContractEnumMetadata, serializing: bool) -> Any:
    if serializing:
        if not isinstance(value, int) or isinstance(value, bool):
            return value
        names = _enum_names(enum_type, int(value))
        return ", ".join(names) if names else value

    if not isinstance(value, str):
        return value
    parts = [part.strip() for part in value.split(",") if part.strip()]
    if not parts:
        return value
    if len(parts) > 1 and not enum_type.is_flags:
        single = enum_type.value_for(value)
        return value if single is None else single
    result = 0
    for part in parts:
        part_value = enum_type.value_for(part)
        if part_value is None:
            logging.debug("serializer: unknown enum value '%s'", part)
            return value
        result |= part_value
    return result


def _enum_names(enum_type: ContractEnumMetadata, value: int) -> list[str]:
    name = enum_type.name_for(value)
    if name is not None:
        return [name]
    if not enum_type.is_flags or value <= 0:
        return []
    names = []
    remaining = value
    for member_name, member_value in enum_type.enum_values.items():
        if member_value and member_value & remaining == member_value:
            names.append(member_name)
            remaining &= ~member_value
    return names if remaining == 0 else []
