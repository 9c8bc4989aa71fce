"""Contract metadata describing how data contracts travel over the wire.

A data contract's wire shape differs from its in-memory shape in a few
well-known ways: dates are ISO-8601 strings, enums are names instead of
numbers, and collections nest either of those. Each contract type gets one
ContractMetadata instance listing the fields that need translation; every
other field passes through untouched.

Field kinds form a closed set:
    PlainField: Passed through unchanged
    DateField: datetime <-> ISO-8601 string
    EnumField: number <-> enum name
    ContractField: Nested contract with its own metadata
    ArrayField: List whose items are of another field kind
    DictionaryField: Mapping whose keys and values are of other field kinds

Example:
    ```python
    from ado_rest_client.core.contracts import (
        ArrayField,
        ContractEnumMetadata,
        ContractField,
        ContractMetadata,
        DateField,
        EnumField,
    )

    BuildStatus = ContractEnumMetadata({"none": 0, "inProgress": 1, "completed": 2})
    Change = ContractMetadata({"timestamp": DateField()})

    Build = ContractMetadata(
        {
            "queueTime": DateField(),
            "status": EnumField(BuildStatus),
            "changes": ArrayField(ContractField(Change)),
        }
    )

    # Self referencing contracts are completed after creation
    Folder = ContractMetadata()
    Folder.fields["children"] = ArrayField(ContractField(Folder))
    ```
"""

import enum
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class ContractEnumMetadata:
    """
    Name to value map of one enum type.

    Attributes:
        enum_values: Enum names as declared on the server, mapped to their numbers
        is_flags: Whether values combine bitwise ("read, write")
    """

    enum_values: dict[str, int]
    is_flags: bool = False

    @classmethod
    def from_enum(cls, enum_type: type[enum.IntEnum], camel_case: bool = True) -> "ContractEnumMetadata":
        """Build metadata from a Python IntEnum/IntFlag, camelCasing member names by default."""
        values = {}
        for name, member in enum_type.__members__.items():
            if camel_case:
                head, *rest = name.lower().split("_")
                name = head + "".join(part.capitalize() for part in rest)
            values[name] = int(member.value)
        return cls(values, is_flags=issubclass(enum_type, enum.IntFlag))

    def name_for(self, value: int) -> str | None:
        """Reverse lookup of a single value."""
        for name, member_value in self.enum_values.items():
            if member_value == value:
                return name
        return None

    def value_for(self, name: str) -> int | None:
        """Case-insensitive lookup of a single name."""
        if name in self.enum_values:
            return self.enum_values[name]
        lowered = name.lower()
        for member_name, value in self.enum_values.items():
            if member_name.lower() == lowered:
                return value
        return None


@dataclass(frozen=True)
class PlainField:
    """Field passed through unchanged."""


@dataclass(frozen=True)
class DateField:
    """Field holding a datetime."""


@dataclass(frozen=True)
class EnumField:
    """Field holding an enum value."""

    enum_type: ContractEnumMetadata


@dataclass(frozen=True, eq=False)
class ContractField:
    """Field holding a nested contract."""

    metadata: "ContractMetadata"


@dataclass(frozen=True)
class ArrayField:
    """Field holding a list of items of one kind."""

    item: "FieldType"


@dataclass(frozen=True)
class DictionaryField:
    """Field holding a mapping; keys and values each have a kind."""

    key: "FieldType" = PlainField()
    value: "FieldType" = PlainField()


FieldType = Union[PlainField, DateField, EnumField, ContractField, ArrayField, DictionaryField]


@dataclass(eq=False)
class ContractMetadata:
    """
    Describes the fields of one contract type that need translation.

    Attributes:
        fields: In-memory field name mapped to its field kind
        wire_names: In-memory field name mapped to the name used on the wire,
            for contracts whose wire casing differs (e.g. PascalCase)
    """

    fields: dict[str, FieldType] = field(default_factory=dict)
    wire_names: dict[str, str] = field(default_factory=dict)

    def wire_name(self, name: str) -> str:
        return self.wire_names.get(name, name)


@dataclass(frozen=True)
class SerializationData:
    """
    Per-call bundle of request and response contract metadata.

    Attributes:
        request_type_metadata: Metadata for the request body, None for opaque JSON
        response_type_metadata: Metadata for the response body, None for opaque JSON
        response_is_collection: Unwrap {count, value} envelopes in the response
    """

    request_type_metadata: ContractMetadata | None = None
    response_type_metadata: ContractMetadata | None = None
    response_is_collection: bool = False
