from __future__ import annotations

"""Schema-tagged variables shared by chains and the workflows they run.

Every variable carries a `VariableSchema` tag (`string`, `number`, `boolean`, `object`, `file`,
optionally as an array). Values are checked against the tag at the mapping boundary instead of
being coerced, so a phase handing an object to a slot declared as `string` fails loudly.
"""

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Literal, Mapping, MutableMapping, Optional, get_args
from uuid import uuid4

__all__ = [
    "ChainVariable",
    "IoType",
    "ValueType",
    "VariableRole",
    "VariableSchema",
    "VariableTypeError",
    "infer_schema",
    "is_empty_value",
]

ValueType = Literal["string", "number", "boolean", "object", "file"]
IoType = Literal["input", "output"]
VariableRole = Literal["user_input", "intermediate", "final"]

_VALUE_TYPES = frozenset(get_args(ValueType))
_IO_TYPES = frozenset(get_args(IoType))
_ROLES = frozenset(get_args(VariableRole))


class VariableTypeError(ValueError):
    """Raised when a value does not match the schema tag of the variable receiving it."""


def _matches_scalar(value_type: str, value: Any) -> bool:
    if value_type == "string":
        return isinstance(value, str)
    if value_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type == "boolean":
        return isinstance(value, bool)
    if value_type == "object":
        return isinstance(value, Mapping)
    if value_type == "file":
        return isinstance(value, (Mapping, str))
    return False


def is_empty_value(value: Any) -> bool:
    """`None`, blank strings and empty containers do not satisfy a required variable."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


@dataclass(slots=True)
class VariableSchema:
    type: ValueType
    is_array: bool = False
    description: str = ""
    fields: Optional[Dict[str, "VariableSchema"]] = None

    def __post_init__(self) -> None:
        if self.type not in _VALUE_TYPES:
            raise VariableTypeError(f"unsupported variable type '{self.type}'")
        if self.fields and self.type != "object":
            raise VariableTypeError(f"nested fields are only allowed on object schemas, got '{self.type}'")

    def accepts(self, value: Any) -> bool:
        if value is None:
            return True
        if self.is_array:
            if not isinstance(value, (list, tuple)):
                return False
            return all(item is None or _matches_scalar(self.type, item) for item in value)
        return _matches_scalar(self.type, value)

    def describe(self) -> str:
        return f"{self.type}[]" if self.is_array else self.type

    def to_document(self) -> MutableMapping[str, Any]:
        doc: Dict[str, Any] = {"type": self.type, "is_array": self.is_array}
        if self.description:
            doc["description"] = self.description
        if self.fields:
            doc["fields"] = {name: sub.to_document() for name, sub in self.fields.items()}
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "VariableSchema":
        raw_fields = doc.get("fields") or None
        return cls(
            type=doc["type"],
            is_array=bool(doc.get("is_array", False)),
            description=str(doc.get("description") or ""),
            fields={name: cls.from_document(sub) for name, sub in raw_fields.items()} if raw_fields else None,
        )


def infer_schema(value: Any, *, description: str = "") -> VariableSchema:
    """Derive a schema for a value that arrives without a declared variable."""

    is_array = isinstance(value, (list, tuple))
    sample = next((item for item in value if item is not None), None) if is_array else value
    if isinstance(sample, bool):
        value_type = "boolean"
    elif isinstance(sample, (int, float)):
        value_type = "number"
    elif isinstance(sample, Mapping):
        value_type = "object"
    else:
        value_type = "string"
    return VariableSchema(type=value_type, is_array=is_array, description=description)


@dataclass(slots=True)
class ChainVariable:
    name: str
    schema: VariableSchema
    value: Any = None
    io_type: IoType = "input"
    required: bool = False
    variable_role: Optional[VariableRole] = None
    variable_id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if not self.name:
            raise VariableTypeError("variable name must not be empty")
        if self.io_type not in _IO_TYPES:
            raise VariableTypeError(f"variable '{self.name}' has unsupported io_type '{self.io_type}'")
        if self.variable_role is not None and self.variable_role not in _ROLES:
            raise VariableTypeError(f"variable '{self.name}' has unsupported role '{self.variable_role}'")
        if self.io_type != "input":
            self.required = False
        self.check(self.value)

    def check(self, value: Any) -> None:
        if not self.schema.accepts(value):
            raise VariableTypeError(
                f"variable '{self.name}' expects {self.schema.describe()}, got {type(value).__name__}"
            )

    def assign(self, value: Any) -> None:
        """Replace the value after checking it against the schema tag; no coercion."""

        self.check(value)
        self.value = value

    @property
    def is_satisfied(self) -> bool:
        return not (self.required and is_empty_value(self.value))

    def copy(self) -> "ChainVariable":
        return replace(self, schema=copy.deepcopy(self.schema), value=copy.deepcopy(self.value))

    def to_document(self) -> MutableMapping[str, Any]:
        return {
            "variable_id": self.variable_id,
            "name": self.name,
            "schema": self.schema.to_document(),
            "value": self.value,
            "io_type": self.io_type,
            "required": self.required,
            "variable_role": self.variable_role,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ChainVariable":
        return cls(
            name=str(doc["name"]),
            schema=VariableSchema.from_document(doc["schema"]),
            value=doc.get("value"),
            io_type=doc.get("io_type", "input"),
            required=bool(doc.get("required", False)),
            variable_role=doc.get("variable_role"),
            variable_id=str(doc.get("variable_id") or uuid4()),
        )
