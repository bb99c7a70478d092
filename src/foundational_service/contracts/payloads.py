"""Pydantic DTOs for variables supplied from outside the process (UI forms, JSON, YAML).

Callers may hand the orchestrator either `ChainVariable` instances or loosely-typed mappings; the
mappings are validated here and converted into the schema-tagged domain type. camelCase keys from
browser clients are accepted alongside snake_case.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from foundational_service.contracts.variables import ChainVariable, VariableSchema, VariableTypeError

__all__ = [
    "ChainVariablePayload",
    "VariableSchemaPayload",
    "normalize_variables",
]


class VariableSchemaPayload(BaseModel):
    type: Literal["string", "number", "boolean", "object", "file"]
    is_array: bool = Field(default=False, alias="isArray")
    description: str = ""
    fields: Optional[Dict[str, "VariableSchemaPayload"]] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_domain(self) -> VariableSchema:
        return VariableSchema(
            type=self.type,
            is_array=self.is_array,
            description=self.description,
            fields={name: sub.to_domain() for name, sub in self.fields.items()} if self.fields else None,
        )


class ChainVariablePayload(BaseModel):
    name: str = Field(min_length=1)
    var_schema: VariableSchemaPayload = Field(alias="schema")
    value: Any = None
    io_type: Literal["input", "output"] = Field(default="input", alias="ioType")
    required: bool = False
    variable_role: Optional[Literal["user_input", "intermediate", "final"]] = Field(
        default=None, alias="variableRole"
    )
    variable_id: Optional[str] = Field(default=None, alias="variableId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_domain(self) -> ChainVariable:
        variable = ChainVariable(
            name=self.name,
            schema=self.var_schema.to_domain(),
            value=self.value,
            io_type=self.io_type,
            required=self.required,
            variable_role=self.variable_role,
        )
        if self.variable_id:
            variable.variable_id = self.variable_id
        return variable


def normalize_variables(items: Iterable[Union[ChainVariable, Mapping[str, Any]]]) -> List[ChainVariable]:
    """Convert a mixed sequence of domain variables and raw mappings into `ChainVariable`s."""

    variables: List[ChainVariable] = []
    for item in items:
        if isinstance(item, ChainVariable):
            variables.append(item)
            continue
        try:
            variables.append(ChainVariablePayload.model_validate(item).to_domain())
        except ValidationError as exc:
            raise VariableTypeError(f"invalid chain variable payload: {exc.errors()[0]['msg']}") from exc
    return variables
