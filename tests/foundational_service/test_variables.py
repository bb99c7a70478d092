from __future__ import annotations

import pytest

from foundational_service.contracts.payloads import normalize_variables
from foundational_service.contracts.variables import (
    ChainVariable,
    VariableSchema,
    VariableTypeError,
    infer_schema,
    is_empty_value,
)


def test_schema_accepts_matching_values_without_coercion() -> None:
    assert VariableSchema(type="string").accepts("hello")
    assert not VariableSchema(type="string").accepts(5)
    assert VariableSchema(type="number").accepts(2.5)
    assert not VariableSchema(type="number").accepts(True)
    assert VariableSchema(type="boolean").accepts(False)
    assert VariableSchema(type="object").accepts({"a": 1})
    assert VariableSchema(type="file").accepts("s3://bucket/report.pdf")
    assert VariableSchema(type="string", is_array=True).accepts(["a", "b"])
    assert not VariableSchema(type="string", is_array=True).accepts("a")
    assert not VariableSchema(type="string", is_array=True).accepts(["a", 1])
    assert VariableSchema(type="object").accepts(None)


def test_unknown_schema_type_is_rejected() -> None:
    with pytest.raises(VariableTypeError):
        VariableSchema(type="date")  # type: ignore[arg-type]


def test_infer_schema_handles_arrays_and_objects() -> None:
    assert infer_schema(["x", "y"]).describe() == "string[]"
    assert infer_schema({"k": 1}).type == "object"
    assert infer_schema(3).type == "number"
    assert infer_schema(True).type == "boolean"


@pytest.mark.parametrize("value", [None, "", "   ", [], {}])
def test_empty_values(value) -> None:
    assert is_empty_value(value)


def test_required_only_applies_to_inputs() -> None:
    variable = ChainVariable(name="answer", schema=VariableSchema(type="string"), io_type="output", required=True)
    assert variable.required is False

    question = ChainVariable(name="question", schema=VariableSchema(type="string"), required=True)
    assert not question.is_satisfied
    question.assign("why?")
    assert question.is_satisfied


def test_assign_rejects_mismatched_value() -> None:
    variable = ChainVariable(name="count", schema=VariableSchema(type="number"))
    with pytest.raises(VariableTypeError, match="expects number"):
        variable.assign("three")
    assert variable.value is None


def test_copy_is_deep() -> None:
    original = ChainVariable(name="kb", schema=VariableSchema(type="object"), value={"facts": ["a"]})
    clone = original.copy()
    clone.value["facts"].append("b")
    assert original.value == {"facts": ["a"]}
    assert clone.variable_id == original.variable_id


def test_document_round_trip_keeps_nested_fields() -> None:
    schema = VariableSchema(
        type="object",
        fields={"improvedQuestion": VariableSchema(type="string", description="better question")},
    )
    variable = ChainVariable(name="improved", schema=schema, io_type="output", variable_role="intermediate")
    restored = ChainVariable.from_document(variable.to_document())
    assert restored == variable


def test_normalize_variables_accepts_camel_case_payloads() -> None:
    existing = ChainVariable(name="question", schema=VariableSchema(type="string"), value="hi")
    variables = normalize_variables(
        [
            existing,
            {
                "name": "tags",
                "schema": {"type": "string", "isArray": True},
                "value": ["a"],
                "ioType": "input",
                "variableRole": "user_input",
            },
        ]
    )
    assert variables[0] is existing
    assert variables[1].schema.is_array is True
    assert variables[1].variable_role == "user_input"


def test_normalize_variables_reports_invalid_payload() -> None:
    with pytest.raises(VariableTypeError, match="invalid chain variable payload"):
        normalize_variables([{"name": "x", "schema": {"type": "date"}}])
