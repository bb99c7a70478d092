from __future__ import annotations

import pytest

from business_service.agent_chain.variable_store import (
    apply_outputs,
    copy_state,
    final_outputs,
    find_variable,
    identity_mapping,
    merge_inputs,
    missing_required_inputs,
    resolve_inputs,
    variables_to_record,
)
from foundational_service.contracts.variables import ChainVariable, VariableSchema, VariableTypeError


def _state() -> list[ChainVariable]:
    return [
        ChainVariable(name="question", schema=VariableSchema(type="string"), required=True, variable_role="user_input"),
        ChainVariable(name="kb", schema=VariableSchema(type="object"), io_type="output", variable_role="intermediate"),
        ChainVariable(name="answer", schema=VariableSchema(type="string"), io_type="output", variable_role="final"),
    ]


def test_merge_inputs_ignores_unknown_names() -> None:
    state = _state()

    applied = merge_inputs(state, {"question": "What is RAG?", "unexpected": 1})

    assert applied == ["question"]
    assert find_variable(state, "question").value == "What is RAG?"
    assert find_variable(state, "unexpected") is None
    assert len(state) == 3


def test_merge_inputs_accepts_variable_sequences() -> None:
    state = _state()
    supplied = [ChainVariable(name="question", schema=VariableSchema(type="string"), value="hi")]

    merge_inputs(state, supplied)

    assert find_variable(state, "question").value == "hi"


def test_merge_inputs_rejects_type_mismatch() -> None:
    with pytest.raises(VariableTypeError):
        merge_inputs(_state(), {"question": {"text": "not a string"}})


def test_apply_outputs_creates_missing_variables() -> None:
    state = _state()

    written = apply_outputs(state, {"sources": ["a", "b"], "ignored": 1}, {"sources": "kb_sources"})

    created = find_variable(state, "kb_sources")
    assert written == {"kb_sources": ["a", "b"]}
    assert created is not None
    assert created.io_type == "output"
    assert created.schema.describe() == "string[]"
    assert find_variable(state, "ignored") is None


def test_apply_outputs_is_idempotent_and_last_writer_wins() -> None:
    state = _state()
    mapping = {"kb": "kb", "text": "answer"}
    results = {"kb": {"facts": ["x"]}, "text": "first"}

    apply_outputs(state, results, mapping)
    once = variables_to_record(state)
    apply_outputs(state, results, mapping)

    assert variables_to_record(state) == once
    assert len(state) == 3

    apply_outputs(state, {"text": "second"}, mapping)
    assert find_variable(state, "answer").value == "second"
    assert find_variable(state, "kb").value == {"facts": ["x"]}


def test_apply_outputs_writes_nothing_when_any_value_mismatches() -> None:
    state = _state()
    apply_outputs(state, {"text": "before"}, {"text": "answer"})

    with pytest.raises(VariableTypeError):
        apply_outputs(
            state,
            {"text": "after", "sources": ["a"], "kb": "not an object"},
            {"text": "answer", "sources": "kb_sources", "kb": "kb"},
        )

    assert find_variable(state, "answer").value == "before"
    assert find_variable(state, "kb").value is None
    assert find_variable(state, "kb_sources") is None


def test_apply_outputs_keeps_object_identity() -> None:
    state = _state()
    payload = {"facts": ["x"]}

    apply_outputs(state, {"kb": payload}, {"kb": "kb"})

    assert find_variable(state, "kb").value is payload


def test_resolve_inputs_returns_none_for_absent_variables() -> None:
    state = _state()
    merge_inputs(state, {"question": "q"})

    assert resolve_inputs(state, {"prompt": "question", "context": "nowhere"}) == {"prompt": "q", "context": None}


def test_required_and_final_helpers() -> None:
    state = _state()
    assert missing_required_inputs(state) == ["question"]

    merge_inputs(state, {"question": "q"})
    apply_outputs(state, {"answer": "42"}, identity_mapping(["answer"]))

    assert missing_required_inputs(state) == []
    assert final_outputs(state) == {"answer": "42"}


def test_copy_state_detaches_values() -> None:
    state = _state()
    apply_outputs(state, {"kb": {"facts": []}}, {"kb": "kb"})

    clone = copy_state(state)
    find_variable(clone, "kb").value["facts"].append("leak")

    assert find_variable(state, "kb").value == {"facts": []}
