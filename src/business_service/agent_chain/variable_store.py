from __future__ import annotations

"""Chain variable store: name-addressed reads and writes over a chain's ordered variable list."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from foundational_service.contracts.variables import ChainVariable, infer_schema

__all__ = [
    "MappingConfigurationError",
    "apply_outputs",
    "copy_state",
    "final_outputs",
    "find_variable",
    "identity_mapping",
    "merge_inputs",
    "missing_required_inputs",
    "resolve_inputs",
    "variables_to_record",
]

log = logging.getLogger("business_service.agent_chain.variable_store")


class MappingConfigurationError(ValueError):
    """Raised when a phase mapping references a variable its workflow does not declare."""


def find_variable(state: Sequence[ChainVariable], name: str) -> Optional[ChainVariable]:
    for variable in state:
        if variable.name == name:
            return variable
    return None


def copy_state(state: Iterable[ChainVariable]) -> List[ChainVariable]:
    return [variable.copy() for variable in state]


def merge_inputs(
    state: Sequence[ChainVariable],
    values: Union[Mapping[str, Any], Iterable[ChainVariable]],
) -> List[str]:
    """Set values of variables already present in `state`; unknown names are ignored.

    Returns the names that were applied.
    """

    if isinstance(values, Mapping):
        pairs = list(values.items())
    else:
        pairs = [(variable.name, variable.value) for variable in values]
    applied: List[str] = []
    for name, value in pairs:
        variable = find_variable(state, name)
        if variable is None:
            log.debug("chain_state.input_ignored", extra={"variable": name})
            continue
        variable.assign(value)
        applied.append(name)
    return applied


def apply_outputs(
    state: List[ChainVariable],
    results: Mapping[str, Any],
    output_mappings: Mapping[str, str],
) -> Dict[str, Any]:
    """Write mapped workflow results into chain state, last writer wins.

    Outputs may introduce chain variables that were not pre-declared; those are created as
    `output` variables with a schema inferred from the value. Every value is checked before any is
    written, so a `VariableTypeError` leaves `state` untouched. Returns the written values keyed by
    chain variable name.
    """

    created: Dict[str, ChainVariable] = {}
    staged: List[Tuple[ChainVariable, Any]] = []
    for workflow_name, chain_name in output_mappings.items():
        if workflow_name not in results:
            continue
        value = results[workflow_name]
        target = created.get(chain_name) or find_variable(state, chain_name)
        if target is None:
            target = ChainVariable(
                name=chain_name,
                schema=infer_schema(value, description=f"Produced from {workflow_name}"),
                io_type="output",
            )
            created[chain_name] = target
        target.check(value)
        staged.append((target, value))

    state.extend(created.values())
    written: Dict[str, Any] = {}
    for target, value in staged:
        target.value = value
        written[target.name] = value
    return written


def resolve_inputs(state: Sequence[ChainVariable], input_mappings: Mapping[str, str]) -> Dict[str, Any]:
    """Read each mapped chain variable; names absent from state resolve to `None`."""

    resolved: Dict[str, Any] = {}
    for workflow_name, chain_name in input_mappings.items():
        variable = find_variable(state, chain_name)
        resolved[workflow_name] = variable.value if variable is not None else None
    return resolved


def missing_required_inputs(state: Sequence[ChainVariable]) -> List[str]:
    return [variable.name for variable in state if variable.io_type == "input" and not variable.is_satisfied]


def final_outputs(state: Sequence[ChainVariable]) -> Dict[str, Any]:
    return {variable.name: variable.value for variable in state if variable.variable_role == "final"}


def variables_to_record(state: Iterable[ChainVariable]) -> Dict[str, Any]:
    return {variable.name: variable.value for variable in state}


def identity_mapping(keys: Iterable[str]) -> Dict[str, str]:
    return {key: key for key in keys}
