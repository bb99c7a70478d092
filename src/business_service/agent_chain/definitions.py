from __future__ import annotations

"""Default three-phase agent chain: question development -> knowledge base -> answer generation.

Workflows are built lazily by async factories so every session receives freshly constructed step
graphs. Steps dispatch to tool ids (`llm`, `search`) that an execution adapter resolves.
"""

from typing import Optional
from uuid import uuid4

from foundational_service.contracts.variables import ChainVariable, VariableSchema
from foundational_service.contracts.workflow_exec import AgentWorkflowType, Workflow, WorkflowStep

from .models import AgentWorkflowChain, PhaseDefinition

__all__ = [
    "DEFAULT_CHAIN_ID",
    "build_default_chain",
    "create_answer_generation_workflow",
    "create_knowledge_base_workflow",
    "create_question_development_workflow",
]

DEFAULT_CHAIN_ID = "default_agent_workflow_chain"

QUESTION_IMPROVER_TEMPLATE_ID = "question-improver"
QUESTION_EVALUATOR_TEMPLATE_ID = "question-improvement-evaluator"
KB_PLANNER_TEMPLATE_ID = "kb-planner"
KB_BUILDER_TEMPLATE_ID = "kb-builder"
ANSWER_PLANNER_TEMPLATE_ID = "answer-planner"
ANSWER_WRITER_TEMPLATE_ID = "answer-writer"


def _string(description: str, *, is_array: bool = False) -> VariableSchema:
    return VariableSchema(type="string", is_array=is_array, description=description)


def _object(description: str, **fields: VariableSchema) -> VariableSchema:
    return VariableSchema(type="object", description=description, fields=fields or None)


def _variable(name: str, schema: VariableSchema, *, io_type: str = "output", required: bool = False) -> ChainVariable:
    return ChainVariable(name=name, schema=schema, io_type=io_type, required=required)


def _step(
    label: str,
    *,
    sequence: int,
    tool_id: str,
    parameters: dict,
    outputs: dict,
    template: Optional[str] = None,
    description: str = "",
    step_type: str = "ACTION",
) -> WorkflowStep:
    return WorkflowStep(
        step_id=str(uuid4()),
        label=label,
        description=description,
        step_type=step_type,
        tool_id=tool_id,
        parameter_mappings=parameters,
        output_mappings=outputs,
        prompt_template_id=template,
        sequence_number=sequence,
    )


async def create_question_development_workflow() -> Workflow:
    return Workflow(
        workflow_id=str(uuid4()),
        name="Question Development Agent",
        workflow_type=AgentWorkflowType.QUESTION_DEVELOPMENT,
        description="Improves and refines user questions for better answering",
        max_iterations=1,
        confidence_threshold=0.8,
        state=[
            _variable("original_question", _string("The original question from the user"), io_type="input", required=True),
            _variable(
                "improved_question_object",
                _object(
                    "Improved question with explanation",
                    improvedQuestion=_string("The improved version of the question"),
                    explanation=_string("Explanation of the improvements made"),
                ),
            ),
            _variable("improved_question", _string("The improved version of the question")),
            _variable(
                "question_improvement_confidence",
                VariableSchema(type="number", description="Confidence score between 0 and 1"),
            ),
        ],
        steps=[
            _step(
                "Improve Question",
                sequence=0,
                tool_id="llm",
                template=QUESTION_IMPROVER_TEMPLATE_ID,
                parameters={"question": "original_question"},
                outputs={
                    "response": "improved_question_object",
                    "response.improvedQuestion": "improved_question",
                },
            ),
            _step(
                "Evaluate Improvement",
                sequence=1,
                tool_id="llm",
                step_type="EVALUATION",
                template=QUESTION_EVALUATOR_TEMPLATE_ID,
                parameters={"originalQuestion": "original_question", "improvedQuestion": "improved_question"},
                outputs={"response.confidenceScore": "question_improvement_confidence"},
            ),
        ],
    )


async def create_knowledge_base_workflow() -> Workflow:
    return Workflow(
        workflow_id=str(uuid4()),
        name="Knowledge Base Development Agent",
        workflow_type=AgentWorkflowType.KNOWLEDGE_BASE_DEVELOPMENT,
        description="Builds a knowledge base that covers the improved question",
        max_iterations=3,
        confidence_threshold=0.8,
        state=[
            _variable("kb_input_question", _string("Question to research"), io_type="input", required=True),
            _variable("kb_search_queries", _string("Search queries to run", is_array=True)),
            _variable("kb_sources", _string("Sources consulted", is_array=True)),
            _variable("knowledge_base", _object("Collected knowledge keyed by topic")),
        ],
        steps=[
            _step(
                "Create Knowledge Base Plan",
                sequence=0,
                tool_id="llm",
                template=KB_PLANNER_TEMPLATE_ID,
                parameters={"question": "kb_input_question"},
                outputs={"response.queries": "kb_search_queries"},
            ),
            _step(
                "Execute Search",
                sequence=1,
                tool_id="search",
                parameters={"queries": "kb_search_queries"},
                outputs={"sources": "kb_sources"},
            ),
            _step(
                "Update Knowledge Base",
                sequence=2,
                tool_id="llm",
                template=KB_BUILDER_TEMPLATE_ID,
                parameters={"question": "kb_input_question", "sources": "kb_sources"},
                outputs={"response": "knowledge_base"},
            ),
        ],
    )


async def create_answer_generation_workflow() -> Workflow:
    return Workflow(
        workflow_id=str(uuid4()),
        name="Answer Generation Agent",
        workflow_type=AgentWorkflowType.ANSWER_GENERATION,
        description="Generates a comprehensive answer based on the knowledge base",
        max_iterations=2,
        confidence_threshold=0.8,
        state=[
            _variable("answer_input_question", _string("Question to answer"), io_type="input", required=True),
            _variable("answer_input_kb", _object("Knowledge base to answer from"), io_type="input"),
            _variable("answer_plan", _string("Outline of the answer")),
            _variable("final_answer", _string("The answer returned to the user")),
        ],
        steps=[
            _step(
                "Create Answer Plan",
                sequence=0,
                tool_id="llm",
                template=ANSWER_PLANNER_TEMPLATE_ID,
                parameters={"question": "answer_input_question", "knowledgeBase": "answer_input_kb"},
                outputs={"response.plan": "answer_plan"},
            ),
            _step(
                "Draft Answer",
                sequence=1,
                tool_id="llm",
                template=ANSWER_WRITER_TEMPLATE_ID,
                parameters={
                    "question": "answer_input_question",
                    "knowledgeBase": "answer_input_kb",
                    "plan": "answer_plan",
                },
                outputs={"response.answer": "final_answer"},
            ),
        ],
    )


def build_default_chain() -> AgentWorkflowChain:
    """Fresh copy of the standard chain; callers may mutate the result freely."""

    state = [
        ChainVariable(
            name="question",
            schema=_string("Question supplied by the user"),
            io_type="input",
            required=True,
            variable_role="user_input",
        ),
        ChainVariable(
            name="improved_question",
            schema=_string("Refined question produced by question development"),
            io_type="output",
            variable_role="intermediate",
        ),
        ChainVariable(
            name="knowledge_base",
            schema=_object("Knowledge gathered for the improved question"),
            io_type="output",
            variable_role="intermediate",
        ),
        ChainVariable(
            name="final_answer",
            schema=_string("Answer returned to the user"),
            io_type="output",
            variable_role="final",
        ),
    ]
    phases = [
        PhaseDefinition(
            id="question_development",
            label="Question Development",
            description="Improve and refine the original question",
            workflow_factory=create_question_development_workflow,
            input_mappings={"original_question": "question"},
            output_mappings={"improved_question": "improved_question"},
        ),
        PhaseDefinition(
            id="kb_development",
            label="Knowledge Base Development",
            description="Build a comprehensive knowledge base for the question",
            workflow_factory=create_knowledge_base_workflow,
            input_mappings={"kb_input_question": "improved_question"},
            output_mappings={"knowledge_base": "knowledge_base"},
        ),
        PhaseDefinition(
            id="answer_generation",
            label="Answer Generation",
            description="Generate a comprehensive answer based on the knowledge base",
            workflow_factory=create_answer_generation_workflow,
            input_mappings={
                "answer_input_question": "improved_question",
                "answer_input_kb": "knowledge_base",
            },
            output_mappings={"final_answer": "final_answer"},
        ),
    ]
    return AgentWorkflowChain(
        id=DEFAULT_CHAIN_ID,
        name="Default Agent Workflow Chain",
        description=(
            "Standard three-phase agent workflow: question development, knowledge base development, "
            "and answer generation"
        ),
        phases=phases,
        state=state,
    )
