"""
Workflow definition for the career pipeline as a LangGraph state machine.

router -> worker -> router -> ... -> END, with a human approval interrupt that
can pre-empt any worker.
"""

from typing import List, Optional

from langgraph.graph import END, START, StateGraph
import structlog

from agents.client import BaseLLMClient
from orchestrator.agent_registry import get_agent_pipeline
from orchestrator.nodes import (
    OrchestrationMode,
    create_human_approval_node,
    create_router_node,
    create_worker_node,
)
from orchestrator.router import (
    HUMAN_APPROVAL_NODE,
    ROUTER_NODE,
    route_after_agent,
    route_after_human_approval,
    route_after_orchestrator,
)
from orchestrator.state import PipelineState
from orchestrator.stats import StatsAggregator
from orchestrator.steps import AgentStep
from orchestrator.trace_emitter import TraceEmitter

logger = structlog.get_logger()

__all__ = ["OrchestrationMode", "create_pipeline_graph", "recursion_limit_for"]


def recursion_limit_for(max_route_decisions: int) -> int:
    """Graph super-step budget: each decision can cost a router, an approval and a worker step."""
    return max_route_decisions * 3 + 5


def create_pipeline_graph(
    llm_client: BaseLLMClient,
    trace: TraceEmitter,
    aggregator: StatsAggregator,
    orchestration_mode: str = OrchestrationMode.DETERMINISTIC,
    max_route_decisions: int = 12,
    pipeline: Optional[List[AgentStep]] = None,
):
    """Compile the pipeline graph for one run."""
    steps = pipeline or get_agent_pipeline()

    graph = StateGraph(PipelineState)
    graph.add_node(
        ROUTER_NODE,
        create_router_node(
            llm_client,
            trace,
            pipeline_order=[step.agent_name for step in steps],
            orchestration_mode=orchestration_mode,
            max_route_decisions=max_route_decisions,
        ),
    )
    for step in steps:
        graph.add_node(step.node_name, create_worker_node(step, llm_client, trace, aggregator))
    graph.add_node(HUMAN_APPROVAL_NODE, create_human_approval_node(trace))

    graph.add_edge(START, ROUTER_NODE)

    router_targets = {step.node_name: step.node_name for step in steps}
    router_targets[HUMAN_APPROVAL_NODE] = HUMAN_APPROVAL_NODE
    router_targets[END] = END
    graph.add_conditional_edges(ROUTER_NODE, route_after_orchestrator, router_targets)

    for step in steps:
        graph.add_conditional_edges(step.node_name, route_after_agent, {ROUTER_NODE: ROUTER_NODE, END: END})

    graph.add_conditional_edges(
        HUMAN_APPROVAL_NODE, route_after_human_approval, {ROUTER_NODE: ROUTER_NODE, END: END},
    )

    logger.info(
        "pipeline_graph_created",
        mode=orchestration_mode,
        agents=[step.agent_name.value for step in steps],
        max_route_decisions=max_route_decisions,
    )
    return graph.compile()
