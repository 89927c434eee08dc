#!/usr/bin/env python3
"""
Lore MCP Server
Exposes graph queries, context retrieval and guarded writes as tools.
Every call reads a fresh snapshot from disk; nothing is cached between calls.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Literal

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import __version__
from .core import (
    DuplicateGuard,
    GuardReport,
    GraphEngine,
    LoreConfig,
    LoreError,
    RetrievalEngine,
)
from .store import GraphFile, JsonlItemStore

logger = logging.getLogger(__name__)


# ============================================================================
# Request Models
# ============================================================================

class TraverseRequest(BaseModel):
    """Breadth- or depth-first walk."""
    start: str = Field(..., description="Start node ID")
    max_depth: int | None = Field(10, description="Maximum depth; negative means 0")


class PathRequest(BaseModel):
    """Path between two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from", description="Source node ID")
    to: str = Field(..., description="Target node ID")


class RelatedRequest(BaseModel):
    """Neighborhood within a hop bound."""
    node: str = Field(..., description="Node ID")
    max_hops: int = Field(2, description="Maximum hops; negative means 0")


class NodeRequest(BaseModel):
    """Single node reference."""
    node: str = Field(..., description="Node ID")


class HubsRequest(BaseModel):
    """Most connected nodes."""
    limit: int = Field(10, ge=0, description="How many hubs to return")


class WalkRequest(BaseModel):
    """Annotated walk for graph-enhanced recall."""
    node: str = Field(..., description="Node ID or part of a node name")
    depth: int = Field(1, ge=1, le=3, description="Hops to follow (1-3)")


class ContextRequest(BaseModel):
    """Budget-capped context for a prompt."""
    prompt: str = Field(..., description="Prompt or task description to extract keywords from")
    cwd: str | None = Field(None, description="Working directory used to resolve the project")
    project: str | None = Field(None, description="Explicit project name (skips resolution)")
    mode: Literal["inject", "snapshot"] = Field("inject", description="'inject' for ambient context, 'snapshot' before compaction")
    budget: int | None = Field(None, ge=0, description="Character budget override")


class CheckDuplicateRequest(BaseModel):
    """Dry-run of the write guard."""
    kind: Literal["decision", "pattern"] = Field(..., description="Entry kind")
    title: str = Field(..., description="Decision text or pattern name")
    body: str = Field("", description="Rationale or solution")
    outcome: str | None = Field(None, description="Outcome of the decision, if known")


class GetItemRequest(BaseModel):
    """Latest version of one stored item."""
    kind: Literal["decision", "pattern", "observation", "handoff"] = Field(..., description="Item kind")
    id: str = Field(..., description="Item ID")


class RememberRequest(BaseModel):
    """Record a decision."""
    decision: str = Field(..., description="What was decided")
    rationale: str = Field("", description="Why")
    outcome: str | None = Field(None, description="Outcome, if known")
    project: str | None = Field(None, description="Project the decision belongs to")
    force: bool = Field(False, description="Write even if a near-duplicate exists")


class LearnRequest(BaseModel):
    """Record a pattern."""
    name: str = Field(..., description="Pattern name")
    solution: str = Field(..., description="What to do")
    problem: str = Field("", description="What goes wrong without it")
    context: str = Field("", description="Where it applies")
    confidence: float | None = Field(None, ge=0.0, le=1.0, description="Confidence 0-1 (default 0.5)")
    force: bool = Field(False, description="Write even if a near-duplicate exists")


# ============================================================================
# Service
# ============================================================================

class LoreService:
    """Binds configuration to the stores and engines behind each tool."""

    def __init__(self, config: LoreConfig):
        self.config = config
        self.items = JsonlItemStore(config)
        self.graph = GraphFile(config.graph_file())
        self.guard = DuplicateGuard(threshold=config.duplicate_threshold)
        self._retrieval = RetrievalEngine(config, self.items, self.graph)

    def engine(self) -> GraphEngine:
        return GraphEngine(self.graph.load_snapshot())

    def retrieval(self) -> RetrievalEngine:
        return self._retrieval

    def dispatch(self, name: str, arguments: dict | None) -> dict:
        """Run one tool. Raises LoreError or ValidationError for bad calls."""
        arguments = arguments or {}
        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            raise LoreError(f"Unknown tool: {name}")
        model, run = handler
        return run(self, model.model_validate(arguments))


def _steps(steps) -> list[dict]:
    return [{"node": s.node, "depth": s.depth} for s in steps]


def _bfs(service: LoreService, req: TraverseRequest) -> dict:
    return {"start": req.start, "visited": _steps(service.engine().bfs(req.start, req.max_depth))}


def _dfs(service: LoreService, req: TraverseRequest) -> dict:
    return {"start": req.start, "visited": _steps(service.engine().dfs(req.start, req.max_depth))}


def _shortest_path(service: LoreService, req: PathRequest) -> dict:
    path = service.engine().shortest_path(req.from_, req.to)
    return {"from": req.from_, "to": req.to, "path": path, "length": max(0, len(path) - 1)}


def _path_with_edges(service: LoreService, req: PathRequest) -> dict:
    result = service.engine().path_with_edges(req.from_, req.to)
    return {
        "from": req.from_,
        "to": req.to,
        "path": result.nodes,
        "edges": [
            {"from": s.from_ref, "to": s.to, "relation": s.relation, "weight": s.weight}
            for s in result.steps
        ],
    }


def _related(service: LoreService, req: RelatedRequest) -> dict:
    related = service.engine().related(req.node, req.max_hops)
    return {
        "node": req.node,
        "related": [
            {"id": r.node.id, "hops": r.hops, "type": r.node.type, "name": r.node.name}
            for r in related
        ],
    }


def _clusters(service: LoreService, req: BaseModel) -> dict:
    clusters = service.engine().clusters()
    return {"count": len(clusters), "clusters": clusters}


def _orphans(service: LoreService, req: BaseModel) -> dict:
    return {"orphans": [n.to_dict() for n in service.engine().orphans()]}


def _degree(service: LoreService, req: NodeRequest) -> dict:
    return {"node": req.node, **service.engine().degree(req.node).to_dict()}


def _hubs(service: LoreService, req: HubsRequest) -> dict:
    return {
        "hubs": [
            {"id": h.node.id, "name": h.node.name, "type": h.node.type, "degree": h.degree}
            for h in service.engine().hubs(req.limit)
        ]
    }


def _walk(service: LoreService, req: WalkRequest) -> dict:
    hops = service.engine().walk(req.node, req.depth)
    return {"node": req.node, "lines": [h.render() for h in hops]}


def _context(service: LoreService, req: ContextRequest) -> dict:
    bundle = service.retrieval().retrieve(
        req.prompt, cwd=req.cwd, project=req.project, mode=req.mode, budget=req.budget,
    )
    return {"context": bundle.context, "metadata": bundle.metadata}


def _check_duplicate(service: LoreService, req: CheckDuplicateRequest) -> dict:
    entries = service.items.list_active(req.kind)
    report = GuardReport(
        kind=req.kind,
        duplicates=service.guard.check_duplicates(req.title, req.body, entries),
        contradictions=service.guard.check_contradictions(req.title, req.body, entries, req.outcome),
    )
    return report.to_dict()


def _get_item(service: LoreService, req: GetItemRequest) -> dict:
    item = service.items.require(req.kind, req.id)
    return {
        "id": item.id,
        "kind": item.kind,
        "title": item.title,
        "detail": item.detail,
        "confidence": item.confidence,
        "timestamp": item.timestamp,
        "status": item.status,
        "outcome": item.outcome,
        "project": item.project,
    }


def _remember(service: LoreService, req: RememberRequest) -> dict:
    record = {"decision": req.decision, "rationale": req.rationale}
    if req.outcome:
        record["outcome"] = req.outcome
    if req.project:
        record["project"] = req.project
    item, report = service.guard.guarded_append(service.items, "decision", record, force=req.force)
    return {"written": True, "id": item.id, "guard": report.to_dict()}


def _learn(service: LoreService, req: LearnRequest) -> dict:
    record = {"name": req.name, "problem": req.problem, "solution": req.solution, "context": req.context}
    if req.confidence is not None:
        record["confidence"] = req.confidence
    item, report = service.guard.guarded_append(service.items, "pattern", record, force=req.force)
    return {"written": True, "id": item.id, "guard": report.to_dict()}


class EmptyRequest(BaseModel):
    pass


TOOL_HANDLERS = {
    "lore_bfs": (TraverseRequest, _bfs),
    "lore_dfs": (TraverseRequest, _dfs),
    "lore_shortest_path": (PathRequest, _shortest_path),
    "lore_path_with_edges": (PathRequest, _path_with_edges),
    "lore_related": (RelatedRequest, _related),
    "lore_clusters": (EmptyRequest, _clusters),
    "lore_orphans": (EmptyRequest, _orphans),
    "lore_degree": (NodeRequest, _degree),
    "lore_hubs": (HubsRequest, _hubs),
    "lore_traverse": (WalkRequest, _walk),
    "lore_context": (ContextRequest, _context),
    "lore_check_duplicate": (CheckDuplicateRequest, _check_duplicate),
    "lore_get": (GetItemRequest, _get_item),
    "lore_remember": (RememberRequest, _remember),
    "lore_learn": (LearnRequest, _learn),
}

TOOL_DESCRIPTIONS = {
    "lore_bfs": "Breadth-first walk from a node. Follows outgoing edges and bidirectional incoming edges.",
    "lore_dfs": "Depth-first (pre-order) walk from a node over the same edges as lore_bfs.",
    "lore_shortest_path": "Fewest-edges path between two nodes, treating edges as undirected.",
    "lore_path_with_edges": "Shortest path plus the relation and weight of each edge along it.",
    "lore_related": "Nodes within N hops of a node, nearest first.",
    "lore_clusters": "Connected components of the graph. Nodes without edges form their own cluster.",
    "lore_orphans": "Nodes with no edges at all.",
    "lore_degree": "Incoming, outgoing and total edge counts of a node.",
    "lore_hubs": "Most connected nodes, ties broken by node ID.",
    "lore_traverse": "Walk edges from a node (ID or name) and describe each hop as '[type] Name → relation → [type] Name'.",
    "lore_context": "Budget-capped context of patterns, decisions, the latest handoff and nearby graph nodes relevant to a prompt.",
    "lore_check_duplicate": "Check a decision or pattern against active entries for near-duplicates and contradictions without writing.",
    "lore_get": "Latest version of a stored decision, pattern, observation or handoff.",
    "lore_remember": "Record a decision. Refused when a near-duplicate exists unless force is set.",
    "lore_learn": "Record a pattern. Refused when a near-duplicate exists unless force is set.",
}


# ============================================================================
# MCP Server
# ============================================================================

# Initialize server
app = Server("lore")

# Global service instance
service: LoreService | None = None


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available lore tools."""
    return [
        Tool(name=name, description=TOOL_DESCRIPTIONS[name], inputSchema=model.model_json_schema(by_alias=True))
        for name, (model, _) in TOOL_HANDLERS.items()
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls with uniform error handling."""
    try:
        result = service.dispatch(name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]

    except (LoreError, ValidationError) as e:
        # Structured error response for known errors
        logger.warning(f"Lore error in {name}: {e}")
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]

    except Exception as e:
        # Unexpected errors
        logger.error(f"Unexpected error in {name}: {e}", exc_info=True)
        return [TextContent(type="text", text=json.dumps({"error": f"Internal error: {str(e)}"}))]


def configure_logging(level: str):
    # Log to stderr (never stdout for MCP)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


async def serve():
    """Main entry point."""
    global service

    # Load configuration from environment
    config = LoreConfig.from_env()
    configure_logging(config.log_level)

    service = LoreService(config)

    logger.info(f"Starting lore MCP server {__version__} (data: {config.data_dir})")

    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def main():
    asyncio.run(serve())


if __name__ == "__main__":
    main()
