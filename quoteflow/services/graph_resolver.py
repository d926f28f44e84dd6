from collections import deque
from typing import Any, Dict, List, Mapping, Sequence

from quoteflow.models.workflow import Workflow
from quoteflow.models.workflow_graph import (
    ACTION_ADD_TAG,
    ACTION_AI_RESPONSE,
    ACTION_GENERATE_QUOTE,
    ACTION_SEND_CHAT_MESSAGE,
    ACTION_SEND_EMAIL,
    NODE_ACTION,
    NODE_CONDITION,
    NODE_KINDS,
    NODE_TRIGGER,
    AddTagConfig,
    ConditionConfig,
    GenerateDocumentConfig,
    GraphEdge,
    GraphNode,
    InvokeModelConfig,
    NodeConfig,
    SendChatMessageConfig,
    SendEmailConfig,
    TriggerConfig,
    UnsupportedActionConfig,
    WorkflowGraph,
)


class WorkflowConfigError(ValueError):
    pass


def _text(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        v = data.get(key)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def _parse_trigger(data: Mapping[str, Any]) -> TriggerConfig:
    return TriggerConfig(
        trigger_type=_text(data, "triggerType"),
        message_intent=_text(data, "messageIntent"),
        form_id=_text(data, "formId"),
        widget_id=_text(data, "widgetId"),
        tag_name=_text(data, "tagName", "tag"),
    )


def _parse_action(data: Mapping[str, Any]) -> NodeConfig:
    action_type = _text(data, "actionType")

    if action_type == ACTION_GENERATE_QUOTE:
        return GenerateDocumentConfig()

    if action_type == ACTION_SEND_EMAIL:
        return SendEmailConfig(
            to=_text(data, "emailTo") or "{{contact.email}}",
            subject=_text(data, "emailSubject"),
            body=_text(data, "emailBody"),
        )

    if action_type == ACTION_SEND_CHAT_MESSAGE:
        return SendChatMessageConfig(message=_text(data, "message", "chatMessage"))

    if action_type == ACTION_ADD_TAG:
        return AddTagConfig(tag=_text(data, "tagName", "tag"))

    if action_type == ACTION_AI_RESPONSE:
        return InvokeModelConfig(
            prompt=_text(data, "prompt"),
            provider=_text(data, "provider").lower(),
            model=_text(data, "model"),
        )

    return UnsupportedActionConfig(action_type=action_type)


def parse_node(raw: Mapping[str, Any]) -> GraphNode:
    if not isinstance(raw, Mapping):
        raise WorkflowConfigError(f"Workflow node must be an object, got {type(raw).__name__}")

    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise WorkflowConfigError("Workflow node is missing an id")

    kind = raw.get("type")
    if kind not in NODE_KINDS:
        raise WorkflowConfigError(f"Unknown node type {kind!r} on node {node_id}")

    data = raw.get("data") or {}
    if not isinstance(data, Mapping):
        raise WorkflowConfigError(f"Node {node_id} has non-object data")

    if kind == NODE_TRIGGER:
        config: NodeConfig = _parse_trigger(data)
    elif kind == NODE_CONDITION:
        config = ConditionConfig()
    else:
        config = _parse_action(data)

    label = _text(data, "label") or getattr(config, "action_type", "") or node_id
    return GraphNode(id=node_id, kind=kind, label=label, config=config)


def load_graph(
    workflow_id: str,
    nodes: Sequence[Mapping[str, Any]],
    edges: Sequence[Mapping[str, Any]],
    *,
    name: str = "",
) -> WorkflowGraph:
    """
    Parse the editor's node/edge JSON once, up front.

    Raises WorkflowConfigError for unknown node types, non-list node or edge
    collections, or a trigger count other than one. Individual edges that are
    not objects or lack endpoints are dropped.
    """
    if nodes is None:
        nodes = []
    if edges is None:
        edges = []
    if not isinstance(nodes, (list, tuple)):
        raise WorkflowConfigError(f"Workflow {workflow_id} nodes must be a list")
    if not isinstance(edges, (list, tuple)):
        raise WorkflowConfigError(f"Workflow {workflow_id} edges must be a list")

    parsed_nodes = tuple(parse_node(n) for n in nodes)

    triggers = [n for n in parsed_nodes if n.kind == NODE_TRIGGER]
    if len(triggers) != 1:
        raise WorkflowConfigError(f"Workflow {workflow_id} must have exactly one trigger node, found {len(triggers)}")

    parsed_edges: List[GraphEdge] = []
    for e in edges:
        if not isinstance(e, Mapping):
            continue
        source, target = e.get("source"), e.get("target")
        if isinstance(source, str) and isinstance(target, str):
            parsed_edges.append(GraphEdge(source=source, target=target))

    return WorkflowGraph(id=str(workflow_id), name=name, nodes=parsed_nodes, edges=tuple(parsed_edges))


def graph_from_workflow(workflow: Workflow) -> WorkflowGraph:
    return load_graph(
        workflow.id,
        workflow.nodes or [],
        workflow.edges or [],
        name=workflow.name or "Workflow",
    )


def ordered_actions(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> List[GraphNode]:
    """
    Breadth-first walk from the trigger's direct successors.

    First-reached wins; every node appears at most once even when edges
    form a cycle. Condition nodes are returned (their outgoing edges are
    followed) so the dispatcher can record them as skipped.
    """
    trigger = next((n for n in nodes if n.kind == NODE_TRIGGER), None)
    if trigger is None:
        return []

    out_edges: Dict[str, List[str]] = {}
    for e in edges:
        out_edges.setdefault(e.source, []).append(e.target)

    node_by_id = {n.id: n for n in nodes}

    order: List[GraphNode] = []
    visited = {trigger.id}
    queue = deque(out_edges.get(trigger.id, []))

    while queue:
        node_id = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = node_by_id.get(node_id)
        if node is None or node.kind not in (NODE_ACTION, NODE_CONDITION):
            continue

        order.append(node)
        for next_id in out_edges.get(node_id, []):
            if next_id not in visited:
                queue.append(next_id)

    return order
