from __future__ import annotations

from typing import List, Set

from domain.models import Story, StoryValidationResult


def validate_story(story: Story) -> StoryValidationResult:
    """Lint referential integrity of a parsed story.

    The layout engine assumes every id resolves; this is where dangling
    references and undeclared sub-state names are reported.
    """
    errors: List[str] = []
    warnings: List[str] = []

    node_ids = {node.id for node in story.nodes}
    edge_ids = {edge.id for edge in story.edges}

    if not story.nodes:
        warnings.append("Story has no nodes")
    if not story.edges:
        warnings.append("Story has no edges")
    if not story.steps:
        errors.append("Story has no steps")

    for node in story.nodes:
        if (
            node.initial_substate is not None
            and node.substates
            and node.initial_substate not in node.substates
        ):
            errors.append(
                f'Node "{node.id}": initial sub-state "{node.initial_substate}" is not declared'
            )

    for edge in story.edges:
        if edge.source not in node_ids:
            errors.append(f'Edge "{edge.id}": source "{edge.source}" not found in nodes')
        if edge.target not in node_ids:
            errors.append(f'Edge "{edge.id}": target "{edge.target}" not found in nodes')

    seen_orders: Set[int] = set()
    revealed_nodes: Set[str] = set()
    for idx, step in enumerate(story.steps):
        label = step.id or f"#{idx}"
        if step.order is not None:
            if step.order in seen_orders:
                warnings.append(f'Step "{label}": duplicate order {step.order}')
            seen_orders.add(step.order)
        for node_id in [*step.active_nodes, *step.reveal_nodes]:
            revealed_nodes.add(node_id)
            if node_id not in node_ids:
                errors.append(f'Step "{label}": unknown node "{node_id}"')
        for edge_id in [*step.active_edges, *step.reveal_edges]:
            if edge_id not in edge_ids:
                errors.append(f'Step "{label}": unknown edge "{edge_id}"')
        for node_id, value in step.substates.items():
            node = story.node(node_id)
            if node is None:
                errors.append(f'Step "{label}": sub-state for unknown node "{node_id}"')
                continue
            if value is not None and node.substates and value not in node.substates:
                errors.append(
                    f'Step "{label}": sub-state "{value}" is not declared on node "{node_id}"'
                )

    for node in story.nodes:
        if node.id not in revealed_nodes:
            warnings.append(f'Node "{node.id}" is never revealed in any step')

    return StoryValidationResult(errors=errors, warnings=warnings)
