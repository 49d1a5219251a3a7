from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from domain.models import (
    UNSET,
    StoryNode,
    StoryStep,
    SubState,
    SubStateKind,
    Visibility,
)

# Completed elements untouched for more than this many steps are faded.
FADE_AFTER_STEPS = 3


@dataclass(frozen=True)
class ElementSets:
    active: frozenset[str]
    revealed: frozenset[str]
    completed: frozenset[str]
    new: frozenset[str]
    faded: frozenset[str]

    def visibility(self, element_id: str) -> Visibility:
        if element_id in self.active:
            return Visibility.ACTIVE
        if element_id in self.faded:
            return Visibility.FADED
        if element_id in self.completed:
            return Visibility.COMPLETED
        return Visibility.NOT_REVEALED


EMPTY_SETS = ElementSets(
    active=frozenset(),
    revealed=frozenset(),
    completed=frozenset(),
    new=frozenset(),
    faded=frozenset(),
)


@dataclass(frozen=True)
class StepState:
    index: int
    step_count: int
    nodes: ElementSets
    edges: ElementSets


def clamp_step_index(index: int, step_count: int) -> int:
    if step_count <= 0:
        return 0
    return max(0, min(step_count - 1, index))


def next_step_index(index: int, step_count: int) -> int:
    return clamp_step_index(index + 1, step_count)


def previous_step_index(index: int, step_count: int) -> int:
    return clamp_step_index(index - 1, step_count)


def resolve_step_state(steps: Sequence[StoryStep], index: int) -> StepState:
    if not steps:
        return StepState(index=0, step_count=0, nodes=EMPTY_SETS, edges=EMPTY_SETS)
    current = clamp_step_index(index, len(steps))
    nodes = _resolve_sets(
        steps,
        current,
        active=lambda step: step.active_nodes,
        reveal=lambda step: step.reveal_nodes,
    )
    edges = _resolve_sets(
        steps,
        current,
        active=lambda step: step.active_edges,
        reveal=lambda step: step.reveal_edges,
    )
    return StepState(index=current, step_count=len(steps), nodes=nodes, edges=edges)


def _resolve_sets(
    steps: Sequence[StoryStep],
    index: int,
    *,
    active: Callable[[StoryStep], Iterable[str]],
    reveal: Callable[[StoryStep], Iterable[str]],
) -> ElementSets:
    previously_revealed: set[str] = set()
    last_seen: dict[str, int] = {}
    for position, step in enumerate(steps[:index]):
        for element_id in (*active(step), *reveal(step)):
            previously_revealed.add(element_id)
            last_seen[element_id] = position

    current = steps[index]
    active_ids = frozenset(active(current))
    revealed = frozenset(previously_revealed | active_ids | set(reveal(current)))
    completed = revealed - active_ids
    # Elements listed by the current step are fresh even when only revealed.
    fresh = active_ids | set(reveal(current))
    return ElementSets(
        active=active_ids,
        revealed=revealed,
        completed=completed,
        new=revealed - previously_revealed,
        faded=frozenset(
            element_id
            for element_id in completed - fresh
            if index - last_seen[element_id] > FADE_AFTER_STEPS
        ),
    )


def resolve_sub_state(
    steps: Sequence[StoryStep],
    index: int,
    node_id: str,
    initial: str | None = None,
) -> SubState:
    """Resolve the sticky sub-state of one node at ``index``.

    The most recent explicit entry at or before ``index`` wins, including an
    explicit clear. Without one the declared initial value is used.
    """
    if steps:
        current = clamp_step_index(index, len(steps))
        for step in reversed(steps[: current + 1]):
            entry = step.sub_state_entry(node_id)
            if entry.is_set:
                return entry
    if initial is not None:
        return SubState.of(initial)
    return UNSET


def resolve_sub_states(
    steps: Sequence[StoryStep],
    index: int,
    nodes: Iterable[StoryNode],
) -> dict[str, str | None]:
    return {
        node.id: sub_state_value(resolve_sub_state(steps, index, node.id, node.initial_substate))
        for node in nodes
    }


def sub_state_value(state: SubState) -> str | None:
    return state.value if state.kind is SubStateKind.VALUE else None
