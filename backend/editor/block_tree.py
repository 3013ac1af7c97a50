"""
Block-tree editing algebra

Edits run on a ``StepArena``: every step keyed by id, with parent and ordered
child-id references, so insert/move/delete are key rewrites instead of
recursive rebuilds. Each edit returns a new arena snapshot; the input is
never mutated. The list functions at the bottom project a step list into an
arena, apply one edit and project back, which is what the editor calls.

Every edit that cannot apply (unknown id, cycle, bad placement) returns the
input unchanged instead of raising.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from core.ids import create_id
from core.logger import get_logger
from models.steps import BaseStep, Step

logger = get_logger(__name__)

# Parent key of top-level steps
ROOT: Optional[str] = None


class InsertPosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"


class DuplicateStepIdError(ValueError):
    """Raised when a tree holds the same step id twice"""


class StepArena:
    """Immutable snapshot of a step tree keyed by step id"""

    __slots__ = ("_nodes", "_children", "_parents")

    def __init__(
        self,
        nodes: Dict[str, BaseStep],
        children: Dict[Optional[str], Tuple[str, ...]],
        parents: Dict[str, Optional[str]],
    ):
        # Container nodes are stored with empty children; structure lives in _children
        self._nodes = nodes
        self._children = children
        self._parents = parents

    # ============ Construction ============

    @classmethod
    def empty(cls) -> "StepArena":
        return cls({}, {ROOT: ()}, {})

    @classmethod
    def from_steps(cls, steps: List[Step]) -> "StepArena":
        nodes: Dict[str, BaseStep] = {}
        children: Dict[Optional[str], Tuple[str, ...]] = {ROOT: ()}
        parents: Dict[str, Optional[str]] = {}
        for step in steps:
            cls._attach(nodes, children, parents, ROOT, len(children[ROOT]), step)
        return cls(nodes, children, parents)

    @staticmethod
    def _attach(
        nodes: Dict[str, BaseStep],
        children: Dict[Optional[str], Tuple[str, ...]],
        parents: Dict[str, Optional[str]],
        parent_id: Optional[str],
        index: int,
        step: BaseStep,
    ) -> None:
        """Add step and its whole subtree under parent_id at index (mutates the given maps)"""
        if step.id in nodes:
            raise DuplicateStepIdError(f"Duplicate step id: {step.id}")

        siblings = children[parent_id]
        children[parent_id] = siblings[:index] + (step.id,) + siblings[index:]
        parents[step.id] = parent_id

        if step.is_container:
            nodes[step.id] = step.model_copy(update={"children": []})
            children[step.id] = ()
            for child in step.child_steps:
                StepArena._attach(
                    nodes, children, parents, step.id, len(children[step.id]), child
                )
        else:
            nodes[step.id] = step

    def _mutable(self):
        return dict(self._nodes), dict(self._children), dict(self._parents)

    # ============ Queries ============

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def parent_of(self, step_id: str) -> Optional[str]:
        return self._parents.get(step_id)

    def children_of(self, step_id: Optional[str]) -> Tuple[str, ...]:
        return self._children.get(step_id, ())

    def is_within(self, step_id: str, ancestor_id: str) -> bool:
        """True if step_id lies in the subtree rooted at ancestor_id (itself included)"""
        current: Optional[str] = step_id
        while current is not None:
            if current == ancestor_id:
                return True
            current = self._parents.get(current)
        return False

    def get(self, step_id: str) -> Optional[Step]:
        """Materialize the subtree rooted at step_id"""
        if step_id not in self._nodes:
            return None
        return self._build(step_id)

    def _build(self, step_id: str) -> Step:
        node = self._nodes[step_id]
        if node.is_container:
            return node.model_copy(
                update={"children": [self._build(c) for c in self._children[step_id]]}
            )
        return node

    def to_steps(self) -> List[Step]:
        return [self._build(step_id) for step_id in self._children[ROOT]]

    # ============ Edits ============

    def _subtree_ids(self, step_id: str) -> List[str]:
        ids = [step_id]
        for child in self._children.get(step_id, ()):
            ids.extend(self._subtree_ids(child))
        return ids

    def remove(self, step_id: str) -> Tuple["StepArena", Optional[Step]]:
        """Detach a subtree; returns the new arena and the removed subtree"""
        if step_id not in self._nodes:
            return self, None

        removed = self._build(step_id)
        nodes, children, parents = self._mutable()

        parent_id = parents[step_id]
        children[parent_id] = tuple(c for c in children[parent_id] if c != step_id)
        for key in self._subtree_ids(step_id):
            nodes.pop(key, None)
            parents.pop(key, None)
            children.pop(key, None)

        return StepArena(nodes, children, parents), removed

    def insert(
        self,
        step: BaseStep,
        target_id: str,
        position: InsertPosition | str,
    ) -> "StepArena":
        """Insert a subtree before/after target, or as last child of a container target"""
        position = InsertPosition(position)
        target = self._nodes.get(target_id)
        if target is None:
            logger.debug(f"Insert target {target_id} not found, ignoring")
            return self

        if position is InsertPosition.INSIDE:
            if not target.is_container:
                logger.debug(f"Cannot insert inside non-container step {target_id}")
                return self
            parent_id: Optional[str] = target_id
            index = len(self._children[target_id])
        else:
            parent_id = self._parents[target_id]
            index = self._children[parent_id].index(target_id)
            if position is InsertPosition.AFTER:
                index += 1

        return self._insert_at(step, parent_id, index)

    def insert_root(self, step: BaseStep, prepend: bool = False) -> "StepArena":
        index = 0 if prepend else len(self._children[ROOT])
        return self._insert_at(step, ROOT, index)

    def _insert_at(self, step: BaseStep, parent_id: Optional[str], index: int) -> "StepArena":
        nodes, children, parents = self._mutable()
        try:
            self._attach(nodes, children, parents, parent_id, index, step)
        except DuplicateStepIdError as e:
            logger.warning(f"Refusing insert: {e}")
            return self
        return StepArena(nodes, children, parents)

    def replace(self, step_id: str, new_step: BaseStep) -> "StepArena":
        """Swap the subtree at step_id for new_step, keeping its position"""
        if step_id not in self._nodes:
            return self
        parent_id = self._parents[step_id]
        index = self._children[parent_id].index(step_id)
        without, _ = self.remove(step_id)
        replaced = without._insert_at(new_step, parent_id, index)
        return self if replaced is without else replaced

    def move(
        self,
        moving_id: str,
        target_id: str,
        position: InsertPosition | str,
    ) -> "StepArena":
        """Move a subtree relative to target; refuses self-targets and cycles"""
        position = InsertPosition(position)
        if moving_id == target_id:
            return self
        if moving_id not in self._nodes or target_id not in self._nodes:
            logger.debug(f"Move {moving_id} -> {target_id}: step not found")
            return self
        if self.is_within(target_id, moving_id):
            logger.debug(f"Move {moving_id} -> {target_id} would create a cycle")
            return self
        if position is InsertPosition.INSIDE and not self._nodes[target_id].is_container:
            logger.debug(f"Move {moving_id} inside non-container {target_id} refused")
            return self

        without, moving = self.remove(moving_id)
        return without.insert(moving, target_id, position)

    def move_to_root(self, moving_id: str, prepend: bool = False) -> "StepArena":
        if moving_id not in self._nodes:
            return self
        without, moving = self.remove(moving_id)
        return without.insert_root(moving, prepend=prepend)


# ============ Step helpers ============


def clone_step(step: Step) -> Step:
    """Structural deep copy; identifiers are kept"""
    return step.model_copy(deep=True)


def clone_steps(steps: List[Step]) -> List[Step]:
    return [clone_step(step) for step in steps]


def duplicate_step(step: Step) -> Step:
    """Deep copy with a fresh id on every node"""
    update: dict = {"id": create_id()}
    if step.is_container:
        update["children"] = [duplicate_step(child) for child in step.child_steps]
    return step.model_copy(update=update)


def contains_id(step: BaseStep, step_id: str) -> bool:
    """True if step_id appears anywhere below step"""
    for child in step.child_steps:
        if child.id == step_id or contains_id(child, step_id):
            return True
    return False


def count_steps(steps: List[Step]) -> int:
    """Count every node, containers and their descendants included"""
    return sum(1 + count_steps(step.child_steps) for step in steps)


# ============ List API ============


def _arena(steps: List[Step]) -> Optional[StepArena]:
    try:
        return StepArena.from_steps(steps)
    except DuplicateStepIdError as e:
        logger.warning(f"Step tree is malformed, edit ignored: {e}")
        return None


def find_by_id(steps: List[Step], step_id: str) -> Optional[Step]:
    """Depth-first search, container children included"""
    for step in steps:
        if step.id == step_id:
            return step
        found = find_by_id(step.child_steps, step_id)
        if found is not None:
            return found
    return None


def delete_by_id(steps: List[Step], step_id: str) -> List[Step]:
    arena = _arena(steps)
    if arena is None:
        return steps
    without, removed = arena.remove(step_id)
    return without.to_steps() if removed is not None else list(steps)


def find_and_remove(steps: List[Step], step_id: str) -> Tuple[Optional[Step], List[Step]]:
    arena = _arena(steps)
    if arena is None:
        return None, steps
    without, removed = arena.remove(step_id)
    return removed, without.to_steps()


def insert_relative(
    steps: List[Step],
    target_id: str,
    new_step: Step,
    position: InsertPosition | str,
) -> List[Step]:
    arena = _arena(steps)
    if arena is None:
        return steps
    return arena.insert(new_step, target_id, position).to_steps()


def move_by_id(
    steps: List[Step],
    moving_id: str,
    target_id: str,
    position: InsertPosition | str,
) -> List[Step]:
    arena = _arena(steps)
    if arena is None:
        return steps
    moved = arena.move(moving_id, target_id, position)
    return steps if moved is arena else moved.to_steps()


def update_by_id(
    steps: List[Step],
    step_id: str,
    updater: Callable[[Step], Step],
) -> List[Step]:
    """Replace the step with updater(step); unknown ids leave the tree as is"""
    arena = _arena(steps)
    if arena is None:
        return steps
    current = arena.get(step_id)
    if current is None:
        return steps
    return arena.replace(step_id, updater(current)).to_steps()
