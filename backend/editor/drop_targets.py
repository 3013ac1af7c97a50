"""
Drop-target addressing

One location scheme serves both palette drops (a new step) and drags of an
existing step: "root, prepend", "root, append", "root, empty" and a position
relative to an existing step. Targets are encoded as ``drop:<target>:<position>``.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from core.logger import get_logger
from models.steps import Step

from .block_tree import DuplicateStepIdError, InsertPosition, StepArena, clone_steps

logger = get_logger(__name__)

DROP_PREFIX = "drop"
ROOT_TARGET = "root"

_ROOT_POSITIONS = ("prepend", "append", "empty")


@dataclass(frozen=True)
class RootDrop:
    """Drop at the top level of the tree"""

    position: str = "append"  # prepend | append | empty

    @property
    def prepend(self) -> bool:
        return self.position == "prepend"


@dataclass(frozen=True)
class StepDrop:
    """Drop relative to an existing step"""

    target_id: str
    position: InsertPosition


DropTarget = Union[RootDrop, StepDrop]


def build_drop_id(target: str, position: str) -> str:
    return f"{DROP_PREFIX}:{target}:{position}"


def parse_drop_id(drop_id: str) -> Optional[DropTarget]:
    """Decode a drop id; anything malformed yields None"""
    # Step ids are opaque and may contain ":"
    prefix, _, rest = drop_id.partition(":")
    target, _, position = rest.rpartition(":")
    if prefix != DROP_PREFIX or not target or not position:
        return None

    if target == ROOT_TARGET:
        if position in _ROOT_POSITIONS:
            return RootDrop(position)
        return None

    try:
        return StepDrop(target, InsertPosition(position))
    except ValueError:
        return None


def drop_id_for(drop: DropTarget) -> str:
    if isinstance(drop, RootDrop):
        return build_drop_id(ROOT_TARGET, drop.position)
    return build_drop_id(drop.target_id, drop.position.value)


def apply_palette_drop(steps: List[Step], new_step: Step, drop: DropTarget) -> List[Step]:
    """Place a freshly created step at the drop location"""
    try:
        arena = StepArena.from_steps(clone_steps(steps))
    except DuplicateStepIdError as e:
        logger.warning(f"Step tree is malformed, drop ignored: {e}")
        return steps
    if isinstance(drop, RootDrop):
        return arena.insert_root(new_step, prepend=drop.prepend).to_steps()
    return arena.insert(new_step, drop.target_id, drop.position).to_steps()


def apply_existing_drop(steps: List[Step], step_id: str, drop: DropTarget) -> List[Step]:
    """Reposition an existing step at the drop location"""
    try:
        arena = StepArena.from_steps(clone_steps(steps))
    except DuplicateStepIdError as e:
        logger.warning(f"Step tree is malformed, drop ignored: {e}")
        return steps
    if isinstance(drop, RootDrop):
        moved = arena.move_to_root(step_id, prepend=drop.prepend)
    else:
        moved = arena.move(step_id, drop.target_id, drop.position)
    if moved is arena:
        logger.debug(f"Drop of {step_id} at {drop_id_for(drop)} changed nothing")
    return moved.to_steps()
