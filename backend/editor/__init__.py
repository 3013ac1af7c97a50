"""
Editor module - pure operations over timers and their step trees

Main components:
- block_tree: arena-backed insert/move/delete with cycle prevention
- drop_targets: unified drop location scheme for palette and existing-step drags
- block_config: labels and descriptions per step kind
- templates: palette defaults and ready-made timers
- timers: naming and stopwatch log edits
"""

from .block_config import BLOCK_CONFIGS, BlockConfig, describe_step, get_block_config
from .block_tree import (
    InsertPosition,
    StepArena,
    clone_step,
    clone_steps,
    contains_id,
    count_steps,
    delete_by_id,
    duplicate_step,
    find_and_remove,
    find_by_id,
    insert_relative,
    move_by_id,
    update_by_id,
)
from .drop_targets import (
    DropTarget,
    RootDrop,
    StepDrop,
    apply_existing_drop,
    apply_palette_drop,
    build_drop_id,
    parse_drop_id,
)
from .templates import create_default_step, pomodoro, quick_alarm, quick_timer
from .timers import add_log, create_timer, delete_log, rename_log, rename_timer

__all__ = [
    # Config
    "BLOCK_CONFIGS",
    "BlockConfig",
    "describe_step",
    "get_block_config",
    # Tree algebra
    "InsertPosition",
    "StepArena",
    "clone_step",
    "clone_steps",
    "contains_id",
    "count_steps",
    "delete_by_id",
    "duplicate_step",
    "find_and_remove",
    "find_by_id",
    "insert_relative",
    "move_by_id",
    "update_by_id",
    # Drop targets
    "DropTarget",
    "RootDrop",
    "StepDrop",
    "apply_existing_drop",
    "apply_palette_drop",
    "build_drop_id",
    "parse_drop_id",
    # Templates
    "create_default_step",
    "pomodoro",
    "quick_alarm",
    "quick_timer",
    # Timers
    "add_log",
    "create_timer",
    "delete_log",
    "rename_log",
    "rename_timer",
]
