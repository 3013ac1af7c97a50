"""
Tree interpreter

Walks a step sequence in order and dispatches each step to its executor by
model class. Containers receive ``run_sequence`` itself so nested loops and
notify-until children recurse without limit.
"""

from functools import partial
from typing import Awaitable, Callable, Dict, List, Type, get_args

from core.logger import get_logger
from models.steps import (
    BaseStep,
    LoopStep,
    NotifyStep,
    NotifyUntilStep,
    PlaySoundStep,
    PlaySoundUntilStep,
    Step,
    WaitStep,
    WaitUntilStep,
)

from .context import RunContext
from .executors import (
    run_loop,
    run_notify,
    run_notify_until,
    run_play_sound,
    run_wait,
    run_wait_until,
)

logger = get_logger(__name__)

Executor = Callable[[BaseStep, RunContext], Awaitable[None]]


async def run_sequence(steps: List[Step], ctx: RunContext) -> None:
    """Run steps in order until the end or until the run is aborted"""
    for step in steps:
        if ctx.should_abort():
            return
        if ctx.is_paused():
            await ctx.await_resume()
            if ctx.should_abort():
                return

        ctx.enter_step(step)

        executor = EXECUTORS.get(type(step))
        if executor is None:
            logger.warning(f"Skipping step {step.id} of unknown kind {step.type!r}")
            continue

        logger.debug(f"Running step {step.id} ({step.type})")
        await executor(step, ctx)


EXECUTORS: Dict[Type[BaseStep], Executor] = {
    WaitStep: run_wait,
    WaitUntilStep: run_wait_until,
    PlaySoundStep: run_play_sound,
    PlaySoundUntilStep: run_play_sound,
    NotifyStep: run_notify,
    NotifyUntilStep: partial(run_notify_until, run_sequence=run_sequence),
    LoopStep: partial(run_loop, run_sequence=run_sequence),
}


def _check_exhaustive() -> None:
    step_types = set(get_args(get_args(Step)[0]))
    missing = step_types - set(EXECUTORS)
    if missing:
        names = ", ".join(sorted(t.__name__ for t in missing))
        raise RuntimeError(f"No executor registered for: {names}")


_check_exhaustive()
