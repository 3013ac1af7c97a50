"""
Per-kind display metadata: label, one-line description, countdown support
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from models.steps import (
    BaseStep,
    LoopStep,
    NotifyStep,
    NotifyUntilStep,
    PlaySoundStep,
    PlaySoundUntilStep,
    StepKind,
    WaitStep,
    WaitUntilStep,
)


@dataclass(frozen=True)
class BlockConfig:
    label: str
    describe: Callable[[BaseStep], str]
    supports_countdown: bool = False
    countdown_ms: Callable[[BaseStep], Optional[float]] = lambda step: None


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def _describe_wait(step: WaitStep) -> str:
    return f"Wait {_format_amount(step.amount or 0)} {step.unit.value}"


def _describe_wait_until(step: WaitUntilStep) -> str:
    return f"Wait until {step.time or '--:--'} {step.meridiem.value}"


def _describe_play_sound(step: PlaySoundStep) -> str:
    return f"Play sound – {step.label or 'Sound'}"


def _describe_play_sound_until(step: PlaySoundUntilStep) -> str:
    return f"Play sound (wait) – {step.label or 'Sound'}"


def _describe_notify(step: NotifyStep) -> str:
    return f"Notify – {step.title or 'Notification'}"


def _describe_notify_until(step: NotifyUntilStep) -> str:
    return f"Notify Until – {step.title or 'Notification'}"


def _describe_loop(step: LoopStep) -> str:
    if step.is_infinite:
        return "Repeat forever"
    repeat = step.repeat_count or 1
    return f"Repeat {repeat} {'time' if repeat == 1 else 'times'}"


BLOCK_CONFIGS: Dict[str, BlockConfig] = {
    StepKind.WAIT: BlockConfig("Wait", _describe_wait, supports_countdown=True),
    StepKind.WAIT_UNTIL: BlockConfig(
        "Wait Until", _describe_wait_until, supports_countdown=True
    ),
    StepKind.PLAY_SOUND: BlockConfig("Play Sound", _describe_play_sound),
    StepKind.PLAY_SOUND_UNTIL: BlockConfig("Play Sound Until", _describe_play_sound_until),
    StepKind.NOTIFY: BlockConfig("Notify", _describe_notify),
    StepKind.NOTIFY_UNTIL: BlockConfig(
        "Notify Until",
        _describe_notify_until,
        supports_countdown=True,
        countdown_ms=lambda step: step.timeout_ms if step.timeout_ms is not None else 10000,
    ),
    StepKind.LOOP: BlockConfig("Loop", _describe_loop),
}

_UNKNOWN = BlockConfig("Unknown", lambda step: "Unknown block")


def get_block_config(kind: str) -> BlockConfig:
    return BLOCK_CONFIGS.get(kind, _UNKNOWN)


def describe_step(step: BaseStep) -> str:
    return get_block_config(step.type).describe(step)
