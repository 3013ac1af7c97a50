"""
Step models - the nodes of a timer's step tree

A step is a discriminated union on its ``type`` tag. Only ``loop`` and
``notifyUntil`` carry children; every other kind is a leaf.
"""

from enum import Enum
from typing import Annotated, Any, Iterable, List, Literal, Optional, Union

from pydantic import AliasChoices, Field, TypeAdapter, field_validator

from core.ids import create_id

from .base import FrozenModel


class StepKind(str, Enum):
    WAIT = "wait"
    WAIT_UNTIL = "waitUntil"
    PLAY_SOUND = "playSound"
    PLAY_SOUND_UNTIL = "playSoundUntil"
    NOTIFY = "notify"
    NOTIFY_UNTIL = "notifyUntil"
    LOOP = "loop"


CONTAINER_KINDS = frozenset({StepKind.LOOP, StepKind.NOTIFY_UNTIL})


class TimeUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


class Meridiem(str, Enum):
    AM = "AM"
    PM = "PM"


class SoundSource(str, Enum):
    DEFAULT = "default"
    URL = "url"
    UPLOADED = "uploaded"


# Older editors stored "custom" for URL sounds and "upload" for uploaded files
_LEGACY_SOUND_SOURCES = {"custom": SoundSource.URL, "upload": SoundSource.UPLOADED}

INFINITE_REPEAT = -1


class BaseStep(FrozenModel):
    """Fields shared by every step kind"""

    id: str = Field(default_factory=create_id)
    type: str

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_KINDS

    @property
    def child_steps(self) -> List["Step"]:
        return list(getattr(self, "children", None) or [])


class WaitStep(BaseStep):
    """Sleep for a relative duration"""

    type: Literal["wait"] = "wait"
    amount: float = 0
    unit: TimeUnit = TimeUnit.SECONDS


class WaitUntilStep(BaseStep):
    """Sleep until the next occurrence of a 12-hour clock time"""

    type: Literal["waitUntil"] = "waitUntil"
    time: str = "7:00"
    meridiem: Meridiem = Field(
        default=Meridiem.AM,
        validation_alias=AliasChoices("meridiem", "ampm"),
    )


class SoundFields(BaseStep):
    """Sound selection shared by the sound-playing kinds"""

    sound_source: SoundSource = Field(
        default=SoundSource.DEFAULT,
        validation_alias=AliasChoices("soundSource", "sound_source", "soundType"),
    )
    label: str = "Beep"
    url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("url", "customUrl"),
    )

    @field_validator("sound_source", mode="before")
    @classmethod
    def _normalize_source(cls, value: Any) -> Any:
        if value is None:
            return SoundSource.DEFAULT
        return _LEGACY_SOUND_SOURCES.get(value, value)


class PlaySoundStep(SoundFields):
    """Play a sound to completion once"""

    type: Literal["playSound"] = "playSound"


class PlaySoundUntilStep(SoundFields):
    """Play a sound and wait for it to finish"""

    type: Literal["playSoundUntil"] = "playSoundUntil"


class NotifyStep(BaseStep):
    """Fire one system notification"""

    type: Literal["notify"] = "notify"
    title: str = ""
    body: Optional[str] = None


class NotifyUntilStep(SoundFields):
    """Keep alerting until the notification is dismissed or the timeout elapses"""

    type: Literal["notifyUntil"] = "notifyUntil"
    title: str = ""
    body: Optional[str] = None
    timeout_ms: Optional[float] = 10000
    interval_seconds: Optional[float] = Field(
        default=0.5,
        validation_alias=AliasChoices("intervalSeconds", "interval_seconds", "interval"),
    )
    children: List["Step"] = Field(default_factory=list)


class LoopStep(BaseStep):
    """Repeat children ``repeat_count`` times; -1 repeats forever"""

    type: Literal["loop"] = "loop"
    repeat_count: int = Field(
        default=1,
        validation_alias=AliasChoices("repeatCount", "repeat_count", "repeat"),
    )
    children: List["Step"] = Field(default_factory=list)

    @property
    def is_infinite(self) -> bool:
        return self.repeat_count == INFINITE_REPEAT


Step = Annotated[
    Union[
        WaitStep,
        WaitUntilStep,
        PlaySoundStep,
        PlaySoundUntilStep,
        NotifyStep,
        NotifyUntilStep,
        LoopStep,
    ],
    Field(discriminator="type"),
]

NotifyUntilStep.model_rebuild()
LoopStep.model_rebuild()

_step_adapter: TypeAdapter = TypeAdapter(Step)
_steps_adapter: TypeAdapter = TypeAdapter(List[Step])


def parse_step(data: Any) -> Step:
    """Validate one raw step dict (camelCase or snake_case keys)"""
    return _step_adapter.validate_python(data)


def parse_steps(data: Iterable[Any]) -> List[Step]:
    """Validate a list of raw step dicts"""
    return _steps_adapter.validate_python(list(data))


def dump_steps(steps: Iterable[BaseStep]) -> List[dict]:
    """Serialize steps to JSON-compatible dicts with camelCase keys"""
    return [step.model_dump(mode="json") for step in steps]
