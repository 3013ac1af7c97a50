import pytest
from pydantic import ValidationError

from models import (
    LoopStep,
    Meridiem,
    NotifyUntilStep,
    PlaySoundStep,
    SoundSource,
    Timer,
    TimerMode,
    WaitUntilStep,
    dump_steps,
    make_unique_name,
    normalize_timer,
    parse_step,
    parse_steps,
)


class TestStepParsing:
    def test_discriminates_by_type(self):
        steps = parse_steps(
            [
                {"type": "wait", "amount": 3, "unit": "minutes"},
                {"type": "loop", "repeatCount": 2, "children": [{"type": "notify", "title": "Hi"}]},
            ]
        )
        assert steps[0].type == "wait"
        assert isinstance(steps[1], LoopStep)
        assert steps[1].children[0].title == "Hi"

    def test_legacy_keys(self):
        wait_until = parse_step({"type": "waitUntil", "time": "6:30", "ampm": "PM"})
        assert isinstance(wait_until, WaitUntilStep)
        assert wait_until.meridiem is Meridiem.PM

        sound = parse_step(
            {"type": "playSound", "soundType": "custom", "customUrl": "https://x/a.mp3"}
        )
        assert isinstance(sound, PlaySoundStep)
        assert sound.sound_source is SoundSource.URL
        assert sound.url == "https://x/a.mp3"

        assert parse_step({"type": "loop", "repeat": 5}).repeat_count == 5
        assert parse_step({"type": "notifyUntil", "interval": 2}).interval_seconds == 2

    def test_uploaded_legacy_value(self):
        step = parse_step({"type": "playSoundUntil", "soundSource": "upload", "url": "data:a"})
        assert step.sound_source is SoundSource.UPLOADED

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_step({"type": "teleport"})

    def test_dump_uses_camel_case(self):
        data = dump_steps([NotifyUntilStep(title="Up", timeout_ms=500)])[0]
        assert data["type"] == "notifyUntil"
        assert data["timeoutMs"] == 500
        assert data["intervalSeconds"] == 0.5
        assert data["soundSource"] == "default"
        assert data["children"] == []

    def test_steps_are_immutable(self):
        step = parse_step({"type": "wait", "amount": 1})
        with pytest.raises(ValidationError):
            step.amount = 2


class TestTimer:
    def test_legacy_blocks_and_mode(self):
        timer = Timer.model_validate(
            {"name": "Old", "blocks": [{"type": "wait", "amount": 1}], "mode": "simpleStopwatch", "logs": None}
        )
        assert len(timer.steps) == 1
        assert timer.mode is TimerMode.STOPWATCH
        assert timer.logs == []

    def test_missing_mode_is_sequence(self):
        assert Timer.model_validate({"name": "T", "mode": None}).mode is TimerMode.SEQUENCE

    def test_json_round_trip(self):
        timer = Timer(
            name="Morning",
            steps=parse_steps(
                [{"type": "loop", "repeatCount": -1, "children": [{"type": "wait", "amount": 2}]}]
            ),
        )
        assert Timer.model_validate_json(timer.model_dump_json()) == timer

    def test_stopwatch_is_never_locked(self):
        timer = normalize_timer(Timer(name="SW", mode="stopwatch", locked=True))
        assert timer.locked is False
        assert normalize_timer(Timer(name="Seq", locked=True)).locked is True


class TestMakeUniqueName:
    def test_free_name_is_trimmed(self):
        assert make_unique_name("  Work  ", []) == "Work"

    def test_case_insensitive_suffixing(self):
        timers = [Timer(name="work"), Timer(name="Work2")]
        assert make_unique_name("Work", timers) == "Work3"

    def test_ignores_own_id(self):
        timer = Timer(name="Work")
        assert make_unique_name("Work", [timer], ignore_id=timer.id) == "Work"

    def test_blank_falls_back(self):
        assert make_unique_name("   ", []) == "New Timer"
        assert make_unique_name("", [Timer(name="New Timer")]) == "New Timer2"
