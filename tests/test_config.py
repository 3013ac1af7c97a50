import pytest

from config.loader import ConfigLoader, get_config, reset_config
from runner.audio import AudioChannel
from runner.backends import SilentAudioBackend
from runner.factory import RunnerFactory
from runner.notifications import NullNotifier
from runner.supervisor import MultiTimerRunner


def test_project_defaults():
    config = ConfigLoader()
    assert config.get("runner.tick_ms") == 250
    assert config.get("runner.notify_grace_ms") == 0
    assert config.get("audio.backend") == "auto"
    assert config.get("runner.missing", "fallback") == "fallback"
    assert config.get("nothing.at.all") is None
    assert config.section("missing") == {}


def test_missing_user_file_is_created(tmp_path):
    user_file = tmp_path / "nested" / "config.toml"
    config = ConfigLoader(str(user_file))
    config.load()
    assert user_file.exists()
    assert config.get("runner.tick_ms") == 250


def test_user_file_overrides_section_keys(tmp_path):
    user_file = tmp_path / "config.toml"
    user_file.write_text('[runner]\ntick_ms = 50\n\n[audio]\nbackend = "silent"\n')
    config = ConfigLoader(str(user_file))
    assert config.get("runner.tick_ms") == 50
    assert config.get("runner.default_timeout_ms") == 10000
    assert config.get("audio.backend") == "silent"


def test_invalid_user_file_raises(tmp_path):
    user_file = tmp_path / "config.toml"
    user_file.write_text("[runner\ntick_ms = ")
    with pytest.raises(ValueError):
        ConfigLoader(str(user_file)).load()


def test_get_config_is_a_singleton(tmp_path):
    assert get_config() is get_config()
    other = get_config(str(tmp_path / "other.toml"))
    assert other is get_config()
    reset_config()
    assert get_config() is not other


class TestFactory:
    def test_silent_audio_backend(self):
        backend = RunnerFactory.create_audio_backend({"backend": "silent", "simulated_duration_ms": 5})
        assert isinstance(backend, SilentAudioBackend)
        assert backend.duration_ms == 5

    def test_unknown_audio_backend_falls_back_to_silent(self):
        assert isinstance(RunnerFactory.create_audio_backend({"backend": "alsa"}), SilentAudioBackend)

    def test_disabled_notifications(self):
        assert isinstance(RunnerFactory.create_notifier({"backend": "none"}), NullNotifier)

    def test_runner_from_config(self, tmp_path):
        user_file = tmp_path / "config.toml"
        user_file.write_text(
            '[runner]\ntick_ms = 20\nnotify_grace_ms = 100\n\n'
            '[audio]\nbackend = "silent"\ndefault_sound = "sounds/bell.mp3"\n\n'
            '[notifications]\nbackend = "none"\n'
        )
        runner = MultiTimerRunner.from_config(ConfigLoader(str(user_file)))
        assert runner.tick_ms == 20
        assert runner.notify_grace_ms == 100
        assert runner.default_sound_url == "sounds/bell.mp3"
        assert isinstance(runner.audio, AudioChannel)
        assert isinstance(runner.audio.backend, SilentAudioBackend)
        assert isinstance(runner.notifier, NullNotifier)
