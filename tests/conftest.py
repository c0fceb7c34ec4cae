import pytest

from mini_assistant.services.notices import NoticeBoard
from mini_assistant.services.settings_manager import SettingsManager
from tests.fakes import RecordingFactory


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings.json"


@pytest.fixture
def settings_manager(settings_path):
    return SettingsManager(settings_path)


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def recording_factory():
    return RecordingFactory()
