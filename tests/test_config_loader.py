import pytest

from utils.config_loader import EngagementSettings, get_engagement_settings, load_config


def write_config(path, body):
    path.write_text(body, encoding="utf-8")
    return str(path)


MOODLE_SECTION = "[MOODLE]\nURL = https://moodle.test\nTOKEN = abc\n"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "config.ini"))


def test_missing_moodle_section(tmp_path):
    path = write_config(tmp_path / "config.ini", "[ENGAGEMENT]\ndisplay_period = 86400\n")
    with pytest.raises(ValueError, match="MOODLE"):
        load_config(path)


def test_defaults_are_injected(tmp_path):
    config = load_config(write_config(tmp_path / "config.ini", MOODLE_SECTION))
    assert get_engagement_settings(config) == EngagementSettings()


def test_values_are_read(tmp_path):
    body = MOODLE_SECTION + "[ENGAGEMENT]\ndisplay_period = 86400\nuser_history = 2592000\ntable_prefix = m_\n"
    config = load_config(write_config(tmp_path / "config.ini", body))
    settings = get_engagement_settings(config)

    assert settings.display_period == 86400
    assert settings.user_history == 2592000
    assert settings.table_prefix == "m_"
    assert settings.max_workers == 4


def test_default_location_follows_config_dir(tmp_path, monkeypatch):
    write_config(tmp_path / "config.ini", MOODLE_SECTION)
    monkeypatch.setenv("ACE_CONFIG_DIR", str(tmp_path))
    assert load_config()["MOODLE"]["TOKEN"] == "abc"


@pytest.mark.parametrize("line", [
    "display_period = 0",
    "user_history = -5",
    "display_period = weekly",
    "max_workers = 0",
    "table_prefix = mdl; DROP",
])
def test_invalid_settings(tmp_path, line):
    config = load_config(write_config(tmp_path / "config.ini", MOODLE_SECTION + "[ENGAGEMENT]\n" + line + "\n"))
    with pytest.raises(ValueError):
        get_engagement_settings(config)


def test_sub_day_period_is_rejected(tmp_path):
    body = MOODLE_SECTION + "[ENGAGEMENT]\ndisplay_period = 3600\n"
    config = load_config(write_config(tmp_path / "config.ini", body))
    with pytest.raises(ValueError, match="at least 86400"):
        get_engagement_settings(config)


def test_moodle_section_optional_without_web_service(tmp_path):
    path = write_config(tmp_path / "config.ini", "[ENGAGEMENT]\ndisplay_period = 86400\n")
    config = load_config(path, require_moodle=False)
    assert get_engagement_settings(config).display_period == 86400
