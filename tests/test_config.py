from tra_query.config import AppConfig, FilterConfig, get_config, reset_config


def test_defaults():
    config = AppConfig()

    assert config.filter.timezone == "Asia/Taipei"
    assert config.filter.default_window_hours == 2
    assert config.filter.restricted_train_types == ["1", "2"]
    assert config.filter.max_travel_hours == 8
    assert config.parser.min_confidence == 0.4
    assert config.directory.top_n == 5
    assert config.service.live_board_ttl_seconds == 120.0
    assert config.directory.stations_path.name == "stations.json"
    assert config.directory.stations_path.exists()


def test_environment_override(monkeypatch):
    monkeypatch.setenv("TRA_FILTER_DEFAULT_WINDOW_HOURS", "4")
    monkeypatch.setenv("TRA_DIRECTORY_TOP_N", "10")
    reset_config()

    config = get_config()

    assert config.filter.default_window_hours == 4
    assert config.directory.top_n == 10


def test_get_config_is_cached():
    assert get_config() is get_config()
    first = get_config()
    reset_config()
    assert get_config() is not first


def test_restricted_types_from_json_env(monkeypatch):
    monkeypatch.setenv("TRA_FILTER_RESTRICTED_TRAIN_TYPES", '["1"]')

    assert FilterConfig().restricted_train_types == ["1"]
