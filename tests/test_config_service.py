import json

from markboard.services.config_service import DEFAULT_CONFIG, ConfigService


def test_missing_file_is_created_with_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("MARKBOARD_SUPABASE_URL", raising=False)
    monkeypatch.delenv("MARKBOARD_SUPABASE_KEY", raising=False)
    path = tmp_path / "config.json"
    config = ConfigService(path)
    assert path.exists()
    assert json.loads(path.read_text()) == DEFAULT_CONFIG
    assert config.default_shape == "circle"
    assert config.poll_interval_ms == 5000
    assert config.log_levels == {}
    assert not config.has_remote_backend


def test_user_values_merged_over_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("MARKBOARD_SUPABASE_URL", raising=False)
    monkeypatch.delenv("MARKBOARD_SUPABASE_KEY", raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "supabase_url": "https://abc.supabase.co/",
        "supabase_anon_key": "key",
        "author_name": "Dana",
    }))
    config = ConfigService(path)
    assert config.supabase_url == "https://abc.supabase.co"
    assert config.has_remote_backend
    assert config.author_name == "Dana"
    assert config.default_color == "blue"
    # new default keys are written back
    assert "request_timeout" in json.loads(path.read_text())


def test_corrupted_file_is_recreated(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    config = ConfigService(path)
    assert config.author_name == "Current User"
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_environment_overrides_file(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("MARKBOARD_SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("MARKBOARD_SUPABASE_KEY", "env-key")
    config = ConfigService(tmp_path / "config.json")
    assert config.supabase_url == "https://env.supabase.co"
    assert config.supabase_anon_key == "env-key"
    assert config.has_remote_backend


def test_set_and_save(tmp_path) -> None:
    path = tmp_path / "config.json"
    config = ConfigService(path)
    config.set("default_color", "green")
    config.save()
    assert ConfigService(path).default_color == "green"
