"""Settings loading tests."""

import importlib

import config.settings


class TestSettings:
    """Tests for the settings module."""

    def test_project_env_file_is_loaded_before_settings(self, monkeypatch):
        loaded = []
        monkeypatch.setattr("dotenv.load_dotenv", lambda path: loaded.append(path))
        monkeypatch.setenv("RECOMMENDATION_THRESHOLD", "65")

        try:
            module = importlib.reload(config.settings)

            assert loaded == [module.ROOT_DIR / ".env"]
            assert module.settings.recommendation_threshold == 65.0
        finally:
            monkeypatch.undo()
            importlib.reload(config.settings)

    def test_level_thresholds_default(self):
        assert config.settings.Settings().asvs_level_thresholds == {
            "L1": 0.0,
            "L2": 50.0,
            "L3": 90.0,
        }
