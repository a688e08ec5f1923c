"""
Tests for logging setup shared by the API and the sync worker
"""

from app.config import Settings


class TestUseJsonLogs:

    def test_production_defaults_to_json(self):
        """The worker and the API both log JSON in production"""
        from app.utils.logging_config import use_json_logs

        settings = Settings(ENVIRONMENT="production", LOG_JSON=False)

        assert use_json_logs(settings) is True

    def test_development_plain_text_by_default(self):
        from app.utils.logging_config import use_json_logs

        assert use_json_logs(Settings(ENVIRONMENT="development", LOG_JSON=False)) is False

    def test_explicit_flag_wins_outside_production(self):
        from app.utils.logging_config import use_json_logs

        assert use_json_logs(Settings(ENVIRONMENT="development", LOG_JSON=True)) is True

    def test_worker_uses_shared_choice(self):
        """worker.py configures logging through the same helper"""
        from pathlib import Path

        source = (Path(__file__).resolve().parent.parent / "worker.py").read_text(encoding="utf-8")

        assert "json_format=use_json_logs(settings)" in source
