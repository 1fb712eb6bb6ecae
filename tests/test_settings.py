from todo_assistant.repositories import InMemoryRepository, build_repository
from todo_assistant.settings import get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "PERSISTENCE_BACKEND",
            "SQLITE_DB_PATH",
            "SEED_DATA_PATH",
            "CORS_ALLOW_ORIGINS",
            "LOG_LEVEL",
            "LOG_FORMAT",
            "HOST",
            "PORT",
        ):
            monkeypatch.delenv(name, raising=False)
        s = get_settings()
        assert s.persistence_backend == "memory"
        assert s.sqlite_db_path == "./data/todos.db"
        assert s.seed_data_path is None
        assert s.cors_allow_origins == ["*"]
        assert (s.log_level, s.log_format) == ("INFO", "console")
        assert (s.host, s.port) == ("0.0.0.0", 8081)

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", " SQLite ")
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test,")
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PORT", "9000")
        s = get_settings()
        assert s.persistence_backend == "sqlite"
        assert s.cors_allow_origins == ["http://a.test", "http://b.test"]
        assert (s.log_level, s.log_format) == ("DEBUG", "json")
        assert s.port == 9000

    def test_unsupported_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "postgres")
        monkeypatch.setenv("LOG_FORMAT", "xml")
        monkeypatch.setenv("PORT", "eighty")
        s = get_settings()
        assert s.persistence_backend == "memory"
        assert s.log_format == "console"
        assert s.port == 8081

    def test_build_repository_follows_backend(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")
        assert isinstance(build_repository(), InMemoryRepository)

        monkeypatch.setenv("PERSISTENCE_BACKEND", "sqlite")
        monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "app.db"))
        repo = build_repository()
        assert repo.backend == "sqlite"
        repo.close()
        assert (tmp_path / "app.db").exists()
