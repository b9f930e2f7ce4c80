import pytest
from sqlalchemy import inspect

from game_student import cli
from game_student.config import Settings
from game_student.database import make_engine, make_session_factory
from game_student.models import Course, Training


@pytest.fixture
def env(tmp_path, monkeypatch, mocker):
    database_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("JWT_SECRET", "cli-secret")
    mocker.patch("game_student.cli.setup_logging")
    return database_url


def test_settings_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("JWT_SECRET", "s")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("PLATFORM_FEE_PERCENT", "15")
    monkeypatch.setenv("NEW_RELIC_APP_NAME", "game-student-go")
    monkeypatch.delenv("APP_NAME", raising=False)

    settings = Settings.from_env(env_file=tmp_path / ".env")

    assert settings.port == 9000
    assert settings.platform_fee_percent == 15
    assert settings.token_ttl_minutes == 5
    assert settings.app_name == "game-student-go"


def test_settings_require_database_url(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        Settings.from_env(env_file=tmp_path / ".env")


def test_migrate_creates_tables(env):
    cli.main(["migrate"])

    tables = inspect(make_engine(env)).get_table_names()
    assert {"users", "courses", "trainings", "cards", "payments"} <= set(tables)


def test_seed_is_repeatable(env):
    cli.main(["migrate"])
    cli.main(["seed"])
    cli.main(["seed"])

    db = make_session_factory(make_engine(env))()
    assert db.query(Course).count() == len(cli.DEMO_COURSES)
    assert db.query(Training).count() == sum(len(c["trainings"]) for c in cli.DEMO_COURSES)
    db.close()


def test_serve_runs_app_factory(env, mocker):
    run = mocker.patch("uvicorn.run")

    cli.main(["serve"])

    assert run.call_args.args[0] == "game_student.main:create_app_from_env"
    assert run.call_args.kwargs["factory"] is True
    assert run.call_args.kwargs["timeout_graceful_shutdown"] == 5


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        cli.main(["explode"])
