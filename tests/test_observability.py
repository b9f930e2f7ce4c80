import dataclasses

import pytest
from fastapi import FastAPI

from game_student.main import create_app, create_app_from_env
from game_student.observability import instrument
from tests.conftest import TEST_SETTINGS


@pytest.fixture
def agent(mocker):
    return mocker.patch("game_student.observability.newrelic.agent")


def test_app_is_not_wrapped_without_license(agent, store, gateway, sender):
    app = create_app(TEST_SETTINGS, store=store, gateway=gateway, sender=sender)

    assert instrument(app, TEST_SETTINGS) is app
    agent.initialize.assert_not_called()
    agent.ASGIApplicationWrapper.assert_not_called()


def test_app_is_wrapped_with_license(agent, store, gateway, sender):
    settings = dataclasses.replace(TEST_SETTINGS, new_relic_license_key="nr-license", app_name="game-student-go")
    app = create_app(settings, store=store, gateway=gateway, sender=sender)

    wrapped = instrument(app, settings)

    assert wrapped is agent.ASGIApplicationWrapper.return_value
    agent.initialize.assert_called_once_with()
    agent.ASGIApplicationWrapper.assert_called_once_with(app)
    assert agent.global_settings.return_value.license_key == "nr-license"
    assert agent.global_settings.return_value.app_name == "game-student-go"


def test_app_factory_reads_license_from_env(agent, tmp_path, monkeypatch, mocker):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'nr.db'}")
    monkeypatch.setenv("JWT_SECRET", "s")
    monkeypatch.setenv("NEW_RELIC_LICENSE_KEY", "nr-license")
    mocker.patch("game_student.main.setup_logging")

    assert create_app_from_env() is agent.ASGIApplicationWrapper.return_value
    assert agent.global_settings.return_value.license_key == "nr-license"


def test_app_factory_without_license(agent, tmp_path, monkeypatch, mocker):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'nr.db'}")
    monkeypatch.setenv("JWT_SECRET", "s")
    monkeypatch.delenv("NEW_RELIC_LICENSE_KEY", raising=False)
    monkeypatch.delenv("NEW_RELIC_LICENSE", raising=False)
    mocker.patch("game_student.main.setup_logging")

    app = create_app_from_env()

    assert isinstance(app, FastAPI)
    agent.ASGIApplicationWrapper.assert_not_called()
