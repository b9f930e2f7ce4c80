"""
New Relic APM for the HTTP app.

The agent is only started when a license key is configured; otherwise the
app is served as-is.
"""
import logging

import newrelic.agent

from game_student.config import Settings

logger = logging.getLogger(__name__)


def instrument(app, settings: Settings):
    if not settings.new_relic_license_key:
        logger.info("NEW_RELIC_LICENSE_KEY is not set, New Relic agent disabled")
        return app

    newrelic.agent.initialize()

    agent_settings = newrelic.agent.global_settings()
    agent_settings.app_name = settings.app_name
    agent_settings.license_key = settings.new_relic_license_key
    agent_settings.application_logging.forwarding.enabled = True

    logger.info("New Relic agent enabled for %s", settings.app_name)
    return newrelic.agent.ASGIApplicationWrapper(app)
