"""
Command line entry point.

Usage:
    game-student serve
    game-student migrate
    game-student seed
    game-student reconcile --hours 24
"""
import argparse
import logging
from datetime import datetime, timedelta, timezone

import uvicorn

from game_student.config import Settings
from game_student.database import Base, make_engine, make_session_factory
from game_student.logging_config import setup_logging
from game_student.models import Course, Training
from game_student.reconciliation import reconcile
from game_student.store import SqlStore
from game_student.stripe_service import StripeGateway

logger = logging.getLogger(__name__)

DEMO_COURSES = [
    {
        "name": "Unity para iniciantes",
        "description": "Do zero ao primeiro jogo 2D.",
        "logo_url": "https://cdn.escoladojogo.com/logos/unity.png",
        "trainings": [
            {"sequence": 1, "topic": "Introdução", "name": "Instalando a Unity",
             "url": "https://videos.escoladojogo.com/unity/1", "is_free": True},
            {"sequence": 2, "topic": "Introdução", "name": "Primeira cena",
             "url": "https://videos.escoladojogo.com/unity/2", "is_free": False,
             "project_url": "https://github.com/escoladojogo/unity-primeira-cena"},
        ],
    },
    {
        "name": "Godot 4",
        "description": "GDScript e física 2D.",
        "logo_url": "https://cdn.escoladojogo.com/logos/godot.png",
        "trainings": [
            {"sequence": 1, "topic": "GDScript", "name": "Variáveis e funções",
             "url": "https://videos.escoladojogo.com/godot/1", "is_free": True},
        ],
    },
]


def migrate(settings: Settings):
    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    logger.info("Migrations complete")


def seed(settings: Settings):
    engine = make_engine(settings.database_url)
    db = make_session_factory(engine)()
    try:
        for data in DEMO_COURSES:
            if db.query(Course).filter_by(name=data["name"]).first():
                logger.info("Course %s already exists", data["name"])
                continue
            course = Course(name=data["name"], description=data["description"], logo_url=data["logo_url"])
            db.add(course)
            db.flush()
            for training in data["trainings"]:
                db.add(Training(course_id=course.id, **training))
            logger.info("Created course %s", data["name"])
        db.commit()
    finally:
        db.close()
        engine.dispose()


def run_reconcile(settings: Settings, hours: int):
    engine = make_engine(settings.database_url)
    store = SqlStore(make_session_factory(engine))
    gateway = StripeGateway(settings.stripe_secret_key, api_version=settings.stripe_api_version)
    since = datetime.now(timezone.utc) - timedelta(hours=hours)
    try:
        summary = reconcile(store, gateway, since)
    finally:
        engine.dispose()
    print(summary)


def serve(settings: Settings):
    logger.info("starting %s on %s:%s", settings.app_name, settings.host, settings.port)
    uvicorn.run(
        "game_student.main:create_app_from_env",
        factory=True,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_config=None,
    )


def build_parser():
    parser = argparse.ArgumentParser(prog="game-student", description="Game student backend")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the HTTP API")
    sub.add_parser("migrate", help="Create missing tables")
    sub.add_parser("seed", help="Insert the demo course catalog")
    reconcile_parser = sub.add_parser("reconcile", help="Sync local payments with Stripe")
    reconcile_parser.add_argument("--hours", type=int, default=24,
                                  help="Look back this many hours for orphaned payment intents")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if args.command == "serve":
        serve(settings)
    elif args.command == "migrate":
        migrate(settings)
    elif args.command == "seed":
        seed(settings)
    elif args.command == "reconcile":
        run_reconcile(settings, args.hours)


if __name__ == "__main__":
    main()
