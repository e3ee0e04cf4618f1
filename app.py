from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from apscheduler.schedulers.background import BackgroundScheduler
import atexit

db = SQLAlchemy()
scheduler = None

def create_app(config_class='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)

    with app.app_context():
        # Register tables on the shared metadata
        import models  # noqa: F401

        if app.config.get("SCHEDULER_ENABLED"):
            start_scheduler(app)

    return app

def start_scheduler(app):
    """Run the ride generation sweep in the background at the configured interval"""
    from scheduling import generate_scheduled_rides

    global scheduler
    if not scheduler:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            func=lambda: generate_scheduled_rides(app),
            trigger="interval",
            minutes=app.config["GENERATION_INTERVAL_MINUTES"],
            id="ride_generation_sweep",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        # Shut down the scheduler when exiting the app
        atexit.register(lambda: scheduler.shutdown())
    return scheduler
