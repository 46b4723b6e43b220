import logging

import click
from flask import Flask
from flask_migrate import Migrate
from sqlalchemy import inspect

from config import Config
from models import db
from models.user import User, Role
from reservations.commit import complete_past_bookings
from reservations.locks import cleanup_expired_locks
from routes import health_bp, booking_bp, court_bp, owner_bp, admin_bp
from utils.audit import log_event
from utils.auth_context import load_current_user
from utils.seed import seed_roles


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(court_bp)
    app.register_blueprint(owner_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles once the schema is there (safe & idempotent)
    with app.app_context():
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("cleanup-locks")
    def cleanup_locks():
        """Delete expired slot locks. Reads already ignore them; this keeps the table small."""
        deleted, failure = cleanup_expired_locks()
        if failure is not None:
            raise click.ClickException(failure.message)
        log_event("LOCKS_CLEANUP", entity="slot_lock", metadata={"deleted": deleted})
        print(f"Deleted {deleted} expired locks")

    @app.cli.command("complete-bookings")
    def complete_bookings():
        """Mark confirmed bookings that have ended as completed."""
        done, failure = complete_past_bookings()
        if failure is not None:
            raise click.ClickException(failure.message)
        log_event("BOOKINGS_COMPLETE", entity="booking", metadata={"completed": done})
        print(f"Completed {done} bookings")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
