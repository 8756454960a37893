import os
import logging

import click
from flask import Flask, jsonify

from viao.config import config_by_name
from viao.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from viao import models  # noqa: F401

    # --- Register blueprints ---
    from viao.blueprints.payments import payments_bp
    from viao.blueprints.webhooks import webhooks_bp
    from viao.blueprints.events import events_bp
    from viao.blueprints.receipts import receipts_bp
    from viao.blueprints.notifications import notifications_bp
    from viao.blueprints.admin import admin_bp

    app.register_blueprint(payments_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(receipts_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(admin_bp)

    # Exempt webhooks from CSRF — raw body needed for Stripe signature verification
    csrf.exempt(webhooks_bp)

    # --- Error handlers ---
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "Forbidden"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(429)
    def too_many_requests(e):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(self), payment=(self)"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--admin-email", default="admin@viao.local", help="Admin email")
    @click.option("--organizer-email", default="organizer@viao.local", help="Organizer email")
    def seed_demo(admin_email, organizer_email):
        """Create an admin, an organizer and one upcoming event.

        Usage:
            flask seed-demo
            flask seed-demo --organizer-email me@example.com
        """
        from datetime import datetime, timedelta, timezone

        from viao.models.event import Event
        from viao.models.user import User

        admin = User.query.filter_by(email=admin_email).first()
        if admin:
            click.echo(f"Admin user already exists: {admin_email}")
        else:
            admin = User(
                email=admin_email,
                name="Admin",
                role="ADMIN",
                preferences={"adminSettings": {"stripeEnabled": True}},
            )
            db.session.add(admin)
            click.echo(f"Created admin user: {admin_email}")

        organizer = User.query.filter_by(email=organizer_email).first()
        if organizer:
            click.echo(f"Organizer already exists: {organizer_email}")
        else:
            organizer = User(
                email=organizer_email, name="Demo Organizer", role="ORGANIZER"
            )
            db.session.add(organizer)
            db.session.flush()
            click.echo(f"Created organizer: {organizer_email}")

        event = Event(
            title="Demo Rooftop Concert",
            description="Live music with a view.",
            date=datetime.now(timezone.utc) + timedelta(days=14),
            location="Zürich",
            category="music",
            organizer_id=organizer.id,
        )
        db.session.add(event)
        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Seed data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  Admin:     {admin.email} (id: {admin.id})")
        click.echo(f"  Organizer: {organizer.email} (id: {organizer.id})")
        click.echo(f"  Event:     {event.title} (id: {event.id})")
        click.echo("=" * 60)

    @app.cli.command("expire-boosts")
    @click.option("--dry-run", is_flag=True, help="Only list stale boost flags.")
    def expire_boosts(dry_run):
        """Clear is_boosted on events whose boost window has ended.

        Housekeeping only: every read already treats an expired
        boost_until as not boosted.

        Usage:
            flask expire-boosts
            flask expire-boosts --dry-run
        """
        from datetime import datetime, timezone

        from viao.models.event import Event

        now = datetime.now(timezone.utc)
        stale = Event.query.filter(
            Event.is_boosted.is_(True),
            db.or_(Event.boost_until.is_(None), Event.boost_until <= now),
        ).all()

        for event in stale:
            click.echo(f"  {event.id}  {event.title}  (until {event.boost_until})")
            if not dry_run:
                event.is_boosted = False
                event.boost_level = 0

        if dry_run:
            click.echo(f"{len(stale)} stale boost(s) found (dry run).")
        else:
            db.session.commit()
            click.echo(f"Cleared {len(stale)} stale boost(s).")
