"""Site configuration — admin-managed settings.

Settings are stored on the first-created admin's preferences under
"adminSettings". Unknown or malformed values fall back to defaults.
"""

from dataclasses import dataclass

from flask import current_app

from viao.models.user import User


@dataclass(frozen=True)
class SiteConfig:
    stripe_enabled: bool = True


def _settings_from_preferences(preferences):
    if not isinstance(preferences, dict):
        return {}
    raw = preferences.get("adminSettings")
    if not isinstance(raw, dict):
        return {}
    return raw


def get_site_config():
    """Load the current SiteConfig from the first admin's preferences."""
    admin = (
        User.query
        .filter_by(role="ADMIN")
        .order_by(User.created_at.asc())
        .first()
    )
    settings = _settings_from_preferences(admin.preferences if admin else None)

    return SiteConfig(
        stripe_enabled=settings.get("stripeEnabled") is not False,
    )


def boosting_enabled():
    """Boosts can be bought only when both the deployment and the admin allow it."""
    if not current_app.config.get("BOOSTING_ENABLED", True):
        return False
    return get_site_config().stripe_enabled
