"""Events blueprint — /api/events (read path only)

Routes:
- GET /api/events       — upcoming events, active boosts first
- GET /api/events/<id>  — single event

Boost state is reported as computed at read time; an expired boost_until
means "not boosted" even if the stored flag was never cleared.
"""

from datetime import datetime, timezone

from flask import Blueprint, abort, jsonify, request
from sqlalchemy import and_, case
from sqlalchemy.orm import joinedload

from viao.extensions import db
from viao.models.event import Event

events_bp = Blueprint("events", __name__, url_prefix="/api/events")

MAX_PAGE_SIZE = 100


@events_bp.route("")
def list_events():
    """List upcoming, non-cancelled events.

    Ordering: premium boosts, then basic boosts (both only while active),
    then everything else by date.
    """
    limit = min(max(request.args.get("limit", 50, type=int), 1), MAX_PAGE_SIZE)
    category = request.args.get("category")
    now = datetime.now(timezone.utc)

    active_level = case(
        (and_(Event.is_boosted.is_(True), Event.boost_until > now), Event.boost_level),
        else_=0,
    )
    query = (
        Event.query
        .options(joinedload(Event.organizer))
        .filter(Event.is_cancelled.is_(False), Event.date >= now)
    )
    if category:
        query = query.filter_by(category=category)
    events = query.order_by(active_level.desc(), Event.date.asc()).limit(limit).all()

    return jsonify({"events": [e.to_dict(now) for e in events]})


@events_bp.route("/<event_id>")
def get_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        abort(404)
    return jsonify({"event": event.to_dict()})
