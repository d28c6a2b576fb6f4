"""
Event route handlers.

Provides routes for:
- Registering an event under an organization
- Listing events (all, official, by id)
- RSVP set/get
- A user's administered and RSVP'd events
"""

import logging
import time
from typing import Any, Dict, List

from flask import Blueprint, Request

from quad_backend.auth_service.utils import current_user
from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import HandlerResult, api_route, error_response, is_truthy, log_requests, parse_request_body
from quad_backend.storage.images import has_upload, upload_file

events_bp = Blueprint("events", __name__)
log_requests(events_bp, "Events")

RSVP_STATUSES = ["attending", "maybe", "declined"]
DEFAULT_EVENT_LIMIT = 100
DEFAULT_OFFICIAL_LIMIT = 4

EVENT_WITH_ORG = """
    SELECT e.*, o.name AS organization_name
    FROM EVENT e
    JOIN ORGANIZATION o ON e.organization_id = o.org_id
"""


def parse_limit(value: Any, default: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


# --- REGISTER ---
@api_route(events_bp, "/register-event", ["POST"])
def register_event(req: Request) -> HandlerResult:
    """
    Create an event under an organization the caller administers.

    Form fields:
    - organizationID, title, startDate, endDate (required)
    - description, privacy, landmarkID, customLocation
    - thumbnail, banner (image files)
    - submitForOfficialStatus ("true" to queue for review; needs both images)

    Returns:
        200: { success, message, eventID }
        400: Missing fields or images.
        401: Not authenticated.
        403: Caller is not an admin of the organization.
    """
    auth, err = current_user(req)
    if err:
        return err

    data: Dict[str, Any] = parse_request_body(req) or {}
    organization_id = data.get("organizationID")
    title = (data.get("title") or "").strip()
    description = data.get("description") or ""
    start_date = data.get("startDate")
    end_date = data.get("endDate")
    privacy = data.get("privacy") or "public"
    landmark_id = data.get("landmarkID") or None
    custom_location = data.get("customLocation") or ""
    submit_for_official = is_truthy(data.get("submitForOfficialStatus"))
    thumbnail = data.get("thumbnail")
    banner = data.get("banner")

    if not organization_id or not title or not start_date or not end_date:
        return error_response("Organization ID, title, start date and end date are required", 400)

    if submit_for_official:
        if not has_upload(thumbnail):
            return error_response("Thumbnail is required when submitting for official status", 400)
        if not has_upload(banner):
            return error_response("Banner is required when submitting for official status", 400)

    bindings = get_bindings()
    db = bindings.database

    is_admin = db.query_first(
        "SELECT 1 AS ok FROM ORG_ADMIN WHERE org_id = %s AND user_id = %s;",
        (organization_id, auth.user_id),
    )
    if not is_admin:
        return error_response("User is not an admin of this organization", 403)

    clean_title = "_".join(title.split())
    timestamp = int(time.time() * 1000)
    thumbnail_url = ""
    banner_url = ""
    if has_upload(thumbnail):
        thumbnail_url = upload_file(bindings.storage, thumbnail, f"events/thumbnails/{clean_title}-{timestamp}")
    if has_upload(banner):
        banner_url = upload_file(bindings.storage, banner, f"events/banners/{clean_title}-{timestamp}")

    sql = """
        INSERT INTO EVENT (
            organization_id, title, description, thumbnail, banner,
            start_date, end_date, privacy, landmark_id, custom_location
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING event_id;
    """
    event_id = db.execute(sql, (
        organization_id, title, description, thumbnail_url, banner_url,
        start_date, end_date, privacy, landmark_id, custom_location,
    ))["last_insert_id"]

    db.execute("INSERT INTO EVENT_ADMIN (event_id, user_id) VALUES (%s, %s);", (event_id, auth.user_id))

    if submit_for_official:
        db.execute("INSERT INTO PENDING_SUBMISSION (org_id, event_id) VALUES (NULL, %s);", (event_id,))
        logging.info(f"[Events] Event {event_id} queued for official review")

    logging.info(f"[Events] User {auth.user_id} created event {event_id} in organization {organization_id}")

    return {
        "success": True,
        "message": "Event created successfully",
        "eventID": event_id,
    }


# --- LISTING ---
@api_route(events_bp, "/events", ["GET"])
def list_events(req: Request) -> HandlerResult:
    """
    All events, newest first, optionally for one organization.

    Query params:
    - limit (default 100)
    - organizationID
    """
    limit = parse_limit(req.args.get("limit"), DEFAULT_EVENT_LIMIT)
    organization_id = req.args.get("organizationID")

    sql = EVENT_WITH_ORG
    params: List[Any] = []
    if organization_id:
        sql += " WHERE e.organization_id = %s"
        params.append(organization_id)
    sql += " ORDER BY e.start_date DESC LIMIT %s;"
    params.append(limit)

    return {"success": True, "events": get_bindings().database.query(sql, params)}


@api_route(events_bp, "/events/official", ["GET"])
def list_official_events(req: Request) -> HandlerResult:
    """
    Official events, soonest first. Past events are hidden unless showPast=true.
    """
    limit = parse_limit(req.args.get("limit"), DEFAULT_OFFICIAL_LIMIT)
    show_past = req.args.get("showPast") == "true"

    sql = """
        SELECT e.*, o.name AS organization_name
        FROM EVENT e
        JOIN OFFICIAL_EVENTS oe ON e.event_id = oe.event_id
        LEFT JOIN ORGANIZATION o ON e.organization_id = o.org_id
    """
    if not show_past:
        sql += " WHERE e.end_date >= NOW()"
    sql += " ORDER BY e.start_date ASC LIMIT %s;"

    return {"success": True, "events": get_bindings().database.query(sql, (limit,))}


@api_route(events_bp, "/events/<int:event_id>", ["GET"])
def get_event(req: Request, event_id: int) -> HandlerResult:
    db = get_bindings().database
    event = db.query_first(EVENT_WITH_ORG + " WHERE e.event_id = %s;", (event_id,))
    if not event:
        return error_response("Event not found", 404)

    if event.get("landmark_id"):
        landmark = db.query_first("SELECT name FROM LANDMARK WHERE landmark_id = %s;", (event["landmark_id"],))
        if landmark:
            event["landmark_name"] = landmark["name"]

    return {"success": True, "event": event}


# --- RSVP ---
@api_route(events_bp, "/events/<int:event_id>/rsvp", ["POST"])
def set_rsvp(req: Request, event_id: int) -> HandlerResult:
    """
    Create or update the caller's RSVP for an event.

    Expects JSON: { "rsvpStatus": "attending" | "maybe" | "declined" }

    Returns:
        200: { success, message, rsvpStatus }
        400: Invalid status.
        401: Not authenticated.
        404: Unknown event.
    """
    auth, err = current_user(req)
    if err:
        return err

    db = get_bindings().database
    if not db.query_first("SELECT event_id FROM EVENT WHERE event_id = %s;", (event_id,)):
        return error_response("Event not found", 404)

    data: Dict[str, Any] = parse_request_body(req) or {}
    rsvp_status = data.get("rsvpStatus")
    if rsvp_status not in RSVP_STATUSES:
        return error_response("Invalid RSVP status. Must be 'attending', 'maybe', or 'declined'.", 400)

    existing = db.query_first(
        "SELECT rsvp_status FROM EVENT_RSVP WHERE event_id = %s AND user_id = %s;",
        (event_id, auth.user_id),
    )
    if existing:
        db.execute(
            "UPDATE EVENT_RSVP SET rsvp_status = %s WHERE event_id = %s AND user_id = %s;",
            (rsvp_status, event_id, auth.user_id),
        )
    else:
        db.execute(
            "INSERT INTO EVENT_RSVP (event_id, user_id, rsvp_status) VALUES (%s, %s, %s);",
            (event_id, auth.user_id, rsvp_status),
        )

    return {
        "success": True,
        "message": f"RSVP {'updated' if existing else 'created'} successfully",
        "rsvpStatus": rsvp_status,
    }


@api_route(events_bp, "/events/<int:event_id>/rsvp", ["GET"])
def get_rsvp(req: Request, event_id: int) -> HandlerResult:
    auth, err = current_user(req)
    if err:
        return err

    row = get_bindings().database.query_first(
        "SELECT rsvp_status FROM EVENT_RSVP WHERE event_id = %s AND user_id = %s;",
        (event_id, auth.user_id),
    )
    return {"success": True, "rsvpStatus": row["rsvp_status"] if row else None}


# --- USER EVENTS ---
def merge_user_events(admin_events: List[Dict[str, Any]], rsvp_events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge administered and RSVP'd events into one list, newest first.

    An event in both lists keeps its admin entry (isOrganizer=True) and
    gains the RSVP status.
    """
    merged: Dict[Any, Dict[str, Any]] = {}

    for event in admin_events:
        merged[event["event_id"]] = {**event, "isOrganizer": True}

    for event in rsvp_events:
        if event["event_id"] in merged:
            merged[event["event_id"]]["rsvp_status"] = event.get("rsvp_status")
        else:
            merged[event["event_id"]] = {**event, "isOrganizer": False}

    return sorted(merged.values(), key=lambda e: str(e.get("start_date") or ""), reverse=True)


@api_route(events_bp, "/user-events", ["GET"])
def get_user_events(req: Request) -> HandlerResult:
    auth, err = current_user(req)
    if err:
        return err

    db = get_bindings().database
    admin_events = db.query(
        """
        SELECT e.*, o.name AS organization_name, 'admin' AS role
        FROM EVENT e
        JOIN ORGANIZATION o ON e.organization_id = o.org_id
        JOIN EVENT_ADMIN ea ON e.event_id = ea.event_id
        WHERE ea.user_id = %s;
        """,
        (auth.user_id,),
    )
    rsvp_events = db.query(
        """
        SELECT e.*, o.name AS organization_name, er.rsvp_status, er.rsvp_status AS role
        FROM EVENT e
        JOIN ORGANIZATION o ON e.organization_id = o.org_id
        JOIN EVENT_RSVP er ON e.event_id = er.event_id
        WHERE er.user_id = %s;
        """,
        (auth.user_id,),
    )
    logging.info(f"[Events] User {auth.user_id}: {len(admin_events)} admin, {len(rsvp_events)} RSVP events")

    return {"success": True, "events": merge_user_events(admin_events, rsvp_events)}


@api_route(events_bp, "/user-rsvp-events", ["GET"])
def get_user_rsvp_events(req: Request) -> HandlerResult:
    """
    Events the caller is attending, soonest first.
    """
    auth, err = current_user(req)
    if err:
        return err

    rows = get_bindings().database.query(
        """
        SELECT e.*, o.name AS organization_name, er.rsvp_status
        FROM EVENT e
        JOIN ORGANIZATION o ON e.organization_id = o.org_id
        JOIN EVENT_RSVP er ON e.event_id = er.event_id
        WHERE er.user_id = %s AND er.rsvp_status = 'attending'
        ORDER BY e.start_date ASC;
        """,
        (auth.user_id,),
    )
    return {"success": True, "events": rows}
