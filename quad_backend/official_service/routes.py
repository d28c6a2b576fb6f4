"""
Official status route handlers.

Organizations and events can be put forward for official status. A pending
request lives in PENDING_SUBMISSION until a reviewer approves it (moving it
to OFFICIAL_ORGS / OFFICIAL_EVENTS) or rejects it (dropping it).
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Request

from quad_backend.auth_service.utils import current_user
from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import HandlerResult, api_route, error_response, is_truthy, log_requests, parse_request_body

official_bp = Blueprint("official", __name__)
log_requests(official_bp, "Official")

# kind -> (entity table, id column, admin table, official table)
TARGETS: Dict[str, Tuple[str, str, str, str]] = {
    "org": ("ORGANIZATION", "org_id", "ORG_ADMIN", "OFFICIAL_ORGS"),
    "event": ("EVENT", "event_id", "EVENT_ADMIN", "OFFICIAL_EVENTS"),
}


def resolve_target(org_id: Any, event_id: Any) -> Optional[Tuple[str, Any]]:
    """
    Pick the single target of a request. Exactly one of the ids must be set.
    """
    if org_id and not event_id:
        return "org", org_id
    if event_id and not org_id:
        return "event", event_id
    return None


def official_state(db, kind: str, target_id: Any) -> Tuple[bool, bool]:
    """
    Returns:
        tuple: (is_official, is_pending)
    """
    _, id_column, _, official_table = TARGETS[kind]
    is_official = db.query_first(
        f"SELECT 1 AS ok FROM {official_table} WHERE {id_column} = %s;", (target_id,)
    )
    is_pending = db.query_first(
        f"SELECT 1 AS ok FROM PENDING_SUBMISSION WHERE {id_column} = %s;", (target_id,)
    )
    return is_official is not None, is_pending is not None


# --- SUBMIT ---
@api_route(official_bp, "/submit-official", ["POST"])
def submit_official(req: Request) -> HandlerResult:
    """
    Put an organization or event the caller administers up for review.

    Expects JSON: { "orgID": ... } or { "eventID": ... }

    Returns:
        200: Submission queued.
        400: Neither/both ids, missing images, already pending or official.
        401: Not authenticated.
        403: Caller does not administer the target.
        404: Unknown target.
    """
    auth, err = current_user(req)
    if err:
        return err

    data: Dict[str, Any] = parse_request_body(req) or {}
    target = resolve_target(data.get("orgID"), data.get("eventID"))
    if target is None:
        return error_response("Exactly one of orgID or eventID must be provided", 400)
    kind, target_id = target
    table, id_column, admin_table, _ = TARGETS[kind]

    db = get_bindings().database

    is_admin = db.query_first(
        f"SELECT 1 AS ok FROM {admin_table} WHERE {id_column} = %s AND user_id = %s;",
        (target_id, auth.user_id),
    )
    if not is_admin:
        return error_response("You don't have permission to submit this for official status", 403)

    entity = db.query_first(f"SELECT thumbnail, banner FROM {table} WHERE {id_column} = %s;", (target_id,))
    if not entity:
        return error_response("Not found", 404)
    if not entity.get("thumbnail") or not entity.get("banner"):
        return error_response("Thumbnail and banner are required for official status", 400)

    is_official, is_pending = official_state(db, kind, target_id)
    if is_pending:
        return error_response("Already pending official status review", 400)
    if is_official:
        return error_response("Already has official status", 400)

    org_id, event_id = (target_id, None) if kind == "org" else (None, target_id)
    db.execute("INSERT INTO PENDING_SUBMISSION (org_id, event_id) VALUES (%s, %s);", (org_id, event_id))
    logging.info(f"[Official] User {auth.user_id} submitted {kind} {target_id} for review")

    return {"success": True, "message": "Submitted for official status review"}


@api_route(official_bp, "/check-official", ["GET"])
def check_official(req: Request) -> HandlerResult:
    target = resolve_target(req.args.get("orgID"), req.args.get("eventID"))
    if target is None:
        return error_response("Either orgID or eventID parameter is required", 400)

    is_official, is_pending = official_state(get_bindings().database, *target)
    return {"success": True, "isOfficial": is_official, "isPending": is_pending}


# --- REVIEW ---
def require_staff(req: Request):
    """
    Authenticate the request and require a STAFF row for the caller.

    Returns:
        tuple: (auth, None), or (None, 401/403 error response).
    """
    auth, err = current_user(req)
    if err:
        return None, err

    is_staff = get_bindings().database.query_first(
        "SELECT 1 AS ok FROM STAFF WHERE user_id = %s;", (auth.user_id,)
    )
    if not is_staff:
        return None, error_response("Staff access required", 403)
    return auth, None


@api_route(official_bp, "/admin/pending-submissions", ["GET"])
def list_pending_submissions(req: Request) -> HandlerResult:
    auth, err = require_staff(req)
    if err:
        return err

    db = get_bindings().database
    pending_orgs = db.query(
        """
        SELECT ps.submission_id, o.*
        FROM PENDING_SUBMISSION ps
        JOIN ORGANIZATION o ON o.org_id = ps.org_id
        WHERE ps.org_id IS NOT NULL
        ORDER BY ps.submission_id ASC;
        """
    )
    pending_events = db.query(
        """
        SELECT ps.submission_id, e.*
        FROM PENDING_SUBMISSION ps
        JOIN EVENT e ON e.event_id = ps.event_id
        WHERE ps.event_id IS NOT NULL
        ORDER BY ps.submission_id ASC;
        """
    )
    return {
        "success": True,
        "pendingOrganizations": pending_orgs,
        "pendingEvents": pending_events,
    }


@api_route(official_bp, "/admin/pending-counts", ["GET"])
def count_pending_submissions(req: Request) -> HandlerResult:
    auth, err = require_staff(req)
    if err:
        return err

    db = get_bindings().database
    orgs = db.query_first("SELECT COUNT(*) AS count FROM PENDING_SUBMISSION WHERE org_id IS NOT NULL;")
    events = db.query_first("SELECT COUNT(*) AS count FROM PENDING_SUBMISSION WHERE event_id IS NOT NULL;")
    return {
        "success": True,
        "pendingOrganizations": orgs["count"] if orgs else 0,
        "pendingEvents": events["count"] if events else 0,
    }


@api_route(official_bp, "/admin/submissions/<int:submission_id>", ["GET"])
def get_submission(req: Request, submission_id: int) -> HandlerResult:
    """
    One pending submission with the organization or event it refers to.

    Organization details carry member and event counts; event details carry
    RSVP counts by status.
    """
    auth, err = require_staff(req)
    if err:
        return err

    db = get_bindings().database
    submission = db.query_first(
        "SELECT * FROM PENDING_SUBMISSION WHERE submission_id = %s;", (submission_id,)
    )
    if not submission:
        return error_response("Submission not found", 404)

    if submission.get("org_id"):
        org_id = submission["org_id"]
        details = db.query_first("SELECT * FROM ORGANIZATION WHERE org_id = %s;", (org_id,)) or {}
        members = db.query_first("SELECT COUNT(*) AS count FROM ORG_MEMBER WHERE org_id = %s;", (org_id,))
        events = db.query_first("SELECT COUNT(*) AS count FROM EVENT WHERE organization_id = %s;", (org_id,))
        details["member_count"] = members["count"] if members else 0
        details["events_count"] = events["count"] if events else 0
        kind = "organization"
    else:
        event_id = submission["event_id"]
        details = db.query_first("SELECT * FROM EVENT WHERE event_id = %s;", (event_id,)) or {}
        counts = db.query(
            "SELECT rsvp_status, COUNT(*) AS count FROM EVENT_RSVP WHERE event_id = %s GROUP BY rsvp_status;",
            (event_id,),
        )
        details["rsvp_counts"] = {r["rsvp_status"]: r["count"] for r in counts}
        kind = "event"

    return {"success": True, "submission": submission, "type": kind, "details": details}


@api_route(official_bp, "/admin/submissions/decision", ["POST"])
def decide_submission(req: Request) -> HandlerResult:
    """
    Approve or reject a pending submission.

    Expects JSON: { "submissionID": int, "approved": bool }

    Approval records official status and removes the pending row in one
    batch; rejection only removes the pending row.
    """
    auth, err = require_staff(req)
    if err:
        return err

    data: Dict[str, Any] = parse_request_body(req) or {}
    submission_id = data.get("submissionID")
    if not submission_id:
        return error_response("submissionID is required", 400)
    approved = is_truthy(data.get("approved"))

    db = get_bindings().database
    submission = db.query_first(
        "SELECT * FROM PENDING_SUBMISSION WHERE submission_id = %s;", (submission_id,)
    )
    if not submission:
        return error_response("Submission not found", 404)

    remove_pending = ("DELETE FROM PENDING_SUBMISSION WHERE submission_id = %s;", (submission_id,))

    if not approved:
        db.execute(*remove_pending)
        logging.info(f"[Official] User {auth.user_id} rejected submission {submission_id}")
        return {"success": True, "message": "Official status rejected"}

    if submission.get("org_id"):
        grant = ("INSERT INTO OFFICIAL_ORGS (org_id) VALUES (%s);", (submission["org_id"],))
    else:
        grant = ("INSERT INTO OFFICIAL_EVENTS (event_id) VALUES (%s);", (submission["event_id"],))

    db.batch([grant, remove_pending])
    logging.info(f"[Official] User {auth.user_id} approved submission {submission_id}")

    return {"success": True, "message": "Official status approved"}
