"""
Landmark route handlers.
"""

from flask import Blueprint, Request

from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import HandlerResult, api_route, log_requests

landmarks_bp = Blueprint("landmarks", __name__)
log_requests(landmarks_bp, "Landmarks")


@api_route(landmarks_bp, "/landmarks", ["GET"])
def list_landmarks(req: Request) -> HandlerResult:
    rows = get_bindings().database.query(
        "SELECT landmark_id, name, location, multi_event_allowed FROM LANDMARK ORDER BY name ASC;"
    )
    return {"success": True, "landmarks": rows}


@api_route(landmarks_bp, "/check-landmark-availability", ["POST"])
def check_landmark_availability(req: Request) -> HandlerResult:
    """
    Report whether a landmark is free for a time window.
    Scheduling conflicts are not tracked, so every landmark is available.
    """
    return {"success": True, "available": True}
