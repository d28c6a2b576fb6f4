"""
Organization route handlers.
"""

import logging
from typing import Any, Dict

from flask import Blueprint, Request

from quad_backend.auth_service.utils import current_user, resolve_user_id
from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import HandlerResult, api_route, error_response, is_truthy, log_requests, parse_request_body
from quad_backend.storage.images import has_upload, upload_file

organizations_bp = Blueprint("organizations", __name__)
log_requests(organizations_bp, "Organizations")

VALID_PRIVACY = ["public", "private"]


# --- REGISTER ---
@api_route(organizations_bp, "/register-organization", ["POST"])
def register_organization(req: Request) -> HandlerResult:
    """
    Create an organization owned by the authenticated user.

    Form fields:
    - name (required), description, privacy (public|private)
    - thumbnail, banner (image files)
    - submitForOfficialStatus ("true" to queue for review; needs both images)

    Returns:
        200: { success, message, orgID }
        400: Missing name, duplicate name, or missing images for review.
        401: Not authenticated.
    """
    auth, err = current_user(req)
    if err:
        return err

    data: Dict[str, Any] = parse_request_body(req) or {}
    name = (data.get("name") or "").strip()
    description = data.get("description") or ""
    privacy = data.get("privacy") or "public"
    if privacy not in VALID_PRIVACY:
        privacy = "public"
    submit_for_official = is_truthy(data.get("submitForOfficialStatus"))
    thumbnail = data.get("thumbnail")
    banner = data.get("banner")

    if not name:
        return error_response("Missing required fields: name", 400)

    if submit_for_official and not (has_upload(thumbnail) and has_upload(banner)):
        return error_response("Thumbnail and banner are required when submitting for official status", 400)

    bindings = get_bindings()
    db = bindings.database

    if db.query_first("SELECT org_id FROM ORGANIZATION WHERE LOWER(name) = LOWER(%s);", (name,)):
        return error_response("Organization name already exists", 400)

    clean_name = "_".join(name.split())
    thumbnail_url = ""
    banner_url = ""
    if has_upload(thumbnail):
        thumbnail_url = upload_file(bindings.storage, thumbnail, f"thumbnails/Thumb_{clean_name}")
    if has_upload(banner):
        banner_url = upload_file(bindings.storage, banner, f"banners/Banner_{clean_name}")

    sql = """
        INSERT INTO ORGANIZATION (name, description, thumbnail, banner, privacy)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING org_id;
    """
    org_id = db.execute(sql, (name, description, thumbnail_url, banner_url, privacy))["last_insert_id"]

    # The creator administers the new organization
    db.execute("INSERT INTO ORG_ADMIN (org_id, user_id) VALUES (%s, %s);", (org_id, auth.user_id))

    if submit_for_official:
        db.execute("INSERT INTO PENDING_SUBMISSION (org_id, event_id) VALUES (%s, NULL);", (org_id,))

    logging.info(f"[Organizations] User {auth.user_id} created organization {org_id}")

    return {
        "success": True,
        "message": "Organization created successfully",
        "orgID": org_id,
    }


@api_route(organizations_bp, "/check-organization-name", ["GET"])
def check_organization_name(req: Request) -> HandlerResult:
    name = req.args.get("name", "")
    row = get_bindings().database.query_first(
        "SELECT org_id FROM ORGANIZATION WHERE LOWER(name) = LOWER(%s);", (name,)
    )
    return {"success": True, "exists": row is not None}


# --- MEMBERSHIP LISTS ---
@api_route(organizations_bp, "/user-organizations", ["GET"])
def get_user_organizations(req: Request) -> HandlerResult:
    """
    Organizations the caller administers.
    """
    user_id = resolve_user_id(req)
    if not user_id:
        return error_response("User ID is required", 400)

    rows = get_bindings().database.query(
        """
        SELECT o.* FROM ORGANIZATION o
        JOIN ORG_ADMIN oa ON o.org_id = oa.org_id
        WHERE oa.user_id = %s
        ORDER BY o.name ASC;
        """,
        (user_id,),
    )
    return {"success": True, "organizations": rows}


@api_route(organizations_bp, "/user-member-organizations", ["GET"])
def get_user_member_organizations(req: Request) -> HandlerResult:
    """
    Organizations the caller has joined as a member.
    """
    user_id = resolve_user_id(req)
    if not user_id:
        return error_response("User ID is required", 400)

    rows = get_bindings().database.query(
        """
        SELECT o.* FROM ORGANIZATION o
        JOIN ORG_MEMBER om ON o.org_id = om.org_id
        WHERE om.user_id = %s
        ORDER BY o.name ASC;
        """,
        (user_id,),
    )
    return {"success": True, "organizations": rows}


# --- LISTING ---
@api_route(organizations_bp, "/organizations", ["GET"])
def list_organizations(req: Request) -> HandlerResult:
    rows = get_bindings().database.query(
        """
        SELECT o.*, COUNT(om.user_id) AS member_count
        FROM ORGANIZATION o
        LEFT JOIN ORG_MEMBER om ON o.org_id = om.org_id
        GROUP BY o.org_id
        ORDER BY o.name ASC;
        """
    )
    return {"success": True, "organizations": rows}


@api_route(organizations_bp, "/organizations/public/banners", ["GET"])
def list_public_banners(req: Request) -> HandlerResult:
    """
    Banners of public organizations, for the landing page carousel.
    """
    rows = get_bindings().database.query(
        """
        SELECT org_id, name, banner FROM ORGANIZATION
        WHERE privacy = 'public' AND banner IS NOT NULL AND banner <> ''
        ORDER BY name ASC;
        """
    )
    return {"success": True, "banners": rows}


@api_route(organizations_bp, "/organizations/<int:org_id>", ["GET"])
def get_organization(req: Request, org_id: int) -> HandlerResult:
    """
    One organization with its member count and admins.

    Returns:
        200: { success, organization }
        404: Unknown organization.
    """
    db = get_bindings().database
    organization = db.query_first(
        """
        SELECT o.*, COUNT(om.user_id) AS member_count
        FROM ORGANIZATION o
        LEFT JOIN ORG_MEMBER om ON o.org_id = om.org_id
        WHERE o.org_id = %s
        GROUP BY o.org_id;
        """,
        (org_id,),
    )
    if not organization:
        return error_response("Organization not found", 404)

    organization["admins"] = db.query(
        """
        SELECT u.user_id AS id, u.email, u.first_name, u.last_name, u.profile_picture
        FROM ORG_ADMIN oa
        JOIN USERS u ON oa.user_id = u.user_id
        WHERE oa.org_id = %s;
        """,
        (org_id,),
    )
    return {"success": True, "organization": organization}


@api_route(organizations_bp, "/organizations/<int:org_id>/events", ["GET"])
def get_organization_events(req: Request, org_id: int) -> HandlerResult:
    rows = get_bindings().database.query(
        "SELECT e.* FROM EVENT e WHERE e.organization_id = %s ORDER BY e.start_date ASC;",
        (org_id,),
    )
    return {"success": True, "events": rows}


# --- DELETE ---
@api_route(organizations_bp, "/organizations/<int:org_id>", ["DELETE"])
def delete_organization(req: Request, org_id: int) -> HandlerResult:
    """
    Delete an organization with its events, admins and members.

    Only an admin of the organization may delete it.

    Returns:
        200: Deleted.
        401: Not authenticated.
        403: Caller does not administer the organization.
    """
    auth, err = current_user(req)
    if err:
        return err

    db = get_bindings().database
    is_admin = db.query_first(
        "SELECT 1 AS ok FROM ORG_ADMIN WHERE org_id = %s AND user_id = %s;",
        (org_id, auth.user_id),
    )
    if not is_admin:
        return error_response("You don't have permission to delete this organization", 403)

    db.batch([
        ("DELETE FROM EVENT_ADMIN WHERE event_id IN (SELECT event_id FROM EVENT WHERE organization_id = %s);", (org_id,)),
        ("DELETE FROM EVENT_RSVP WHERE event_id IN (SELECT event_id FROM EVENT WHERE organization_id = %s);", (org_id,)),
        ("DELETE FROM EVENT WHERE organization_id = %s;", (org_id,)),
        ("DELETE FROM ORG_ADMIN WHERE org_id = %s;", (org_id,)),
        ("DELETE FROM ORG_MEMBER WHERE org_id = %s;", (org_id,)),
        ("DELETE FROM ORGANIZATION WHERE org_id = %s;", (org_id,)),
    ])
    logging.info(f"[Organizations] User {auth.user_id} deleted organization {org_id}")

    return {"success": True, "message": "Organization deleted successfully"}
