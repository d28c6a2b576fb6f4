"""
User account route handlers.

Provides routes for:
- Signup
- Login
- Profile retrieval and update (/user-profile)
- Email availability check
- User listing and lookup

Token and password logic is delegated to `auth_service.utils`.
"""

import logging
import time
from typing import Any, Dict, List

from flask import Blueprint, Request

from quad_backend.auth_service.utils import current_user, issue_token, make_password_hash, verify_password
from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import HandlerResult, api_route, error_response, log_requests, parse_request_body
from quad_backend.storage.images import has_upload, upload_file

users_bp = Blueprint("users", __name__)
log_requests(users_bp, "Users")

PUBLIC_USER_COLUMNS = "user_id, username, first_name, last_name, email, phone, profile_picture"


def public_user(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Strip a USERS row down to what clients may see.
    """
    return {
        "id": row.get("user_id"),
        "user_id": row.get("user_id"),
        "username": row.get("username"),
        "first_name": row.get("first_name"),
        "last_name": row.get("last_name"),
        "email": row.get("email"),
        "phone": row.get("phone"),
        "profile_picture": row.get("profile_picture"),
    }


# --- SIGNUP ---
@api_route(users_bp, "/signup", ["POST"])
def signup(req: Request) -> HandlerResult:
    """
    Register a new user.

    Expects a JSON body with:
    - email, password (required)
    - first_name, last_name, username, phone (optional)

    Returns:
        200: success, token and the public user record.
        400: Missing fields, or username/email already taken.
        500: Database error.
    """
    data: Dict[str, Any] = parse_request_body(req) or {}
    first_name = data.get("first_name")
    last_name = data.get("last_name")
    username = data.get("username")
    email = (data.get("email") or "").strip()
    phone = data.get("phone") or None
    password = data.get("password", "")

    required = [("Email", email), ("Password", password)]
    missing: List[str] = [label for label, value in required if not value]
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}", 400)

    bindings = get_bindings()
    db = bindings.database

    if username and db.query_first("SELECT user_id FROM USERS WHERE LOWER(username) = LOWER(%s);", (username,)):
        return error_response("A user with this username already exists", 400)

    if db.query_first("SELECT user_id FROM USERS WHERE LOWER(email) = LOWER(%s);", (email,)):
        return error_response("A user with this email already exists", 400)

    settings = bindings.settings
    pw_hash = make_password_hash(password, settings.password_hasher, settings.password_salt)

    sql = """
        INSERT INTO USERS (username, first_name, last_name, email, phone, password_hash)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING user_id;
    """
    result = db.execute(sql, (username, first_name, last_name, email, phone, pw_hash))
    user_id = result["last_insert_id"]
    logging.info(f"[Users] Created user {user_id}")

    # Generate initial token for immediate login
    token = issue_token({"email": email, "userId": user_id, "username": username})

    return {
        "success": True,
        "message": "User registered successfully",
        "token": token,
        "user": public_user({
            "user_id": user_id,
            "username": username,
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
        }),
    }


# --- LOGIN ---
@api_route(users_bp, "/login", ["POST"])
def login(req: Request) -> HandlerResult:
    """
    Authenticate a user and return a token.

    Returns:
        200: success, token and the public user record.
        400: Missing credentials.
        401: Unknown email or wrong password.
    """
    data: Dict[str, Any] = parse_request_body(req) or {}
    email = (data.get("email") or "").strip()
    password = data.get("password", "")

    if not email or not password:
        return error_response("Email and password are required", 400)

    bindings = get_bindings()
    user = bindings.database.query_first(
        "SELECT * FROM USERS WHERE LOWER(email) = LOWER(%s);", (email,)
    )

    if not user or not verify_password(password, user.get("password_hash"), bindings.settings.password_salt):
        return error_response("Invalid email or password", 401)

    token = issue_token({"email": user["email"], "userId": user["user_id"], "username": user.get("username")})

    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": public_user(user),
    }


# --- CURRENT USER ---
@api_route(users_bp, "/user-profile", ["GET"])
def get_user_profile(req: Request) -> HandlerResult:
    """
    Return the authenticated user's profile.

    Requires Authorization header: Bearer <token>
    """
    auth, err = current_user(req)
    if err:
        return err

    user = get_bindings().database.query_first(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM USERS WHERE user_id = %s;", (auth.user_id,)
    )
    if not user:
        return error_response("User not found", 404)

    return {"success": True, "user": public_user(user)}


@api_route(users_bp, "/user-profile", ["PUT"])
def update_user_profile(req: Request) -> HandlerResult:
    """
    Update the authenticated user's name, email, phone and picture.

    Accepts JSON or form data; a `profile_picture` file part replaces the
    stored picture.

    Returns:
        200: Updated user.
        400: Missing names/email, or email used by another account.
        401: Not authenticated.
    """
    auth, err = current_user(req)
    if err:
        return err

    data: Dict[str, Any] = parse_request_body(req) or {}
    first_name = data.get("first_name")
    last_name = data.get("last_name")
    email = (data.get("email") or "").strip()
    phone = data.get("phone") or None

    if not first_name or not last_name or not email:
        return error_response("First name, last name and email are required", 400)

    bindings = get_bindings()
    db = bindings.database

    taken = db.query_first(
        "SELECT user_id FROM USERS WHERE LOWER(email) = LOWER(%s) AND user_id != %s;",
        (email, auth.user_id),
    )
    if taken:
        return error_response("This email address is already in use by another account", 400)

    fields = {"first_name": first_name, "last_name": last_name, "email": email, "phone": phone}

    picture = data.get("profile_picture")
    if has_upload(picture):
        fields["profile_picture"] = upload_file(
            bindings.storage,
            picture,
            f"profile_pictures/user_{auth.user_id}_{int(time.time() * 1000)}",
        )

    set_clause = ", ".join(f"{k} = %s" for k in fields)
    values = list(fields.values()) + [auth.user_id]
    db.execute(f"UPDATE USERS SET {set_clause} WHERE user_id = %s;", values)

    updated = db.query_first(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM USERS WHERE user_id = %s;", (auth.user_id,)
    )
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": public_user(updated or {}),
    }


# --- LOOKUPS ---
@api_route(users_bp, "/check-email", ["GET"])
def check_email(req: Request) -> HandlerResult:
    email = req.args.get("email", "")
    row = get_bindings().database.query_first(
        "SELECT user_id FROM USERS WHERE LOWER(email) = LOWER(%s);", (email,)
    )
    return {"success": True, "exists": row is not None}


@api_route(users_bp, "/users", ["GET"])
def list_users(req: Request) -> HandlerResult:
    rows = get_bindings().database.query(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM USERS ORDER BY user_id ASC;"
    )
    return {"success": True, "data": [public_user(r) for r in rows]}


@api_route(users_bp, "/users/<int:user_id>", ["GET"])
def get_user(req: Request, user_id: int) -> HandlerResult:
    row = get_bindings().database.query_first(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM USERS WHERE user_id = %s;", (user_id,)
    )
    if not row:
        return error_response("User not found", 404)
    return {"success": True, "data": public_user(row)}
