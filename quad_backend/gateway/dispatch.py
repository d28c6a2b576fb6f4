"""
Request dispatcher: uniform request/response envelope for every API handler.

Handlers take the incoming request and return either a plain dict (wrapped
into a 200 JSON envelope here) or a prebuilt Response (returned untouched).
Exceptions never escape: they become {"success": false, "error": message}.
"""

import logging
from functools import wraps
from typing import Any, Callable, Dict, List, Union

from flask import Blueprint, Request, Response, jsonify, request

from quad_backend.errors import BadRequest, QuadError, UnsupportedContentType

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

HandlerResult = Union[Response, Dict[str, Any], List[Any]]
Handler = Callable[[Request], HandlerResult]


def json_response(body: Any, status: int = 200) -> Response:
    """
    Serialize ``body`` as JSON with the standard CORS headers.
    """
    response = jsonify(body)
    response.status_code = status
    response.headers.update(CORS_HEADERS)
    return response


def error_response(message: str, status: int) -> Response:
    return json_response({"success": False, "error": message}, status)


def handle_request(req: Request, handler: Handler) -> Response:
    """
    Run ``handler`` inside the response envelope.

    Args:
        req (Request): The incoming request.
        handler (callable): Business logic for one endpoint.

    Returns:
        Response:
            200 with CORS headers only, for OPTIONS (handler not called).
            The handler's own Response, when it returns one.
            200 JSON envelope, for a dict/list result.
            500 (or the error's status) JSON envelope, when the handler raises.
    """
    if req.method == "OPTIONS":
        return Response(status=200, headers=CORS_HEADERS)

    try:
        result = handler(req)
    except QuadError as e:
        if e.status_code >= 500:
            logging.exception(f"[Dispatch] {req.method} {req.path} failed")
        return error_response(e.message or str(e), e.status_code)
    except Exception as e:
        logging.exception(f"[Dispatch] {req.method} {req.path} failed")
        return error_response(str(e), 500)

    if isinstance(result, Response):
        return result

    if isinstance(result, dict) and "success" not in result:
        result = {"success": True, **result}

    return json_response(result, 200)


def parse_request_body(req: Request) -> Dict[str, Any]:
    """
    Parse the body according to its Content-Type.

    - application/json: the decoded JSON object.
    - application/x-www-form-urlencoded, multipart/form-data: flat field
      mapping; uploaded files are included as FileStorage values.

    Raises:
        BadRequest: JSON that is invalid or not an object.
        UnsupportedContentType: For any other content type.
    """
    content_type = (req.headers.get("Content-Type") or "").lower()

    if "application/json" in content_type:
        body = req.get_json(silent=True)
        if not isinstance(body, dict):
            raise BadRequest("Invalid JSON body")
        return body

    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        data: Dict[str, Any] = req.form.to_dict()
        data.update(req.files.to_dict())
        return data

    raise UnsupportedContentType(f"Unsupported content type: {content_type or 'none'}")


def is_truthy(value: Any) -> bool:
    """
    Interpret a form or JSON flag ("true", True, "1", "on").
    """
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("true", "1", "on", "yes")


def dispatch(view: Callable[..., HandlerResult]) -> Callable[..., Response]:
    """
    Wrap a view so Flask calls it through handle_request.
    URL variables are passed after the request.
    """
    @wraps(view)
    def wrapper(**url_args: Any) -> Response:
        return handle_request(request, lambda req: view(req, **url_args))

    return wrapper


def api_route(bp: Blueprint, rule: str, methods: List[str]) -> Callable:
    """
    Register ``view`` on ``bp`` behind the dispatcher.

    OPTIONS is always accepted and answered by the dispatcher itself
    instead of Flask's automatic handler.
    """
    def decorator(view: Callable[..., HandlerResult]) -> Callable[..., HandlerResult]:
        bp.add_url_rule(
            rule,
            view_func=dispatch(view),
            methods=[*methods, "OPTIONS"],
            provide_automatic_options=False,
        )
        return view

    return decorator


def log_requests(bp: Blueprint, tag: str) -> None:
    """
    Log every request method/path and response status on ``bp``.
    The Authorization header value is never written to the log.
    """

    @bp.before_request
    def before_request() -> None:
        headers = {k: ("<redacted>" if k.lower() == "authorization" else v) for k, v in request.headers.items()}
        logging.info(f"[{tag}] Incoming {request.method} {request.path} Headers={headers}")

    @bp.after_request
    def after_request(response: Response) -> Response:
        logging.info(f"[{tag}] Response {response.status}")
        return response
