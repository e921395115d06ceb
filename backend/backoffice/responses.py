# Overview: Success envelope shared by all routes.

from flask import jsonify


def success_response(data=None, *, status: int = 200, pagination: dict | None = None, message: str | None = None):
    """
    Render {"success": true, "data": ..., "pagination"?: ..., "message"?: ...}.
    """
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    if message is not None:
        body["message"] = message
    return jsonify(body), status
