from flask import jsonify

from .services.results import CONFLICT, ERROR, NOT_FOUND, VALIDATION

STATUS_BY_KIND = {
    VALIDATION: 400,
    NOT_FOUND: 404,
    CONFLICT: 409,
    ERROR: 500,
}


def result_response(result, success_status: int = 200):
    """Serialize an OperationResult with the HTTP status its outcome maps to."""
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STATUS_BY_KIND.get(result.error_kind, 500)
