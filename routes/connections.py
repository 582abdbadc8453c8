"""
Connection routes - ranked warm paths to a target.
"""

from flask import jsonify
from pydantic import ValidationError

from models import ConnectionQuery
from network.errors import MalformedPayloadError

from . import connections_bp
from .services import get_services, json_body


@connections_bp.route("/api/connections", methods=["POST"])
def find_connections():
    """
    Body: {
        "target": "<entity id>",
        "max_path_length": 4 (optional),
        "as_of_date": "YYYY-MM-DD" (optional),
        "home_set": [...] (optional, defaults to the home network)
    }
    """
    try:
        query = ConnectionQuery.model_validate(json_body())
    except ValidationError as e:
        raise MalformedPayloadError(f"Invalid connection query: {e}") from e

    paths = get_services().path_finder.find_paths(
        query.home_set,
        query.target,
        max_path_length=query.max_path_length,
        as_of_date=query.as_of_date,
    )
    return jsonify({
        "target": query.target,
        "count": len(paths),
        "paths": [p.to_dict() for p in paths],
    })
