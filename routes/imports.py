"""
Import routes - hand a batch of events to the pipeline.
"""

from flask import jsonify

from network.errors import MalformedPayloadError

from . import network_bp
from .services import get_services, json_body


@network_bp.route("/api/imports", methods=["POST"])
def run_import():
    """
    Resolve a batch of import events.

    Body: {
        "events": [...],
        "batch_id": "..." (optional),
        "import_source": "..." (optional)
    }
    """
    data = json_body()
    events = data.get("events")
    if not isinstance(events, list):
        raise MalformedPayloadError("events must be a list")

    result = get_services().pipeline.run_batch(
        events,
        batch_id=data.get("batch_id"),
        import_source=data.get("import_source"),
    )
    return jsonify(result.to_dict())
