# Overview: Flask API routes for backup export and restore.

"""
Backup routes.

Import is destructive: the caller's live data is replaced after the uploaded
document passes validation. A safety backup of the live data is written to
BACKUP_DIR first, and its file name is returned in the summary.
"""

import json

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import with_entity_store
from ..errors import BackupError, ValidationFailed
from ..services import backup_service


backup_bp = Blueprint("backup", __name__, url_prefix="/api/backup")


@backup_bp.get("/export")
@with_entity_store
def export_route():
    """Download the full entity graph as a JSON attachment."""
    document = backup_service.export_backup(g.entity_store)
    response = current_app.response_class(
        json.dumps(document, indent=2),
        mimetype="application/json",
    )
    response.headers["Content-Disposition"] = f'attachment; filename="{backup_service.backup_filename()}"'
    return response


@backup_bp.post("/import")
@with_entity_store
def import_route():
    """
    Replace live data with an uploaded backup.

    Accepts a multipart upload in the "file" field, or the JSON document as
    the request body.

    Returns:
        200: Restore summary (imported/skipped counts, safety backup, warnings)
        400: Document could not be read or failed validation (nothing modified)
        500: Restore broke off after live data was cleared
    """
    upload = request.files.get("file")
    raw = upload.read() if upload else request.get_data()
    if not raw:
        return jsonify({"error": "No backup file provided"}), 400

    try:
        summary = backup_service.import_backup(g.entity_store, raw, current_app.config["BACKUP_DIR"])
        return jsonify({"summary": summary.to_dict()}), 200
    except ValidationFailed as e:
        return jsonify({"error": str(e), "problems": e.problems}), 400
    except BackupError as e:
        if not e.data_modified:
            return jsonify({"error": str(e)}), 400
        return jsonify({"error": str(e), "safety_backup": e.safety_backup}), 500
    except Exception:
        current_app.logger.exception("Backup import failed")
        return jsonify({"error": "Internal server error"}), 500
