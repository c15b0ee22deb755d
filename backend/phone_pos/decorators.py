# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .stores import SqlEntityStore


OWNER_HEADER = "X-Owner-Id"
MAX_OWNER_ID_LENGTH = 64


def with_entity_store(f):
    """
    Establish owner scope for the request.

    Sets on Flask g:
    - g.owner_id: from the X-Owner-Id header, else DEFAULT_OWNER_ID
    - g.entity_store: SqlEntityStore bound to that owner

    Returns 400 if the header is present but blank or too long.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        owner_id = request.headers.get(OWNER_HEADER)
        if owner_id is None:
            owner_id = current_app.config["DEFAULT_OWNER_ID"]

        owner_id = owner_id.strip()
        if not owner_id or len(owner_id) > MAX_OWNER_ID_LENGTH:
            return jsonify({"error": f"Invalid {OWNER_HEADER} header"}), 400

        g.owner_id = owner_id
        g.entity_store = SqlEntityStore(owner_id)
        return f(*args, **kwargs)

    return decorated_function
