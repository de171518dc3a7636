# Overview: Route decorators that map service errors to JSON responses.

from functools import wraps
from flask import jsonify, current_app

from .errors import LedgerError, StorageFailure


def ledger_errors(action: str):
    """
    Translate the error taxonomy into HTTP responses.

    - LedgerError subclasses -> {"error", "details"} with their status_code
    - anything else -> logged with traceback, 500 {"error": "Internal server error"}
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except StorageFailure as e:
                current_app.logger.error("Storage failure during %s: %s", action, e.message)
                return jsonify(e.to_dict()), e.status_code
            except LedgerError as e:
                return jsonify(e.to_dict()), e.status_code
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
