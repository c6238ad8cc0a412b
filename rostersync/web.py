#!/usr/bin/env python3
"""Web API for Roster Sync.

This module provides the RESTful HTTP API that stores the applicant roster
and merges pushes from sync clients.

Endpoints:
    GET    /api/applicants        Current roster
    POST   /api/applicants/sync   Merge pushed roster, return merged result
    PUT    /api/applicants        Replace roster
    DELETE /api/applicants        Clear roster
    GET    /api/sync/status       Roster summary
    GET    /api/health            Liveness (never requires an API key)
    POST   /api/auth/register     Get an API key for email + password

All endpoints return JSON responses.

When require_api_key is set, every roster endpoint needs an X-API-Key header
(or "Authorization: Bearer <key>") and reads/writes the caller's own roster.
Otherwise a single shared roster is used and any key is ignored.

POST /api/applicants/sync and PUT /api/applicants body:
    - applicants: Array of applicant objects (required for sync)
    - groups: Array of group names (optional)

POST /api/auth/register body:
    - email: Email address (string, required)
    - password: Password (string, required)
"""

from __future__ import annotations

import argparse
import functools
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from rostersync.core.auth import (
    AuthError,
    UserRegistry,
    extract_api_key,
)
from rostersync.core.config import Config
from rostersync.core.store import RosterStore, TenantStore
from rostersync.core.validation import (
    ValidationError,
    validate_applicants,
    validate_groups,
)

logger = logging.getLogger(__name__)


def api_endpoint(func: Callable) -> Callable:
    """Decorator for consistent API error handling.

    Catches ValidationError (400), AuthError (401) and Exception (500) with
    JSON error responses and logging. 500 responses do not include the
    exception text.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            logger.warning(f"Validation error in {func.__name__}: {e.field} - {e.message}")
            return jsonify({"error": f"Invalid {e.field}: {e.message}"}), 400
        except AuthError as e:
            logger.warning(f"Auth error in {func.__name__}: {e.message}")
            return jsonify({"error": e.message}), 401
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Error in {func.__name__}: {e}")
            return jsonify({"error": "Internal server error"}), 500
    return wrapper


def _json_body() -> Dict[str, Any]:
    """Parse the request body as a JSON object."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("body", "JSON object required")
    return data


def create_app(
    config_dir: Optional[Path] = None,
    require_api_key: Optional[bool] = None,
    store: Optional[RosterStore] = None,
    tenants: Optional[TenantStore] = None,
    registry: Optional[UserRegistry] = None,
) -> Flask:
    """Create and configure Flask application.

    Stores are created here unless injected, so each app (and each test)
    gets its own roster.

    Args:
        config_dir: Custom configuration directory (default: None)
        require_api_key: Override the config's require_api_key setting
        store: Shared roster used when API keys are not required
        tenants: Per-key rosters used when API keys are required
        registry: Registered users and their API keys

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes

    config = Config(config_dir=config_dir)
    if require_api_key is None:
        require_api_key = config.is_api_key_required()

    app.config["MAX_CONTENT_LENGTH"] = config.get_max_content_length()
    app.json.sort_keys = False

    shared_store = store if store is not None else RosterStore()
    tenant_store = tenants if tenants is not None else TenantStore()
    users = registry if registry is not None else UserRegistry()

    app.extensions["rostersync"] = {
        "config": config,
        "store": shared_store,
        "tenants": tenant_store,
        "registry": users,
        "require_api_key": require_api_key,
    }

    mode = "per-API-key rosters" if require_api_key else "single shared roster"
    logger.info(f"Web API initialized with {mode}")

    def authenticate_request() -> Optional[str]:
        """Check the API key when required and return it (None when shared)."""
        if not require_api_key:
            return None
        return users.authenticate(extract_api_key(request.headers)).api_key

    def store_for(api_key: Optional[str], write: bool = False) -> RosterStore:
        """Roster partition for an authenticated key.

        Writers call this only after the body has validated, so a rejected
        request never records a partition.
        """
        if api_key is None:
            return shared_store
        return tenant_store.get(api_key, create=write)

    # Error handlers
    @app.errorhandler(404)
    def not_found(error: Any) -> tuple[Response, int]:
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error: Any) -> tuple[Response, int]:
        """Handle 405 errors."""
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error: Any) -> tuple[Response, int]:
        """Handle request bodies over MAX_CONTENT_LENGTH."""
        return jsonify({"error": "Request body too large"}), 413

    @app.errorhandler(500)
    def internal_error(error: Any) -> tuple[Response, int]:
        """Handle 500 errors."""
        logger.error(f"Internal error: {error}")
        return jsonify({"error": "Internal server error"}), 500

    # Routes
    @app.route("/api/applicants", methods=["GET"])
    @api_endpoint
    def get_applicants() -> tuple[Response, int]:
        """Get the full roster."""
        snapshot = store_for(authenticate_request()).read()
        return jsonify(snapshot.to_dict()), 200

    @app.route("/api/applicants/sync", methods=["POST"])
    @api_endpoint
    def sync_applicants() -> tuple[Response, int]:
        """Merge the pushed roster into the stored one."""
        api_key = authenticate_request()
        data = _json_body()
        applicants = validate_applicants(data.get("applicants"))
        groups = validate_groups(data.get("groups"))
        merged = store_for(api_key, write=True).merge(applicants, groups)
        return jsonify({
            "success": True,
            "data": merged.to_dict(),
            "stats": merged.stats(),
        }), 200

    @app.route("/api/applicants", methods=["PUT"])
    @api_endpoint
    def replace_applicants() -> tuple[Response, int]:
        """Replace the roster without merging."""
        api_key = authenticate_request()
        data = _json_body()
        applicants = data.get("applicants")
        applicants = validate_applicants(applicants) if applicants is not None else []
        groups = validate_groups(data.get("groups"))
        snapshot = store_for(api_key, write=True).replace(applicants, groups)
        return jsonify({
            "success": True,
            "data": snapshot.to_dict(),
            "stats": snapshot.stats(),
        }), 200

    @app.route("/api/applicants", methods=["DELETE"])
    @api_endpoint
    def delete_applicants() -> tuple[Response, int]:
        """Clear the roster."""
        store_for(authenticate_request(), write=True).clear()
        return jsonify({"success": True, "message": "All data cleared"}), 200

    @app.route("/api/sync/status", methods=["GET"])
    @api_endpoint
    def sync_status() -> tuple[Response, int]:
        """Summary of the stored roster."""
        return jsonify(store_for(authenticate_request()).status()), 200

    @app.route("/api/auth/register", methods=["POST"])
    @api_endpoint
    def register() -> tuple[Response, int]:
        """Register (or re-register) and return the API key."""
        data = _json_body()
        account = users.register(data.get("email"), data.get("password"))
        return jsonify(account.to_public_dict()), 200

    @app.route("/api/health", methods=["GET"])
    def health_check() -> tuple[Response, int]:
        """Health check endpoint.

        Returns:
            JSON response with roster sizes
        """
        if require_api_key:
            totals = tenant_store.totals()
        else:
            status = shared_store.status()
            totals = {
                "applicants": status["applicantCount"],
                "groups": status["groupCount"],
            }
        return jsonify({"status": "ok", **totals}), 200

    return app


def add_web_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Add serve subparser and its arguments.

    Args:
        subparsers: Parent subparsers object to add the serve parser to
    """
    web_parser = subparsers.add_parser(
        "serve",
        help="Start the roster sync API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    web_parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (default: from config, 127.0.0.1)"
    )

    web_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: from config, 3000)"
    )

    web_parser.add_argument(
        "--require-api-key",
        action="store_true",
        default=None,
        help="Keep a separate roster per API key and reject requests without one"
    )

    web_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )


def run(config_dir: Optional[Path], args: argparse.Namespace) -> int:
    """Run web server with given arguments.

    Args:
        config_dir: Custom configuration directory or None for default
        args: Parsed command-line arguments (host, port, require_api_key, debug)

    Returns:
        Exit code (0 for success)
    """
    logger.info("Starting Roster Sync Web API")
    if config_dir:
        logger.info(f"Using custom config directory: {config_dir}")

    server_config = Config(config_dir=config_dir).get_server_config()
    host = args.host or server_config["host"]
    port = args.port or server_config["port"]

    app = create_app(config_dir=config_dir, require_api_key=args.require_api_key)

    app.run(
        host=host,
        port=port,
        debug=args.debug,
    )

    return 0
