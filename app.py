"""
Flask Redirect Application
Main entry point for the redirect service. Serves a virtual location from a
per-user physical directory chosen by database table membership.
"""
import logging

from flask import Flask, request, send_from_directory
from werkzeug.exceptions import HTTPException

from config import Config
from error_handler import client_redirect, handle_error
from errors import ConfigurationError, PathOutsideLocationError, ResolutionError, StoreConnectionError
from membership_store import MembershipStore
from resolver import Matched, ResolutionContext, Resolver
from rewriter import ClientRedirect, Rewriter

logger = logging.getLogger(__name__)

app = Flask(__name__)


def load(environ=None):
    """
    Build the configuration and its collaborators.
    Returns (None, None, None) when the configuration is invalid so that
    every request fails closed instead of falling back to the default.
    """
    try:
        loaded = Config(environ)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return None, None, None
    return loaded, Resolver(MembershipStore.from_config(loaded)), Rewriter(loaded.get_document_root())


# Initialize configuration
config, resolver, rewriter = load()


@app.route('/', defaults={'path': ''}, methods=['GET', 'HEAD'])
@app.route('/<path:path>', methods=['GET', 'HEAD'])
def redirect_dbi(path):
    """
    Route the request to the directory of the first table listing the user.
    """
    if config is None:
        return handle_error(500, "Configuration unavailable")

    # request.path keeps the trailing slash the route variable may drop
    original_path = request.path

    if not config.is_under_location(original_path):
        return handle_error(404, f"Path {original_path} is outside {config.get_location()}")
    if '..' in original_path.split('/'):
        return handle_error(404, f"Path {original_path} contains a parent segment")

    identity = request.remote_user
    if not identity:
        return handle_error(401, f"No authenticated user for {original_path}")

    try:
        context = ResolutionContext(
            identity=identity,
            rules=config.get_table_rules(),
            default_destination=config.get_default(),
            location=config.get_location(),
        )
        result = resolver.resolve(context.identity, context.rules)
        destination = context.destination_for(result)

        decision = rewriter.decide(original_path, context.location, destination)

        table = result.table if isinstance(result, Matched) else None
        logger.info("%s %s -> %s (table: %s)", identity, original_path, decision, table or 'default')

        if isinstance(decision, ClientRedirect):
            return client_redirect(decision.location, decision.status)

        return _serve(decision.path)

    except StoreConnectionError as e:
        return handle_error(500, f"Store unavailable: {e}")
    except ResolutionError as e:
        return handle_error(500, str(e))
    except PathOutsideLocationError as e:
        return handle_error(404, str(e))
    except HTTPException:
        raise
    except Exception:
        logger.exception("Unexpected error routing %s", original_path)
        return handle_error(500)


def _serve(path: str):
    """Serve the rewritten path from the document root."""
    relative = path.lstrip('/')
    if not relative or path.endswith('/'):
        relative += config.get_directory_index()
    return send_from_directory(config.get_document_root(), relative)


if __name__ == '__main__':
    if config is None:
        raise SystemExit("Invalid configuration, see log for details")
    logging.basicConfig(
        level=config.get_log_level(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app.run(host='0.0.0.0', port=config.get_listener_port(), debug=False)
