"""
Error Handler module.
Builds error and redirect responses for the redirect service.
"""
import logging

from flask import Response
from markupsafe import escape
from werkzeug.urls import iri_to_uri

logger = logging.getLogger(__name__)

REDIRECT_BODY = '<html><body>Moved <a href="{location}">here</a>.</body></html>'


def handle_error(status_code: int, message: str = '') -> Response:
    """
    Create an error response with the given status code.

    Args:
        status_code: HTTP status code (401, 404, 500)
        message: Reason, logged only. Clients get an empty payload so no
            table or directory names leak.

    Returns:
        Flask Response with the status code and empty payload
    """
    if message:
        level = logging.ERROR if status_code >= 500 else logging.WARNING
        logger.log(level, "%d: %s", status_code, message)
    return Response('', status=status_code)


def client_redirect(location: str, status_code: int = 301) -> Response:
    """
    Create a redirect response pointing at location.
    Location and URI headers both carry the target, percent-encoded.
    """
    location = iri_to_uri(location)
    response = Response(REDIRECT_BODY.format(location=escape(location)), status=status_code,
                        content_type='text/html')
    response.headers['Location'] = location
    response.headers['URI'] = location
    return response
