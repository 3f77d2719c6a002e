"""
Rewriter module.
Substitutes the virtual location prefix with the resolved destination and
decides between an internal rewrite and a trailing-slash redirect.
"""
import os
from dataclasses import dataclass
from typing import Optional, Union

from werkzeug.security import safe_join

from errors import PathOutsideLocationError


@dataclass(frozen=True)
class InternalRewrite:
    """Serve the new path without telling the client."""
    path: str


@dataclass(frozen=True)
class ClientRedirect:
    """Tell the client to re-request the slash-terminated virtual path."""
    location: str
    status: int = 301


RewriteDecision = Union[InternalRewrite, ClientRedirect]


def substitute_prefix(path: str, virtual_prefix: str, resolved_prefix: str) -> str:
    """
    Replace the leading virtual prefix of the path with the resolved prefix.
    Occurrences of the prefix elsewhere in the path are left alone.

    Raises:
        PathOutsideLocationError: If the path does not start with the prefix
    """
    if not path.startswith(virtual_prefix):
        raise PathOutsideLocationError(path, virtual_prefix)
    return resolved_prefix + path[len(virtual_prefix):]


def rewrite(original_path: str, virtual_prefix: str, resolved_prefix: str,
            is_directory: bool) -> RewriteDecision:
    """
    Decide how to serve a request.

    Args:
        original_path: The request path as received
        virtual_prefix: The configured virtual location
        resolved_prefix: The matched or default destination
        is_directory: Whether the rewritten path is a directory on disk

    Returns:
        ClientRedirect to original_path + '/' when the rewritten path is a
        directory without a trailing slash, otherwise InternalRewrite
    """
    candidate = substitute_prefix(original_path, virtual_prefix, resolved_prefix)

    # Redirect on the virtual path so the real directory never shows in the URL
    if not candidate.endswith('/') and is_directory:
        return ClientRedirect(original_path + '/')

    return InternalRewrite(candidate)


class Rewriter:
    """Applies rewrite() against a document root on the local file system."""

    def __init__(self, document_root: str):
        self.document_root = document_root

    def physical_path(self, path: str) -> Optional[str]:
        """
        Map a rewritten URL path to a file system path below the document root.
        Returns None for paths that would escape the document root.
        """
        return safe_join(self.document_root, path.lstrip('/'))

    def is_directory(self, path: str) -> bool:
        physical = self.physical_path(path)
        return physical is not None and os.path.isdir(physical)

    def decide(self, original_path: str, virtual_prefix: str, resolved_prefix: str) -> RewriteDecision:
        candidate = substitute_prefix(original_path, virtual_prefix, resolved_prefix)
        return rewrite(original_path, virtual_prefix, resolved_prefix, self.is_directory(candidate))
