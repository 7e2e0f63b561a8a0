"""Policy loader - load policy documents and request context files.

The core never touches the filesystem; these helpers read JSON from disk
and hand the decoded tree to the parser.
"""

from __future__ import annotations

import logging
from pathlib import Path

from iam_policy_eval.constants import LOGGER_NAME
from iam_policy_eval.context.parsing import parse_context_tree
from iam_policy_eval.context.request import ContextValues
from iam_policy_eval.pdp.parser import parse_policy
from iam_policy_eval.pdp.policy import PolicyDocument
from iam_policy_eval.utils.file_helpers import load_json_file

__all__ = [
    "load_context_file",
    "load_policy",
]

_logger = logging.getLogger(f"{LOGGER_NAME}.utils.policy")


def load_policy(path: Path) -> PolicyDocument:
    """Load and parse a policy document from file.

    Args:
        path: Path to the policy JSON file.

    Returns:
        PolicyDocument parsed from the file.

    Raises:
        FileNotFoundError: If the policy file does not exist.
        ValueError: If the file cannot be read or contains invalid JSON.
        ParseError: If the document violates the policy grammar.
    """
    tree = load_json_file(path, file_type="policy")
    document = parse_policy(tree)
    _logger.debug({"event": "policy_loaded", "path": str(path), "statements": len(document.statements)})
    return document


def load_context_file(path: Path, resource: str | None = None) -> ContextValues:
    """Load the context keys that apply to a resource from a context file.

    Args:
        path: Path to the context JSON file ({"global": ..., "resources": ...}).
        resource: Requested resource; selects the matching "resources" entry.

    Returns:
        Lower-cased context keys mapped to their values.

    Raises:
        FileNotFoundError: If the context file does not exist.
        ValueError: If the file is unreadable, not JSON, or malformed.
    """
    tree = load_json_file(path, file_type="context")
    try:
        return parse_context_tree(tree, resource)
    except ValueError as e:
        raise ValueError(f"Invalid context file {path}: {e}") from e
