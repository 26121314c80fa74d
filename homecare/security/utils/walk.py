"""Depth-limited traversal of JSON-like values (mappings, sequences, scalars)."""

from typing import Any, Callable, Mapping, Sequence, Tuple

MAX_DEPTH = 32

Path = Tuple[str, ...]
Visitor = Callable[[Path, Any], bool]


def walk(
    value: Any,
    path: Sequence[str],
    visit: Visitor,
    *,
    descend_sequences: bool = True,
    max_depth: int = MAX_DEPTH,
) -> bool:
    """
    Visit ``value`` and its children depth first.

    ``visit(path, node)`` is called for every node, the root included; returning
    True stops the walk. Mapping children get their key appended to the path,
    list/tuple children their index. Nodes deeper than ``max_depth`` are not
    visited.

    Returns:
        True if a visitor stopped the walk early
    """
    return _walk(value, tuple(path), visit, descend_sequences, max_depth, 0)


def _walk(value, path, visit, descend_sequences, max_depth, depth):
    if visit(path, value):
        return True
    if depth >= max_depth:
        return False

    if isinstance(value, Mapping):
        children = ((path + (str(key),), child) for key, child in value.items())
    elif descend_sequences and isinstance(value, (list, tuple)):
        children = ((path + (str(index),), child) for index, child in enumerate(value))
    else:
        return False

    for child_path, child in children:
        if _walk(child, child_path, visit, descend_sequences, max_depth, depth + 1):
            return True
    return False


def dotted(path: Path) -> str:
    return ".".join(path)
