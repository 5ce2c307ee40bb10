"""Path addressing into nested game-data documents.

A path is a tuple of typed steps (``Key("events")``, ``Index(3)``) built
once when a string is located and never re-interpreted afterwards.  The
string form (``events[3].pages[0].list[12].parameters[0]``) is only used for
logging and for callers that exchange paths as text.
"""

import re
from typing import Iterator, NamedTuple, Union


class Key(NamedTuple):
    name: str


class Index(NamedTuple):
    position: int


Step = Union[Key, Index]

_SPLIT_RE = re.compile(r'[.\[\]]')


class PathError(LookupError):
    """Raised when a path cannot be resolved inside a document."""

    def __init__(self, message: str, reason: str = "path_missing"):
        super().__init__(message)
        self.reason = reason  # "path_missing" | "not_container"


def format_path(steps) -> str:
    """Render steps as ``root.key[2].sub[0]``."""
    out = []
    for step in steps:
        if isinstance(step, Index):
            out.append(f"[{step.position}]")
        elif out:
            out.append(f".{step.name}")
        else:
            out.append(step.name)
    return "".join(out)


def parse_path(path: str) -> tuple:
    """Parse ``events[0].pages[1]`` into typed steps.

    Purely numeric pieces are array indices; everything else is a key.
    """
    steps = []
    for piece in _SPLIT_RE.split(path):
        if not piece:
            continue
        steps.append(Index(int(piece)) if piece.isdigit() else Key(piece))
    return tuple(steps)


def _as_steps(path) -> tuple:
    return parse_path(path) if isinstance(path, str) else tuple(path)


def _step(container, step, path_text: str):
    """Resolve one step, raising PathError on any mismatch."""
    if isinstance(step, Index):
        if not isinstance(container, list):
            raise PathError(f"{path_text}: expected list at [{step.position}], "
                            f"got {type(container).__name__}", "not_container")
        if not 0 <= step.position < len(container):
            raise PathError(f"{path_text}: index {step.position} out of range")
        return container[step.position]
    if not isinstance(container, dict):
        raise PathError(f"{path_text}: expected object at .{step.name}, "
                        f"got {type(container).__name__}", "not_container")
    if step.name not in container:
        raise PathError(f"{path_text}: missing key {step.name!r}")
    return container[step.name]


def get_value(document, path):
    """Return the value at ``path`` (steps or path string)."""
    steps = _as_steps(path)
    text = format_path(steps)
    current = document
    for step in steps:
        current = _step(current, step, text)
    return current


def set_value(document, path, value):
    """Overwrite the existing leaf at ``path`` in place.

    Every intermediate step and the final slot must already exist; a
    missing or non-container step raises PathError instead of creating it.
    """
    steps = _as_steps(path)
    if not steps:
        raise PathError("cannot set the document root")
    text = format_path(steps)
    parent = document
    for step in steps[:-1]:
        parent = _step(parent, step, text)
    last = steps[-1]
    _step(parent, last, text)  # validates the final slot
    if isinstance(last, Index):
        parent[last.position] = value
    else:
        parent[last.name] = value


def iter_leaf_paths(document, prefix: tuple = ()) -> Iterator[tuple]:
    """Yield ``(steps, value)`` for every string leaf, in document order."""
    if isinstance(document, dict):
        for key, val in document.items():
            yield from iter_leaf_paths(val, prefix + (Key(key),))
    elif isinstance(document, list):
        for i, val in enumerate(document):
            yield from iter_leaf_paths(val, prefix + (Index(i),))
    elif isinstance(document, str):
        yield prefix, document
