"""
Graph snapshot persistence.

A snapshot stores the reverse dependency graph as text so later runs can
skip the package manager queries. One line per package:

    bash-5.2.15-1.fc38.x86_64: dnf-4.16.1-1.fc38.noarch sudo-1.9.13-2.fc38.x86_64
    zlib-1.2.13-3.fc38.x86_64:

The identity is separated from its dependents by a colon followed by a space
(or the end of the line), so epoch-qualified identities such as
``perl-4:5.36.1-1.fc38.x86_64`` round-trip unchanged.
"""

import logging
import os
import tempfile
from pathlib import Path

from pkgimpact.dependency_graph import DependencyGraph
from pkgimpact.errors import MalformedGraphRecord

logger = logging.getLogger(__name__)

SEPARATOR = ": "


def format_record(identity: str, dependents) -> str:
    """Format one snapshot line (without trailing newline)"""
    if not dependents:
        return f"{identity}:"
    return f"{identity}{SEPARATOR}{' '.join(sorted(dependents))}"


def parse_record(line: str, path: str = "<snapshot>", line_number: int = 0) -> tuple[str, list[str]]:
    """
    Parse one snapshot line into (identity, dependents).

    Raises:
        MalformedGraphRecord: If the line has no separator or a bad identity
    """
    text = line.rstrip()
    if SEPARATOR in text:
        identity, _, rest = text.partition(SEPARATOR)
        dependents = rest.split()
    elif text.endswith(":"):
        identity = text[:-1]
        dependents = []
    else:
        raise MalformedGraphRecord(path, line_number, line, "missing ': ' separator")

    if not identity:
        raise MalformedGraphRecord(path, line_number, line, "empty package identity")
    if any(ch.isspace() for ch in identity):
        raise MalformedGraphRecord(path, line_number, line, "whitespace in package identity")
    return identity, dependents


def save_snapshot(graph: DependencyGraph, path: str | Path) -> None:
    """Write the graph to path, replacing any existing snapshot atomically"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for identity in graph.keys():
                f.write(format_record(identity, graph.dependents_of(identity)) + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info(f"Graph snapshot saved: {path} ({len(graph)} packages)")


def load_snapshot(path: str | Path) -> DependencyGraph:
    """
    Reload a graph written by save_snapshot.

    Raises:
        MalformedGraphRecord: On any unparsable, unterminated or repeated
            line; nothing is returned in that case, never a partial graph
        OSError: If the file cannot be read
    """
    path = Path(path)
    adjacency: dict[str, list[str]] = {}

    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            if not line.endswith("\n"):
                raise MalformedGraphRecord(
                    str(path), line_number, line, "truncated record (no trailing newline)"
                )
            identity, dependents = parse_record(line, str(path), line_number)
            if identity in adjacency:
                raise MalformedGraphRecord(
                    str(path), line_number, line, f"duplicate record for '{identity}'"
                )
            adjacency[identity] = dependents

    graph = DependencyGraph(adjacency)
    logger.info(f"Graph snapshot loaded: {path} ({len(graph)} packages, {graph.edge_count()} edges)")
    return graph


def snapshot_is_reusable(path: str | Path | None, refresh: bool = False) -> bool:
    """A snapshot is reused unless a refresh is requested or the file is absent or empty"""
    if refresh or not path:
        return False
    path = Path(path)
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False
