#!/usr/bin/env python3
"""
Reverse Dependency Graph

Maps every installed package to the set of packages that directly require
it. The graph is built once per run from the package manager (or reloaded
from a snapshot) and is read-only during analysis.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from pkgimpact.catalog import PackageCatalog
from pkgimpact.errors import DependencyQueryError

logger = logging.getLogger(__name__)


class ReverseDependencyQuery(Protocol):
    """Answers "which packages directly require <name>"."""

    def direct_dependents(self, name: str) -> set[str]: ...


class DependencyGraph:
    """
    Adjacency structure: package identity -> identities that directly require it.

    Edges point from a package toward its dependents. Lookup of a node's
    direct dependents is a single dict access.
    """

    def __init__(self, adjacency: Mapping[str, Iterable[str]] | None = None):
        self._dependents: dict[str, frozenset[str]] = {}
        for identity, dependents in (adjacency or {}).items():
            self._dependents[identity] = frozenset(dependents)

    def dependents_of(self, identity: str) -> frozenset[str]:
        """Direct dependents of a package; empty if it has no entry"""
        return self._dependents.get(identity, frozenset())

    def nodes(self) -> list[str]:
        """Every identity appearing as a key or as a dependent, sorted"""
        seen = set(self._dependents)
        for dependents in self._dependents.values():
            seen.update(dependents)
        return sorted(seen)

    def keys(self) -> list[str]:
        """Identities with a recorded entry, sorted"""
        return sorted(self._dependents)

    def edges(self) -> list[tuple[str, str]]:
        """All (package, dependent) pairs, sorted"""
        return sorted(
            (identity, dependent)
            for identity, dependents in self._dependents.items()
            for dependent in dependents
        )

    def edge_count(self) -> int:
        return sum(len(dependents) for dependents in self._dependents.values())

    def __contains__(self, identity: str) -> bool:
        return identity in self._dependents

    def __len__(self) -> int:
        return len(self._dependents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyGraph):
            return NotImplemented
        return self._dependents == other._dependents

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={len(self)}, edges={self.edge_count()})"


class DependencyGraphBuilder:
    """
    Builds a DependencyGraph by asking the package manager, for every
    installed package, which packages directly require it.
    """

    def __init__(
        self,
        query: ReverseDependencyQuery,
        workers: int = 1,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ):
        """
        Args:
            query: Reverse dependency collaborator
            workers: Number of concurrent queries (1 = sequential)
            progress_callback: Called as (current, total, identity) per package
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.query = query
        self.workers = workers
        self.progress_callback = progress_callback

    def build(self, catalog: PackageCatalog) -> DependencyGraph:
        """
        Build the reverse dependency graph for every package in the catalog.

        Raises:
            MultipleMatches: If a package name is carried by several identities
            UnknownIdentity: If a dependent is not an installed package
            DependencyQueryError: If a query fails for any package
        """
        identities = catalog.identities()
        total = len(identities)
        logger.info(f"Building dependency graph for {total} packages (workers={self.workers})")

        # Names are checked up front so an ambiguous install fails before any query runs
        names = {identity: self._query_name(catalog, identity) for identity in identities}

        adjacency: dict[str, frozenset[str]] = {}
        if self.workers == 1:
            for current, identity in enumerate(identities, 1):
                adjacency[identity] = self._dependents_for(catalog, identity, names[identity])
                self._report(current, total, identity)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = {
                    identity: executor.submit(
                        self._dependents_for, catalog, identity, names[identity]
                    )
                    for identity in identities
                }
                try:
                    for current, identity in enumerate(identities, 1):
                        adjacency[identity] = futures[identity].result()
                        self._report(current, total, identity)
                except BaseException:
                    for future in futures.values():
                        future.cancel()
                    raise

        graph = DependencyGraph(adjacency)
        logger.info(f"Dependency graph built: {len(graph)} packages, {graph.edge_count()} edges")
        return graph

    def _query_name(self, catalog: PackageCatalog, identity: str) -> str:
        name = catalog.resolve_name(identity)
        # Raises MultipleMatches when another installed version shares the name
        catalog.identity_for_name(name)
        return name

    def _dependents_for(self, catalog: PackageCatalog, identity: str, name: str) -> frozenset[str]:
        try:
            dependent_names = self.query.direct_dependents(name)
        except DependencyQueryError as e:
            logger.debug(f"Query failed for {identity}: {e.reason}")
            raise DependencyQueryError(identity, e.reason) from e

        return frozenset(catalog.identity_for_name(dep) for dep in dependent_names)

    def _report(self, current: int, total: int, identity: str) -> None:
        if self.progress_callback:
            self.progress_callback(current, total, identity)
