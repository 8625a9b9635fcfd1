#!/usr/bin/env python3
"""
Removal Impact Aggregator

Combines transitive closures with catalog sizes into one record per
installed package: its own size, the total size reclaimed by removing it
together with everything that depends on it, and the co-removed packages.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from pkgimpact.catalog import PackageCatalog
from pkgimpact.closure import closure_of
from pkgimpact.dependency_graph import DependencyGraph
from pkgimpact.errors import GraphCatalogMismatch

logger = logging.getLogger(__name__)

KIB = 1024
MIB = 1024 * 1024
GIB = 1024 * 1024 * 1024


def human_size(num_bytes: int) -> str:
    """Format a byte count the way the report has always shown it"""
    if num_bytes >= GIB:
        return f"{num_bytes / GIB:.2f}GiB"
    elif num_bytes >= MIB:
        return f"{num_bytes / MIB:.2f}MiB"
    elif num_bytes >= KIB:
        return f"{num_bytes / KIB:.2f}KiB"
    else:
        return f"{num_bytes}B"


@dataclass(frozen=True)
class ImpactRecord:
    """Removal impact of one installed package"""

    identity: str
    name: str
    size: int
    total_removal_size: int
    also_removes: tuple[str, ...] = ()

    @property
    def human_size(self) -> str:
        return human_size(self.size)

    @property
    def human_total_removal_size(self) -> str:
        return human_size(self.total_removal_size)


class RemovalImpactAggregator:
    """
    Produces an ImpactRecord for every package in the catalog.

    The graph and catalog are only read, so roots can be analyzed
    concurrently; records are always returned in identity order.
    """

    def __init__(
        self,
        catalog: PackageCatalog,
        graph: DependencyGraph,
        workers: int = 1,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.catalog = catalog
        self.graph = graph
        self.workers = workers
        self.progress_callback = progress_callback

    def check_graph(self) -> None:
        """
        Verify the graph and the catalog describe the same packages.

        Every package the graph mentions must be installed, and every
        installed package must have a record; a package without one would
        otherwise be analyzed as if nothing depended on it.

        Raises:
            GraphCatalogMismatch: If the graph is stale relative to the catalog
        """
        for identity in self.graph.nodes():
            if identity not in self.catalog:
                raise GraphCatalogMismatch(identity)

        for identity in self.catalog.identities():
            if identity not in self.graph:
                raise GraphCatalogMismatch(identity, missing_record=True)

    def analyze_package(self, identity: str) -> ImpactRecord:
        """Compute the removal impact of a single package"""
        package = self.catalog.get(identity)
        others = closure_of(self.graph, identity)
        others.discard(identity)

        total = package.size
        for other in others:
            if other not in self.catalog:
                raise GraphCatalogMismatch(other, root=identity)
            total += self.catalog.size_of(other)

        return ImpactRecord(
            identity=identity,
            name=package.name,
            size=package.size,
            total_removal_size=total,
            also_removes=tuple(sorted(others)),
        )

    def analyze(self) -> list[ImpactRecord]:
        """
        Analyze every installed package.

        Returns:
            One ImpactRecord per package, sorted by identity

        Raises:
            GraphCatalogMismatch: If the graph references a package that is
                no longer installed, or has no record for an installed one
        """
        self.check_graph()

        identities = self.catalog.identities()
        total = len(identities)
        logger.info(f"Analyzing removal impact of {total} packages (workers={self.workers})")

        records: list[ImpactRecord] = []
        if self.workers == 1:
            for current, identity in enumerate(identities, 1):
                records.append(self.analyze_package(identity))
                self._report(current, total, identity)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                for current, record in enumerate(executor.map(self.analyze_package, identities), 1):
                    records.append(record)
                    self._report(current, total, record.identity)

        records.sort(key=lambda record: record.identity)
        logger.info(f"Removal impact analyzed for {len(records)} packages")
        return records

    def _report(self, current: int, total: int, identity: str) -> None:
        if self.progress_callback:
            self.progress_callback(current, total, identity)


def analyze(catalog: PackageCatalog, graph: DependencyGraph, workers: int = 1) -> list[ImpactRecord]:
    """Analyze every package in the catalog against the graph"""
    return RemovalImpactAggregator(catalog, graph, workers=workers).analyze()
