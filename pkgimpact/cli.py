"""Command-line entry point for pkg-impact."""

import argparse
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from pkgimpact.catalog import PackageCatalog
from pkgimpact.config import AnalysisConfig
from pkgimpact.dependency_graph import DependencyGraph, DependencyGraphBuilder
from pkgimpact.errors import PkgImpactError
from pkgimpact.impact import RemovalImpactAggregator
from pkgimpact.report import render_top_table, write_csv_report
from pkgimpact.rpm_query import RpmQuery
from pkgimpact.snapshot import load_snapshot, save_snapshot, snapshot_is_reusable

logger = logging.getLogger(__name__)


class ImpactCLI:
    def __init__(self, config: AnalysisConfig | None = None, console: Console | None = None, query=None):
        self.config = config or AnalysisConfig()
        self.console = console or Console(stderr=True)
        self.query = query or RpmQuery(
            timeout=self.config.query_timeout,
            retries=self.config.query_retries,
            rpm_binary=self.config.rpm_binary,
            exclude=self.config.exclude_names,
        )

    def _print_status(self, emoji: str, message: str):
        self.console.print(f"{emoji} {escape(message)}")

    def _print_error(self, message: str):
        self.console.print(f"[red]❌ Error:[/red] {escape(message)}", highlight=False)

    def _print_success(self, message: str):
        self.console.print(f"[green]✅ {escape(message)}[/green]")

    @contextmanager
    def _progress(self, description: str) -> Iterator[Callable[[int, int, str], None]]:
        """Progress bar for one phase; yields a (current, total, identity) callback"""
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("{task.fields[package]}"),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(description, total=None, package="")

            def callback(current: int, total: int, identity: str) -> None:
                progress.update(task, completed=current, total=total, package=identity)

            yield callback

    def load_catalog(self) -> PackageCatalog:
        self._print_status("📦", "Querying installed packages...")
        return PackageCatalog.load(self.query.list_installed_packages())

    def load_graph(
        self, catalog: PackageCatalog, graph_path: str | None, refresh: bool
    ) -> DependencyGraph:
        """Reuse the snapshot at graph_path when possible, otherwise build (and save) the graph"""
        if snapshot_is_reusable(graph_path, refresh):
            self._print_status("♻️", f"Reusing existing graph: {graph_path}")
            return load_snapshot(graph_path)

        self._print_status("🔗", "Building dependency graph...")
        with self._progress("Building dependency graph") as callback:
            builder = DependencyGraphBuilder(
                self.query, workers=self.config.workers, progress_callback=callback
            )
            graph = builder.build(catalog)

        if graph_path:
            save_snapshot(graph, graph_path)
            self._print_status("💾", f"Graph built: {graph_path}")
        return graph

    def run(
        self,
        output: str,
        graph_path: str | None = None,
        refresh: bool = False,
        top: int = 0,
    ) -> int:
        try:
            catalog = self.load_catalog()
            graph = self.load_graph(catalog, graph_path, refresh)

            self._print_status("🔍", "Analyzing transitive removal impact...")
            with self._progress("Analyzing removal impact") as callback:
                aggregator = RemovalImpactAggregator(
                    catalog, graph, workers=self.config.workers, progress_callback=callback
                )
                records = aggregator.analyze()

            write_csv_report(records, output)
        except PkgImpactError as e:
            logger.debug("Run aborted", exc_info=True)
            self._print_error(str(e))
            return 1
        except OSError as e:
            self._print_error(f"{e.filename or ''}: {e.strerror or e}")
            return 1

        if top > 0 and records:
            self.console.print(render_top_table(records, top))

        self._print_success(f"Done! Results saved to {output}")
        return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkg-impact",
        description="Compute the transitive removal impact of every installed RPM package",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pkg-impact impact.csv
  pkg-impact -g ~/.cache/pkg-graph.txt impact.csv
  pkg-impact -g ~/.cache/pkg-graph.txt --refresh -j 8 impact.csv

Environment Variables:
  PKGIMPACT_WORKERS         Concurrent queries and analyses (default: 1)
  PKGIMPACT_QUERY_TIMEOUT   Seconds allowed per rpm query (default: 30)
  PKGIMPACT_QUERY_RETRIES   Retries for a failed rpm query (default: 0)
  PKGIMPACT_EXCLUDE         Comma-separated package names to skip (default: gpg-pubkey)
  PKGIMPACT_RPM             rpm executable (default: rpm)
        """,
    )
    parser.add_argument("output", help="CSV file to write")
    parser.add_argument("-g", "--graph", help="Dependency graph snapshot to reuse or create")
    parser.add_argument(
        "-r", "--refresh", action="store_true", help="Rebuild the graph even if the snapshot exists"
    )
    parser.add_argument("-j", "--workers", type=int, help="Concurrent queries and analyses")
    parser.add_argument("--timeout", type=float, help="Seconds allowed per rpm query")
    parser.add_argument(
        "--top", type=int, default=0, metavar="N", help="Show the N heaviest removals when done"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = AnalysisConfig.from_env().with_overrides(
            workers=args.workers, query_timeout=args.timeout
        )
    except ValueError as e:
        parser.error(str(e))

    if args.graph:
        args.graph = str(Path(args.graph).expanduser())

    cli = ImpactCLI(config)
    try:
        return cli.run(args.output, graph_path=args.graph, refresh=args.refresh, top=args.top)
    except KeyboardInterrupt:
        cli._print_error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
