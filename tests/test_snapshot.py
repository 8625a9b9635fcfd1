"""
Tests for graph snapshot persistence
"""

import pytest

from pkgimpact.dependency_graph import DependencyGraph, DependencyGraphBuilder
from pkgimpact.errors import GraphCatalogMismatch, MalformedGraphRecord
from pkgimpact.impact import analyze
from pkgimpact.snapshot import (
    format_record,
    load_snapshot,
    parse_record,
    save_snapshot,
    snapshot_is_reusable,
)
from tests.impact_test_base import A, B, C, FakeQuery, scenario_catalog


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "pkg-graph.txt"


class TestRecordFormat:
    """Tests for single snapshot lines."""

    def test_format_with_dependents(self):
        assert format_record("a", {"c", "b"}) == "a: b c"

    def test_format_without_dependents(self):
        assert format_record("a", set()) == "a:"

    def test_parse_with_dependents(self):
        assert parse_record("a: b c\n") == ("a", ["b", "c"])

    def test_parse_without_dependents(self):
        assert parse_record("a:\n") == ("a", [])

    def test_parse_trailing_whitespace(self):
        assert parse_record("a: b c  \n") == ("a", ["b", "c"])

    def test_parse_epoch_identities(self):
        line = "perl-4:5.36.1-1.fc38.x86_64: perl-libs-4:5.36.1-1.fc38.x86_64"
        assert parse_record(line) == (
            "perl-4:5.36.1-1.fc38.x86_64",
            ["perl-libs-4:5.36.1-1.fc38.x86_64"],
        )

    @pytest.mark.parametrize(
        "line",
        [
            "bash-5.2.15-1.fc38.x86_64",
            ": b c",
            ":",
            "bash 5.2: sudo",
        ],
    )
    def test_parse_malformed(self, line):
        with pytest.raises(MalformedGraphRecord):
            parse_record(line, "graph.txt", 7)

    def test_colon_only_format_needs_refresh(self):
        """Test records without a space after the colon ask for a rebuild."""
        with pytest.raises(MalformedGraphRecord) as exc_info:
            parse_record("a-1.0-1.noarch:b-2.0-1.noarch c-3.0-1.noarch \n", "graph.txt", 1)
        assert "--refresh" in str(exc_info.value)

    def test_malformed_reports_location(self):
        with pytest.raises(MalformedGraphRecord) as exc_info:
            parse_record("truncated-line", "graph.txt", 42)
        assert exc_info.value.line_number == 42
        assert "graph.txt:42" in str(exc_info.value)


class TestSnapshotFile:
    """Tests for saving and loading snapshot files."""

    def test_round_trip_built_graph(self, snapshot_path):
        graph = DependencyGraphBuilder(FakeQuery()).build(scenario_catalog())
        save_snapshot(graph, snapshot_path)
        assert load_snapshot(snapshot_path).edges() == graph.edges()
        assert load_snapshot(snapshot_path) == graph

    def test_file_layout(self, snapshot_path):
        graph = DependencyGraph({C: set(), A: {B}, B: {C}})
        save_snapshot(graph, snapshot_path)
        assert snapshot_path.read_text() == f"{A}: {B}\n{B}: {C}\n{C}:\n"

    def test_round_trip_with_epochs_and_cycles(self, snapshot_path):
        graph = DependencyGraph(
            {
                "perl-4:5.36.1-1.fc38.x86_64": {"perl-libs-4:5.36.1-1.fc38.x86_64"},
                "perl-libs-4:5.36.1-1.fc38.x86_64": {"perl-4:5.36.1-1.fc38.x86_64"},
                "zlib-1.2.13-3.fc38.x86_64": set(),
            }
        )
        save_snapshot(graph, snapshot_path)
        assert load_snapshot(snapshot_path) == graph

    def test_save_replaces_existing(self, snapshot_path):
        snapshot_path.write_text("stale: content\n")
        save_snapshot(DependencyGraph({A: set()}), snapshot_path)
        assert snapshot_path.read_text() == f"{A}:\n"
        assert list(snapshot_path.parent.iterdir()) == [snapshot_path]

    def test_save_creates_parent(self, tmp_path):
        path = tmp_path / "cache" / "graph.txt"
        save_snapshot(DependencyGraph({A: set()}), path)
        assert path.exists()

    def test_blank_lines_ignored(self, snapshot_path):
        snapshot_path.write_text(f"{A}: {B}\n\n{B}:\n")
        assert load_snapshot(snapshot_path) == DependencyGraph({A: {B}, B: set()})

    def test_corrupt_line_fails_whole_load(self, snapshot_path):
        snapshot_path.write_text(f"{A}: {B}\n{B}\n{C}:\n")
        with pytest.raises(MalformedGraphRecord) as exc_info:
            load_snapshot(snapshot_path)
        assert exc_info.value.line_number == 2

    def test_duplicate_record(self, snapshot_path):
        snapshot_path.write_text(f"{A}: {B}\n{A}:\n")
        with pytest.raises(MalformedGraphRecord):
            load_snapshot(snapshot_path)

    def test_unterminated_last_line(self, snapshot_path):
        snapshot_path.write_text(f"{A}: {B}\n{B}: {C}\n{C}:")
        with pytest.raises(MalformedGraphRecord) as exc_info:
            load_snapshot(snapshot_path)
        assert exc_info.value.line_number == 3

    def test_dropped_record_detected_before_analysis(self, snapshot_path):
        """Test a snapshot that lost a whole line cannot understate impact."""
        catalog = scenario_catalog()
        save_snapshot(DependencyGraphBuilder(FakeQuery()).build(catalog), snapshot_path)
        lines = snapshot_path.read_text().splitlines(keepends=True)
        snapshot_path.write_text("".join(line for line in lines if not line.startswith(f"{A}:")))

        graph = load_snapshot(snapshot_path)
        with pytest.raises(GraphCatalogMismatch) as exc_info:
            analyze(catalog, graph)
        assert exc_info.value.identity == A

    def test_missing_file(self, snapshot_path):
        with pytest.raises(OSError):
            load_snapshot(snapshot_path)


class TestSnapshotReuse:
    """Tests for snapshot_is_reusable."""

    def test_reusable(self, snapshot_path):
        snapshot_path.write_text(f"{A}:\n")
        assert snapshot_is_reusable(snapshot_path)

    def test_refresh_requested(self, snapshot_path):
        snapshot_path.write_text(f"{A}:\n")
        assert not snapshot_is_reusable(snapshot_path, refresh=True)

    def test_empty_file(self, snapshot_path):
        snapshot_path.write_text("")
        assert not snapshot_is_reusable(snapshot_path)

    def test_absent_file(self, snapshot_path):
        assert not snapshot_is_reusable(snapshot_path)

    def test_no_path(self):
        assert not snapshot_is_reusable(None)
