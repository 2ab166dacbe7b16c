"""Tests for table rendering."""

from sqlbench.render import CLEAR_SCREEN, STAT_ROWS, build_table, format_ratio, render
from tests.conftest import make_query


def row_of(text, label):
    """Return the rendered line of the row labelled ``label``."""
    for line in text.splitlines():
        cells = line.split()
        if cells and cells[0] == label:
            return line
    raise AssertionError(f"no row {label!r} in:\n{text}")


class TestFormatRatio:
    """Tests for format_ratio()."""

    def test_with_reference(self):
        assert format_ratio(2.0, 0.5) == "2.00 (4.00x)"

    def test_without_reference(self):
        assert format_ratio(2.0, None) == "2.00"

    def test_zero_reference(self):
        assert format_ratio(2.0, 0.0) == "2.00"

    def test_integer_format(self):
        assert format_ratio(1204, 1169, fmt="{:d}") == "1204 (1.03x)"


class TestBuildTable:
    """Tests for build_table()."""

    def test_shape(self):
        table = build_table([make_query("a", [0.001]), make_query("b", [0.002])])
        assert len(table.columns) == 3
        assert table.row_count == 1 + len(STAT_ROWS)

    def test_does_not_mutate_queries(self):
        q = make_query("a")
        q.seconds.extend([0.001, 0.002])
        build_table([q])
        assert q.stats is None


class TestRender:
    """Tests for render()."""

    def test_ratio_against_first_query(self):
        a = make_query("A", [0.0005] * 3)
        b = make_query("B", [0.002] * 3)
        out = render([a, b], width=200)

        mean = row_of(out, "mean")
        assert "0.50" in mean
        assert "2.00 (4.00x)" in mean

    def test_reference_column_has_no_ratio(self):
        out = render([make_query("A", [0.0005])], width=200)
        for label in ("n", *STAT_ROWS):
            assert "x)" not in row_of(out, label)

    def test_n_has_no_ratio_without_baseline(self):
        a = make_query("A", [0.001] * 4)
        b = make_query("B", [0.002] * 4)
        n_row = row_of(render([a, b], width=200), "n")
        assert n_row.split() == ["n", "4", "4"]

    def test_values_in_milliseconds(self):
        out = render([make_query("A", [0.0125])], width=200)
        assert row_of(out, "max").split() == ["max", "12.50"]

    def test_baseline_ratios(self, sum_baseline_csv):
        from sqlbench.samples import load_baseline

        baseline = load_baseline(sum_baseline_csv)
        gauss = next(q for q in baseline if q.name == "gauss")
        current = make_query("gauss", [gauss.stats.mean] * 1204)

        n_row = row_of(render([current], baseline, width=200), "n")
        assert "1204 (1.03x)" in n_row

    def test_baseline_missing_query_has_no_ratio(self, sum_baseline_csv):
        from sqlbench.samples import load_baseline

        baseline = load_baseline(sum_baseline_csv)
        out = render([make_query("new_query", [0.001, 0.002])], baseline, width=200)
        assert "x)" not in out

    def test_clear_screen(self):
        out = render([make_query("A", [0.001])], clear_screen=True, width=200)
        assert out.startswith(CLEAR_SCREEN)
        assert CLEAR_SCREEN == "\033[0;0H\033[2J\033[3J"

    def test_no_clear_screen_by_default(self):
        out = render([make_query("A", [0.001])], width=200)
        assert not out.startswith("\033")

    def test_headers(self):
        out = render([make_query("gauss", [0.001]), make_query("recursive", [0.002])], width=200)
        header = next(line for line in out.splitlines() if "gauss" in line)
        assert "gauss" in header
        assert header.index("gauss") < header.index("recursive")
