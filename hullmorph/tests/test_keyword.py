"""
Tests for reading and writing keyword decks.
"""

import pytest

from hullmorph.geometry import Vector3
from hullmorph.keyword import (
    KeywordFormatError,
    format_boundary,
    format_keyword,
    parse_keyword,
    read_keyword,
    write_keyword,
)
from hullmorph.mesh import LoadCurve, ShellSet
from hullmorph.projection import BoundaryRecord


def fixed_node(nid, x, y, z):
    return f"{nid:8d}{x:16.4f}{y:16.4f}{z:16.4f}"


def fixed_element(eid, pid, *node_ids):
    return f"{eid:8d}{pid:8d}" + "".join(f"{n:8d}" for n in node_ids)


DECK = [
    "*KEYWORD",
    "*TITLE",
    "arm hull",
    "*NODE",
    "$#   nid               x               y               z",
    fixed_node(1, 0.0, 0.0, 1.0),
    fixed_node(2, 1.0, 0.0, 1.0),
    "3, 0.0, 1.0, 1.0",
    fixed_node(4, 1.0, 1.0, 1.0),
    "",
    "*ELEMENT_SHELL",
    fixed_element(1, 7, 1, 2, 3, 3),
    "2,7,2,4,3",
    "*ELEMENT_BEAM",
    fixed_element(5, 8, 1, 4),
    "*DEFINE_CURVE_TITLE",
    "ramp",
    "        12",
    "                 0.0                 0.0",
    "1.0, 1.0",
    "*SET_SHELL_LIST",
    "         5",
    "         1         2",
    "*END",
]


class TestParseKeyword:
    """Tests for :func:`parse_keyword`."""

    def test_nodes_fixed_and_free_format(self):
        mesh = parse_keyword(DECK)
        assert mesh.ids("node") == [1, 2, 3, 4]
        assert mesh.fetch_by_id("node", 3).position == Vector3(0.0, 1.0, 1.0)
        assert mesh.fetch_by_id("node", 4).position == Vector3(1.0, 1.0, 1.0)

    def test_elements(self):
        mesh = parse_keyword(DECK)
        shell = mesh.fetch_by_id("shell", 1)
        assert shell.part_id == 7
        assert shell.defined_nodes() == [1, 2, 3]
        assert mesh.fetch_by_id("shell", 2).node_ids[:4] == [2, 4, 3, None]
        beam = mesh.fetch_by_id("beam", 5)
        assert (beam.part_id, beam.n1, beam.n2) == (8, 1, 4)

    def test_curves_and_sets(self):
        mesh = parse_keyword(DECK)
        assert mesh.fetch_by_id("curve", 12) == LoadCurve(12, [(0.0, 0.0), (1.0, 1.0)], "ramp")
        assert mesh.fetch_by_id("set", 5) == ShellSet(5, [1, 2])

    def test_unknown_keywords_are_kept(self):
        mesh = parse_keyword(DECK)
        assert [b.keyword for b in mesh.raw_blocks] == ["*TITLE"]
        assert mesh.raw_blocks[0].lines == ["arm hull"]

    def test_error_reports_line_number(self):
        lines = ["*KEYWORD", "*NODE", "$ comment", "1,0,0,0", "abc,0,0,0"]
        with pytest.raises(KeywordFormatError) as excinfo:
            parse_keyword(lines, path="bad.k")
        assert excinfo.value.lineno == 5
        assert excinfo.value.path == "bad.k"
        assert str(excinfo.value).startswith("bad.k:5:")

    def test_shell_needs_two_nodes(self):
        with pytest.raises(KeywordFormatError):
            parse_keyword(["*ELEMENT_SHELL", "1,1,5"])

    def test_duplicate_ids(self):
        with pytest.raises(KeywordFormatError) as excinfo:
            parse_keyword(["*NODE", "1,0,0,0", "1,1,1,1"])
        assert excinfo.value.lineno == 3

    def test_set_without_header(self):
        with pytest.raises(KeywordFormatError):
            parse_keyword(["*SET_SHELL_LIST", "*END"])


class TestWriteKeyword:
    """Tests for :func:`write_keyword` and the boundary card."""

    def test_written_deck_reads_back(self, tmp_path):
        mesh = parse_keyword(DECK)
        mesh.fetch_by_id("node", 2).position = Vector3(0.125, -3.5, 1e-3)
        path = str(tmp_path / "out.k")
        assert write_keyword(path, mesh, header=["generated"]) == path

        again = read_keyword(path)
        assert again.ids("node") == [1, 2, 3, 4]
        assert again.fetch_by_id("node", 2).position == Vector3(0.125, -3.5, 1e-3)
        assert again.fetch_by_id("shell", 1).node_ids == mesh.fetch_by_id("shell", 1).node_ids
        assert again.fetch_by_id("set", 5) == ShellSet(5, [1, 2])
        assert again.fetch_by_id("curve", 12).title == "ramp"
        assert [b.keyword for b in again.raw_blocks] == ["*TITLE"]

    def test_layout(self):
        text = format_keyword(parse_keyword(DECK), header=["hullmorph 0.1.0"])
        lines = text.splitlines()
        assert lines[0] == "*KEYWORD"
        assert lines[1] == "$ hullmorph 0.1.0"
        assert lines[-1] == "*END"
        assert lines.index("*TITLE") < lines.index("*NODE")

    def test_long_sets_wrap(self, mesh_factory):
        mesh = mesh_factory(nodes={1: (0, 0, 0), 2: (1, 0, 0)}, shells={1: [1, 2]})
        mesh.add_entity(ShellSet(1, list(range(1, 11))))
        lines = format_keyword(mesh).splitlines()
        start = lines.index("*SET_SHELL_LIST")
        assert len(lines[start + 2]) == 80
        assert lines[start + 3].split() == ["9", "10"]

    def test_boundary_card(self):
        records = [BoundaryRecord(3, 1.0, 2.0, 3.0), BoundaryRecord(10, -1.5, 0.0, 0.25)]
        lines = format_boundary(records, boundary_id=2, load_curve_id=12)
        assert lines[0] == "*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY"
        assert lines[2].split()[:2] == ["2", "12"]
        assert lines[4][:8] == "       3"
        assert [float(v) for v in lines[5].split()[1:4]] == [-1.5, 0.0, 0.25]
        assert len(lines) == 6

    def test_boundary_without_load_curve(self):
        lines = format_boundary([], load_curve_id=None)
        assert lines[2].split()[1] == "0"

    def test_boundary_is_written_before_end(self, tmp_path):
        mesh = parse_keyword(DECK)
        path = tmp_path / "out.k"
        write_keyword(str(path), mesh, boundary=format_boundary([BoundaryRecord(1, 0, 0, 1)]))
        lines = path.read_text().splitlines()
        assert lines[-1] == "*END"
        assert "*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY" in lines
        # unknown keywords are not parsed back, the boundary card stays raw
        again = read_keyword(str(path))
        assert "*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY" in [b.keyword for b in again.raw_blocks]
