"""Reading and writing LS-DYNA keyword decks.

Only the cards needed for morphing are modelled: ``*NODE``,
``*ELEMENT_SHELL``, ``*ELEMENT_BEAM``, ``*DEFINE_CURVE`` and
``*SET_SHELL_LIST``. Any other keyword is kept verbatim and written back
unchanged.
"""

import logging
from contextlib import contextmanager

from .geometry import Vector3
from .mesh import (
    SHELL_SLOTS,
    BeamElement,
    LoadCurve,
    MeshModel,
    Node,
    RawBlock,
    ShellElement,
    ShellSet,
)

_logger = logging.getLogger(__name__)

NODE_WIDTHS = (8, 16, 16, 16, 8, 8)
ELEMENT_WIDTHS = (8,) * (2 + SHELL_SLOTS)
CURVE_HEADER_WIDTHS = (10, 10, 10, 10, 10, 10, 10)
CURVE_POINT_WIDTHS = (20, 20)
SET_WIDTHS = (10,) * 8


class KeywordFormatError(ValueError):
    """Raised for a card that cannot be parsed."""

    def __init__(self, message, path=None, lineno=None):
        super().__init__(f"{path or '<deck>'}:{lineno}: {message}")
        self.path = path
        self.lineno = lineno


@contextmanager
def _card(path, lineno, keyword):
    """Turn conversion errors of one card into KeywordFormatError."""
    try:
        yield
    except (ValueError, IndexError) as e:
        raise KeywordFormatError(f"{keyword}: {e}", path, lineno) from e


def _split(line, widths):
    """Split a card into fields, fixed-width or comma-separated."""
    if "," in line:
        return [part.strip() for part in line.split(",")]
    fields = []
    pos = 0
    for width in widths:
        fields.append(line[pos : pos + width].strip())
        pos += width
    return fields


def _int(value):
    return int(value) if value else 0


def _float(value):
    return float(value) if value else 0.0


def _required_int(value, name):
    if not value:
        raise ValueError(f"missing {name}")
    return int(value)


def _blocks(lines):
    """Group ``(lineno, line)`` pairs under their keyword line."""
    blocks = []
    current = None
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if line.startswith("*"):
            current = (lineno, line, [])
            blocks.append(current)
        elif current is not None:
            current[2].append((lineno, line))
    return blocks


def _cards(body):
    return [(n, line) for n, line in body if line.strip() and not line.startswith("$")]


def _parse_nodes(mesh, cards, path):
    for lineno, line in cards:
        with _card(path, lineno, "*NODE"):
            fields = _split(line, NODE_WIDTHS) + ["", "", ""]
            x, y, z = (_float(v) for v in fields[1:4])
            mesh.add_entity(Node(_required_int(fields[0], "node id"), Vector3(x, y, z)))


def _parse_shells(mesh, cards, path):
    for lineno, line in cards:
        with _card(path, lineno, "*ELEMENT_SHELL"):
            fields = _split(line, ELEMENT_WIDTHS) + [""] * len(ELEMENT_WIDTHS)
            node_ids = [_int(v) or None for v in fields[2 : 2 + SHELL_SLOTS]]
            if sum(1 for n in node_ids if n is not None) < 2:
                raise ValueError(f"shell card needs at least two nodes: {line!r}")
            mesh.add_entity(
                ShellElement(
                    _required_int(fields[0], "element id"), _int(fields[1]), node_ids
                )
            )


def _parse_beams(mesh, cards, path):
    for lineno, line in cards:
        with _card(path, lineno, "*ELEMENT_BEAM"):
            fields = _split(line, ELEMENT_WIDTHS) + ["", "", "", ""]
            mesh.add_entity(
                BeamElement(
                    _required_int(fields[0], "element id"),
                    _int(fields[1]),
                    _required_int(fields[2], "node n1"),
                    _required_int(fields[3], "node n2"),
                )
            )


def _titled(cards, titled, path, lineno, keyword):
    """Split off the title card and the header card of a titled keyword."""
    title = None
    if titled and cards:
        title = cards[0][1].strip()
        cards = cards[1:]
    if not cards:
        raise KeywordFormatError(f"{keyword}: missing header card", path, lineno)
    return title, cards[0], cards[1:]


def _parse_curve(mesh, cards, titled, path, lineno):
    title, header, points_cards = _titled(cards, titled, path, lineno, "*DEFINE_CURVE")
    with _card(path, header[0], "*DEFINE_CURVE"):
        lcid = _required_int(_split(header[1], CURVE_HEADER_WIDTHS)[0], "curve id")
    points = []
    for card_lineno, line in points_cards:
        with _card(path, card_lineno, "*DEFINE_CURVE"):
            a, o = (_split(line, CURVE_POINT_WIDTHS) + ["", ""])[:2]
            points.append((_float(a), _float(o)))
    with _card(path, lineno, "*DEFINE_CURVE"):
        mesh.add_entity(LoadCurve(lcid, points, title))


def _parse_set(mesh, cards, titled, path, lineno):
    title, header, id_cards = _titled(cards, titled, path, lineno, "*SET_SHELL_LIST")
    with _card(path, header[0], "*SET_SHELL_LIST"):
        sid = _required_int(_split(header[1], SET_WIDTHS)[0], "set id")
    element_ids = []
    for card_lineno, line in id_cards:
        with _card(path, card_lineno, "*SET_SHELL_LIST"):
            element_ids.extend(i for i in (_int(v) for v in _split(line, SET_WIDTHS)) if i)
    with _card(path, lineno, "*SET_SHELL_LIST"):
        mesh.add_entity(ShellSet(sid, element_ids, title))


def parse_keyword(lines, path=None):
    """Parse the lines of a keyword deck into a MeshModel.

    Parameters
    ----------
    lines : iterable of str
        Deck contents.
    path : str, optional
        File name used in error messages.

    Returns
    -------
    MeshModel

    Raises
    ------
    KeywordFormatError
        If a modelled card is malformed or an id is duplicated.
    """
    mesh = MeshModel()
    for lineno, keyword_line, body in _blocks(lines):
        keyword = keyword_line.split()[0].upper()
        cards = _cards(body)
        if keyword in ("*KEYWORD", "*END"):
            continue
        elif keyword == "*NODE":
            _parse_nodes(mesh, cards, path)
        elif keyword == "*ELEMENT_SHELL":
            _parse_shells(mesh, cards, path)
        elif keyword == "*ELEMENT_BEAM":
            _parse_beams(mesh, cards, path)
        elif keyword in ("*DEFINE_CURVE", "*DEFINE_CURVE_TITLE"):
            _parse_curve(mesh, cards, keyword.endswith("_TITLE"), path, lineno)
        elif keyword in ("*SET_SHELL_LIST", "*SET_SHELL_LIST_TITLE"):
            _parse_set(mesh, cards, keyword.endswith("_TITLE"), path, lineno)
        else:
            mesh.raw_blocks.append(RawBlock(keyword_line, [line for _, line in body]))
    return mesh


def read_keyword(path):
    """Read a keyword deck from ``path``."""
    with open(path, "r") as f:
        mesh = parse_keyword(f, path)
    _logger.info(f"Read {path}: {mesh!r}")
    return mesh


def _f16(value):
    return f"{value:16.8g}"


def _format_nodes(mesh):
    lines = ["*NODE", "$#   nid               x               y               z      tc      rc"]
    for node in mesh.fetch_by_keyword("node"):
        p = node.position
        lines.append(f"{node.id:8d}{_f16(p.x)}{_f16(p.y)}{_f16(p.z)}{0:8d}{0:8d}")
    return lines


def _format_shells(mesh):
    lines = ["*ELEMENT_SHELL", "$#   eid     pid      n1      n2      n3      n4"]
    for shell in mesh.fetch_by_keyword("shell"):
        slots = [nid or 0 for nid in shell.node_ids]
        if not any(slots[4:]):
            slots = slots[:4]
        lines.append(f"{shell.id:8d}{shell.part_id:8d}" + "".join(f"{n:8d}" for n in slots))
    return lines


def _format_beams(mesh):
    lines = ["*ELEMENT_BEAM", "$#   eid     pid      n1      n2"]
    for beam in mesh.fetch_by_keyword("beam"):
        lines.append(f"{beam.id:8d}{beam.part_id:8d}{beam.n1:8d}{beam.n2:8d}")
    return lines


def _format_curves(mesh):
    lines = []
    for curve in mesh.fetch_by_keyword("curve"):
        if curve.title is not None:
            lines += ["*DEFINE_CURVE_TITLE", curve.title]
        else:
            lines.append("*DEFINE_CURVE")
        lines.append(f"{curve.id:10d}")
        lines += [f"{a:20.10g}{o:20.10g}" for a, o in curve.points]
    return lines


def _format_sets(mesh):
    lines = []
    for shell_set in mesh.fetch_by_keyword("set"):
        if shell_set.title is not None:
            lines += ["*SET_SHELL_LIST_TITLE", shell_set.title]
        else:
            lines.append("*SET_SHELL_LIST")
        lines.append(f"{shell_set.id:10d}")
        ids = shell_set.element_ids
        for start in range(0, len(ids), 8):
            lines.append("".join(f"{i:10d}" for i in ids[start : start + 8]))
    return lines


def format_boundary(records, boundary_id=1, load_curve_id=None, death=1.0e28):
    """Lines of a ``*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY`` card.

    Parameters
    ----------
    records : sequence of BoundaryRecord
        Target positions of the nodes.
    boundary_id : int
        Card id.
    load_curve_id : int or None
        Load curve applied to every node; 0 is written when None.
    death : float
        Time at which the constraint is removed.
    """
    lcid = load_curve_id or 0
    lines = [
        "*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY",
        "$#  bpfgid     lcidf    deathf",
        f"{boundary_id:10d}{lcid:10d}{death:10.3g}",
        "$#   nid               x               y               z    lcid           death",
    ]
    for r in records:
        lines.append(f"{r.node_id:8d}{_f16(r.x)}{_f16(r.y)}{_f16(r.z)}{0:8d}{_f16(0.0)}")
    return lines


def format_keyword(mesh, boundary=None, header=None):
    """Render a mesh (and optional boundary card lines) as keyword text."""
    lines = ["*KEYWORD"]
    for entry in header or ():
        lines.append(f"$ {entry}")
    for block in mesh.raw_blocks:
        lines.append(block.keyword)
        lines.extend(block.lines)
    lines += _format_nodes(mesh)
    lines += _format_shells(mesh)
    if mesh.count("beam"):
        lines += _format_beams(mesh)
    lines += _format_curves(mesh)
    lines += _format_sets(mesh)
    if boundary:
        lines += boundary
    lines.append("*END")
    return "\n".join(lines) + "\n"


def write_keyword(path, mesh, boundary=None, header=None):
    """Write a mesh to ``path`` as a keyword deck.

    Parameters
    ----------
    path : str
        Output file.
    mesh : MeshModel
        Mesh to write.
    boundary : list of str, optional
        Card lines from :func:`format_boundary`, appended before ``*END``.
    header : list of str, optional
        Comment lines written after ``*KEYWORD``.

    Returns
    -------
    str
        The path written.
    """
    with open(path, "w") as f:
        f.write(format_keyword(mesh, boundary, header))
    _logger.info(f"Wrote {path}: {mesh!r}")
    return path
