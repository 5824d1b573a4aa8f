"""
Vector path parsing and flattening.

Free-form selections (lasso, pen paths) arrive either as SVG path strings
(``"M 0 0 L 10 0 L 10 10 Z"``) or in the compact command-list form
(``[["M", 0, 0], ["L", 10, 0], ["Z"]]``). Both are normalised to absolute
``M/L/C/Q/A/Z`` commands and flattened into polylines that the rasterizer can
fill and the tracer can draw.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import numpy as np


PathCommand = Tuple[Any, ...]

_ARITY = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}

_TOKEN_RE = re.compile(
    r"(?P<command>[MmLlHhVvCcSsQqTtAaZz])"
    r"|(?P<number>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
    r"|(?P<separator>[\s,]+)"
    r"|(?P<junk>.)"
)

DEFAULT_CURVE_SEGMENTS = 16


class PathDataError(ValueError):
    """Raised when path data cannot be parsed."""


@dataclass(frozen=True)
class Subpath:
    """A flattened polyline; ``closed`` when the source ended it with ``Z``."""

    points: np.ndarray  # shape (n, 2), float64
    closed: bool = False

    def __len__(self) -> int:
        return int(self.points.shape[0])


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _tokenize(text: str) -> List[Tuple[str, List[float]]]:
    groups: List[Tuple[str, List[float]]] = []
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup
        if kind == "separator":
            continue
        if kind == "junk":
            raise PathDataError(f"Unexpected character {match.group()!r} at offset {match.start()}")
        if kind == "command":
            groups.append((match.group(), []))
            continue
        if not groups:
            raise PathDataError("Path data must start with a command")
        groups[-1][1].append(float(match.group()))
    return groups


def _group_commands(data: Any) -> List[Tuple[str, List[float]]]:
    if isinstance(data, str):
        return _tokenize(data)

    groups: List[Tuple[str, List[float]]] = []
    for item in data:
        if isinstance(item, str):
            raise PathDataError(f"Expected a command sequence, got string {item!r}")
        entry = list(item)
        if not entry or not isinstance(entry[0], str):
            raise PathDataError(f"Command entry must start with a command letter: {item!r}")
        try:
            args = [float(value) for value in entry[1:]]
        except (TypeError, ValueError) as exc:
            raise PathDataError(f"Non-numeric argument in command {item!r}") from exc
        groups.append((entry[0], args))
    return groups


def _split_repeats(command: str, args: List[float]) -> Iterable[Tuple[str, List[float]]]:
    upper = command.upper()
    if upper not in _ARITY:
        raise PathDataError(f"Unsupported path command {command!r}")
    arity = _ARITY[upper]
    if arity == 0:
        if args:
            raise PathDataError(f"Command {command!r} takes no arguments")
        yield command, []
        return
    if not args or len(args) % arity:
        raise PathDataError(
            f"Command {command!r} expects a multiple of {arity} arguments, got {len(args)}"
        )
    for index in range(0, len(args), arity):
        chunk = args[index:index + arity]
        if index and upper == "M":
            # Extra coordinate pairs after a moveto are implicit linetos.
            yield ("l" if command == "m" else "L"), chunk
        else:
            yield command, chunk


def parse_path_data(data: Any) -> List[PathCommand]:
    """
    Normalise path data into absolute commands.

    Parameters
    ----------
    data:
        SVG path string or a sequence of ``[command, *args]`` entries.

    Returns
    -------
    List[PathCommand]
        Tuples of ``("M", x, y)``, ``("L", x, y)``,
        ``("C", x1, y1, x2, y2, x, y)``, ``("Q", x1, y1, x, y)``,
        ``("A", rx, ry, rotation, large_arc, sweep, x, y)`` or ``("Z",)``.

    Raises
    ------
    PathDataError
        If the data is malformed or uses an unknown command.
    """
    if data is None:
        raise PathDataError("Path data is missing")

    commands: List[PathCommand] = []
    current = (0.0, 0.0)
    start = (0.0, 0.0)
    last_cubic: Optional[Tuple[float, float]] = None
    last_quad: Optional[Tuple[float, float]] = None
    started = False

    for raw_command, raw_args in _group_commands(data):
        for command, args in _split_repeats(raw_command, raw_args):
            upper = command.upper()
            relative = command.islower()
            ox, oy = current if relative else (0.0, 0.0)

            if not started and upper != "M":
                raise PathDataError("Path data must begin with a moveto command")
            started = True

            cubic_ctrl: Optional[Tuple[float, float]] = None
            quad_ctrl: Optional[Tuple[float, float]] = None

            if upper == "M":
                current = (args[0] + ox, args[1] + oy)
                start = current
                commands.append(("M",) + current)
            elif upper == "L":
                current = (args[0] + ox, args[1] + oy)
                commands.append(("L",) + current)
            elif upper == "H":
                current = (args[0] + (current[0] if relative else 0.0), current[1])
                commands.append(("L",) + current)
            elif upper == "V":
                current = (current[0], args[0] + (current[1] if relative else 0.0))
                commands.append(("L",) + current)
            elif upper == "C":
                c1 = (args[0] + ox, args[1] + oy)
                c2 = (args[2] + ox, args[3] + oy)
                current = (args[4] + ox, args[5] + oy)
                commands.append(("C",) + c1 + c2 + current)
                cubic_ctrl = c2
            elif upper == "S":
                c1 = _reflect(last_cubic, current)
                c2 = (args[0] + ox, args[1] + oy)
                current = (args[2] + ox, args[3] + oy)
                commands.append(("C",) + c1 + c2 + current)
                cubic_ctrl = c2
            elif upper == "Q":
                c1 = (args[0] + ox, args[1] + oy)
                current = (args[2] + ox, args[3] + oy)
                commands.append(("Q",) + c1 + current)
                quad_ctrl = c1
            elif upper == "T":
                c1 = _reflect(last_quad, current)
                current = (args[0] + ox, args[1] + oy)
                commands.append(("Q",) + c1 + current)
                quad_ctrl = c1
            elif upper == "A":
                current = (args[5] + ox, args[6] + oy)
                commands.append(
                    ("A", args[0], args[1], args[2], float(bool(args[3])), float(bool(args[4])))
                    + current
                )
            else:  # Z
                commands.append(("Z",))
                current = start

            last_cubic = cubic_ctrl
            last_quad = quad_ctrl

    return commands


def _reflect(control: Optional[Tuple[float, float]], about: Tuple[float, float]) -> Tuple[float, float]:
    if control is None:
        return about
    return (2 * about[0] - control[0], 2 * about[1] - control[1])


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


def _cubic_points(p0, p1, p2, p3, segments: int) -> np.ndarray:
    t = np.linspace(0.0, 1.0, num=segments + 1)[1:, None]
    mt = 1.0 - t
    return (
        mt ** 3 * np.asarray(p0)
        + 3 * mt ** 2 * t * np.asarray(p1)
        + 3 * mt * t ** 2 * np.asarray(p2)
        + t ** 3 * np.asarray(p3)
    )


def _quadratic_points(p0, p1, p2, segments: int) -> np.ndarray:
    t = np.linspace(0.0, 1.0, num=segments + 1)[1:, None]
    mt = 1.0 - t
    return mt ** 2 * np.asarray(p0) + 2 * mt * t * np.asarray(p1) + t ** 2 * np.asarray(p2)


def _vector_angle(ux: float, uy: float, vx: float, vy: float) -> float:
    return math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)


def _arc_points(
    start: Tuple[float, float],
    rx: float,
    ry: float,
    rotation_deg: float,
    large_arc: bool,
    sweep: bool,
    end: Tuple[float, float],
    segments: int,
) -> np.ndarray:
    """Sample an SVG elliptical arc (endpoint parameterisation)."""
    x1, y1 = start
    x2, y2 = end
    if (x1, y1) == (x2, y2):
        return np.empty((0, 2), dtype=np.float64)
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0:
        return np.array([end], dtype=np.float64)

    phi = math.radians(rotation_deg)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    half_dx = (x1 - x2) / 2.0
    half_dy = (y1 - y2) / 2.0
    x1p = cos_phi * half_dx + sin_phi * half_dy
    y1p = -sin_phi * half_dx + cos_phi * half_dy

    # Scale radii up when they cannot span the endpoints.
    lam = (x1p / rx) ** 2 + (y1p / ry) ** 2
    if lam > 1:
        rx *= math.sqrt(lam)
        ry *= math.sqrt(lam)

    numerator = rx * rx * ry * ry - rx * rx * y1p * y1p - ry * ry * x1p * x1p
    denominator = rx * rx * y1p * y1p + ry * ry * x1p * x1p
    coef = math.sqrt(max(0.0, numerator / denominator)) if denominator else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx
    cx = cos_phi * cxp - sin_phi * cyp + (x1 + x2) / 2.0
    cy = sin_phi * cxp + cos_phi * cyp + (y1 + y2) / 2.0

    ux, uy = (x1p - cxp) / rx, (y1p - cyp) / ry
    vx, vy = (-x1p - cxp) / rx, (-y1p - cyp) / ry
    theta1 = math.atan2(uy, ux)
    delta = _vector_angle(ux, uy, vx, vy)
    if not sweep and delta > 0:
        delta -= 2 * math.pi
    elif sweep and delta < 0:
        delta += 2 * math.pi

    count = max(2, int(math.ceil(segments * abs(delta) / (math.pi / 2))))
    theta = theta1 + delta * np.linspace(0.0, 1.0, num=count + 1)[1:]
    px = cx + rx * np.cos(theta) * cos_phi - ry * np.sin(theta) * sin_phi
    py = cy + rx * np.cos(theta) * sin_phi + ry * np.sin(theta) * cos_phi
    points = np.column_stack([px, py])
    points[-1] = end
    return points


def flatten_path(data: Any, curve_segments: int = DEFAULT_CURVE_SEGMENTS) -> List[Subpath]:
    """
    Flatten path data into polylines.

    Parameters
    ----------
    data:
        Raw path data (string or command list) or the output of
        :func:`parse_path_data`.
    curve_segments:
        Line segments used per Bézier curve and per quarter turn of an arc.
    """
    segments = max(1, int(curve_segments))
    commands = parse_path_data(data)

    subpaths: List[Subpath] = []
    points: List[np.ndarray] = []
    current = np.zeros(2, dtype=np.float64)
    start = current

    def flush(closed: bool) -> None:
        if points:
            stacked = np.vstack(points)
            if stacked.shape[0] > 1:
                subpaths.append(Subpath(points=stacked, closed=closed))
        points.clear()

    for command in commands:
        kind = command[0]
        if kind == "M":
            flush(False)
            current = np.array(command[1:3], dtype=np.float64)
            start = current
            points.append(current[None, :])
            continue
        if not points:
            # Drawing after a closepath restarts at the subpath origin.
            points.append(start[None, :])
        if kind == "L":
            current = np.array(command[1:3], dtype=np.float64)
            points.append(current[None, :])
        elif kind == "C":
            sampled = _cubic_points(current, command[1:3], command[3:5], command[5:7], segments)
            points.append(sampled)
            current = sampled[-1]
        elif kind == "Q":
            sampled = _quadratic_points(current, command[1:3], command[3:5], segments)
            points.append(sampled)
            current = sampled[-1]
        elif kind == "A":
            end = (float(command[6]), float(command[7]))
            sampled = _arc_points(
                (float(current[0]), float(current[1])),
                command[1],
                command[2],
                command[3],
                bool(command[4]),
                bool(command[5]),
                end,
                segments,
            )
            if sampled.size:
                points.append(sampled)
            current = np.array(end, dtype=np.float64)
        elif kind == "Z":
            flush(True)
            current = start

    flush(False)
    return subpaths


def apply_affine(points: np.ndarray, matrix: Sequence[Sequence[float]]) -> np.ndarray:
    """Apply a 2x3 affine matrix to an ``(n, 2)`` point array."""
    affine = np.asarray(matrix, dtype=np.float64)
    return points @ affine[:, :2].T + affine[:, 2]


def compose_affine(outer: Sequence[Sequence[float]], inner: Sequence[Sequence[float]]) -> np.ndarray:
    """Matrix equivalent to applying ``inner`` first and then ``outer``."""
    a = np.vstack([np.asarray(outer, dtype=np.float64), [0.0, 0.0, 1.0]])
    b = np.vstack([np.asarray(inner, dtype=np.float64), [0.0, 0.0, 1.0]])
    return (a @ b)[:2]


def signed_area(points: np.ndarray) -> float:
    """Shoelace area; the sign gives the polygon's orientation."""
    if points.shape[0] < 3:
        return 0.0
    x = points[:, 0]
    y = points[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))
