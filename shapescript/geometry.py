"""
Geometry collaborator: Bounds, Shape and a few primitive handles.

The evaluator never looks inside a primitive. It only needs a Shape that
carries an opaque geometry handle (``data_source``) and a ``Bounds``.
The primitives here are handles that know their own extent, enough for
scripts to build something and for callers to size a render volume.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

Vector3 = tuple[float, float, float]


def to_vector3(value: Any) -> Vector3:
    """Accept a list or tuple of three numbers and return a float 3-tuple."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValueError(f"Expected a 3-component vector, got: {type(value).__name__}")
    if len(value) != 3:
        raise ValueError(f"Expected a 3-component vector, got {len(value)} components")
    out = []
    for c in value:
        if isinstance(c, bool) or not isinstance(c, (int, float)):
            raise ValueError(f"Vector component is not a number: {c!r}")
        out.append(float(c))
    return (out[0], out[1], out[2])


class Bounds:
    """Axis-aligned bounding volume. Mutable so it can serve as an out-parameter."""

    __slots__ = ("xmin", "xmax", "ymin", "ymax", "zmin", "zmax")

    def __init__(
        self,
        xmin: float = 0.0,
        xmax: float = 0.0,
        ymin: float = 0.0,
        ymax: float = 0.0,
        zmin: float = 0.0,
        zmax: float = 0.0,
    ) -> None:
        self.xmin = float(xmin)
        self.xmax = float(xmax)
        self.ymin = float(ymin)
        self.ymax = float(ymax)
        self.zmin = float(zmin)
        self.zmax = float(zmax)

    @classmethod
    def from_center(cls, center: Any, half: Any) -> Bounds:
        cx, cy, cz = to_vector3(center)
        hx, hy, hz = to_vector3(half)
        return cls(cx - hx, cx + hx, cy - hy, cy + hy, cz - hz, cz + hz)

    def set(self, other: Bounds) -> None:
        for name in self.__slots__:
            setattr(self, name, getattr(other, name))

    def union(self, other: Bounds) -> Bounds:
        return Bounds(
            min(self.xmin, other.xmin),
            max(self.xmax, other.xmax),
            min(self.ymin, other.ymin),
            max(self.ymax, other.ymax),
            min(self.zmin, other.zmin),
            max(self.zmax, other.zmax),
        )

    def size(self) -> Vector3:
        return (self.xmax - self.xmin, self.ymax - self.ymin, self.zmax - self.zmin)

    def to_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in self.__slots__}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bounds):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"Bounds(x=[{self.xmin}, {self.xmax}], "
            f"y=[{self.ymin}, {self.ymax}], z=[{self.zmin}, {self.zmax}])"
        )


class Primitive:
    """Base for opaque geometry handles."""

    @property
    def bounds(self) -> Bounds:
        raise NotImplementedError


class Sphere(Primitive):
    def __init__(self, radius: float, center: Any = (0.0, 0.0, 0.0)) -> None:
        radius = float(radius)
        if not radius > 0 or math.isinf(radius):
            raise ValueError(f"Sphere radius must be a positive number, got {radius}")
        self.radius = radius
        self.center = to_vector3(center)

    @property
    def bounds(self) -> Bounds:
        r = self.radius
        return Bounds.from_center(self.center, (r, r, r))


class Box(Primitive):
    def __init__(self, size: Any, center: Any = (0.0, 0.0, 0.0)) -> None:
        size = to_vector3(size)
        if min(size) <= 0:
            raise ValueError(f"Box size must be positive, got {size}")
        self.size = size
        self.center = to_vector3(center)

    @property
    def bounds(self) -> Bounds:
        return Bounds.from_center(self.center, tuple(s / 2.0 for s in self.size))


class Cylinder(Primitive):
    """Z-aligned cylinder."""

    def __init__(self, radius: float, height: float, center: Any = (0.0, 0.0, 0.0)) -> None:
        radius = float(radius)
        height = float(height)
        if radius <= 0 or height <= 0:
            raise ValueError(f"Cylinder radius and height must be positive, got {radius}, {height}")
        self.radius = radius
        self.height = height
        self.center = to_vector3(center)

    @property
    def bounds(self) -> Bounds:
        r = self.radius
        return Bounds.from_center(self.center, (r, r, self.height / 2.0))


class Union(Primitive):
    def __init__(self, *children: Primitive) -> None:
        if not children:
            raise ValueError("Union needs at least one child")
        self.children = list(children)

    @property
    def bounds(self) -> Bounds:
        out = self.children[0].bounds
        for child in self.children[1:]:
            out = out.union(child.bounds)
        return out


class Shape:
    """What a script's ``main`` returns: a geometry handle plus its bounds."""

    def __init__(self, source: Primitive, bounds: Bounds | None = None) -> None:
        if not isinstance(source, Primitive):
            raise TypeError(f"Shape source must be a geometry primitive, got {type(source).__name__}")
        if bounds is not None and not isinstance(bounds, Bounds):
            raise TypeError(f"Shape bounds must be a Bounds, got {type(bounds).__name__}")
        self.data_source = source
        self.bounds = bounds if bounds is not None else source.bounds

    def __repr__(self) -> str:
        return f"Shape({type(self.data_source).__name__}, {self.bounds!r})"
