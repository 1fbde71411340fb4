from __future__ import annotations
import itertools
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple
import numpy as np

from utils import RandomDoubleGenerator, RandomIntGenerator

_LABELS = itertools.count(1)  # process-wide label sequence


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    label: int = field(default_factory=lambda: next(_LABELS), compare=False, hash=False)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    @staticmethod
    def distance_between(a: "Point", b: "Point") -> float:
        return a.distance_to(b)

    def __str__(self) -> str:
        return f"({self.x:.6f}, {self.y:.6f})"


class PointFactory:
    """
    Hands out points with increasing labels. Without `start` the labels come
    from the process-wide sequence, so they never collide with other points
    built the same way.
    """

    def __init__(self, start: Optional[int] = None):
        self._counter = _LABELS if start is None else itertools.count(start)

    def make(self, x: float, y: float) -> Point:
        return Point(float(x), float(y), next(self._counter))


DEFAULT_FACTORY = PointFactory()


class Tour:
    # closed cycle in visiting order; the index generator is rebuilt on every
    # structural change so its bounds always match the size

    def __init__(self, points: Optional[Iterable[Point]] = None, seed: Optional[int] = None):
        self._points: List[Point] = list(points) if points is not None else []
        self._index_gen = RandomIntGenerator(0, len(self._points) - 1, seed=seed)

    @classmethod
    def from_coords(cls, coords: Sequence[Sequence[float]],
                    factory: PointFactory = DEFAULT_FACTORY,
                    seed: Optional[int] = None) -> "Tour":
        return cls([factory.make(x, y) for x, y in coords], seed=seed)

    # ---------------- bulk initialisation ----------------

    def _rebuild_index_gen(self):
        self._index_gen = self._index_gen.derive(0, len(self._points) - 1)

    def init_uniform(self, gen_x: RandomDoubleGenerator, gen_y: RandomDoubleGenerator,
                     n: int, factory: PointFactory = DEFAULT_FACTORY):
        self._points = [factory.make(gen_x.uniform(), gen_y.uniform()) for _ in range(int(n))]
        self._rebuild_index_gen()

    def init_normal(self, gen_x: RandomDoubleGenerator, gen_y: RandomDoubleGenerator,
                    n: int, factory: PointFactory = DEFAULT_FACTORY):
        self._points = [factory.make(gen_x.normal(), gen_y.normal()) for _ in range(int(n))]
        self._rebuild_index_gen()

    # ---------------- queries ----------------

    @property
    def size(self) -> int:
        return len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> Tuple[Point, ...]:
        return tuple(self._points)

    @property
    def index_bounds(self) -> Tuple[int, int]:
        return self._index_gen.low, self._index_gen.high

    def total_length(self) -> float:
        """Energy of the tour: length of the closed cycle."""
        n = len(self._points)
        if n < 2:
            return 0.0
        if n == 2:
            # degenerate there-and-back segment, counted once
            return self._points[0].distance_to(self._points[1])
        total = 0.0
        prev = self._points[-1]
        for p in self._points:
            total += p.distance_to(prev)
            prev = p
        return total

    def to_array(self) -> np.ndarray:
        return np.array([[p.x, p.y] for p in self._points], dtype=float).reshape(-1, 2)

    def labels(self) -> List[int]:
        return [p.label for p in self._points]

    # ---------------- perturbations ----------------

    def consecutive_swap(self):
        n = len(self._points)
        if n < 2:
            return
        a = self._index_gen.uniform()
        b = 0 if a == n - 1 else a + 1
        self._points[a], self._points[b] = self._points[b], self._points[a]

    def arbitrary_swap(self):
        if len(self._points) < 2:
            return
        a = self._index_gen.uniform()
        b = self._index_gen.uniform()
        while a == b:
            b = self._index_gen.uniform()
        self._points[a], self._points[b] = self._points[b], self._points[a]

    # ---------------- copying ----------------

    def copy(self) -> "Tour":
        clone = type(self).__new__(type(self))
        clone._points = list(self._points)  # Points are immutable, a new list is a full copy
        clone._index_gen = self._index_gen.derive(0, len(clone._points) - 1)
        return clone

    __copy__ = copy

    def __deepcopy__(self, memo):
        return self.copy()

    def __str__(self) -> str:
        body = "\n".join(str(p) for p in self._points)
        return f"---Tour---\nsize: {self.size}\npoints:\n{body}\n"
