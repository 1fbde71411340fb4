import time
import numpy as np
import pandas as pd
from typing import Optional, Tuple


def _fresh_seed() -> int:
    # OS entropy mixed with a nanosecond timestamp so that two generators
    # created back to back never share a stream
    entropy = np.random.SeedSequence().entropy
    return int(entropy) ^ time.time_ns()


class RandomDoubleGenerator:
    """Real-valued draws: uniform in [low, high) and normal(mean, sd)."""

    def __init__(self, low: float, high: float, mean: float = 0.0, sd: float = 0.0,
                 seed: Optional[int] = None):
        self.low, self.high = float(low), float(high)
        self.mean, self.sd = float(mean), float(sd)
        self._rng = np.random.default_rng(_fresh_seed() if seed is None else seed)

    def uniform(self) -> float:
        return float(self._rng.uniform(self.low, self.high))

    def normal(self) -> float:
        return float(self._rng.normal(self.mean, self.sd))


class RandomIntGenerator:
    """Integer draws, uniform over the inclusive range [low, high]."""

    def __init__(self, low: int, high: int, seed: Optional[int] = None):
        self.low, self.high = int(low), int(high)
        self._rng = np.random.default_rng(_fresh_seed() if seed is None else seed)

    def uniform(self) -> int:
        if self.high < self.low:
            raise ValueError(f"Empty range [{self.low}, {self.high}]")
        return int(self._rng.integers(self.low, self.high + 1))

    def derive(self, low: int, high: int) -> "RandomIntGenerator":
        """New independent generator seeded from this one's stream."""
        return RandomIntGenerator(low, high, seed=int(self._rng.integers(2**63 - 1)))


class ConvergenceTracker:
    def __init__(self):
        self.best_cost = float("inf")
        self.best_iter = -1
        self.history = []

    def update(self, iter_idx: int, cost: float):
        if cost < self.best_cost - 1e-12:
            self.best_cost = cost
            self.best_iter = iter_idx
        self.history.append((iter_idx, self.best_cost))

    @property
    def time_convergence_iter(self) -> int:
        return self.best_iter + 1


def load_points_csv(csv_path: str, max_n: Optional[int] = None) -> Tuple[np.ndarray, pd.DataFrame]:
    df = pd.read_csv(csv_path)
    required = {"x", "y"}
    if not required.issubset(set(df.columns)):
        raise ValueError(f"CSV must contain columns: {required}")
    if max_n is not None:
        df = df.iloc[:max_n].copy()
    coords = df[["x", "y"]].to_numpy(dtype=float)
    return coords, df
