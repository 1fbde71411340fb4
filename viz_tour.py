from __future__ import annotations
import argparse
import logging
from typing import List, Optional
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation

from tsp_tour import Tour
from tsp_sa import SimulatedAnnealingTSP, Temperature, NextState
from utils import RandomDoubleGenerator, load_points_csv

WINDOW_WIDTH = 720
WINDOW_HEIGHT = 720
PADDING = 20

LINE_COLOR = "c"
POINT_COLOR = "#d13efc"

# ------------------------------- Visualization --------------------------------

def _closed_xy(tour: Tour):
    xy = tour.to_array()
    if len(xy):
        xy = np.vstack([xy, xy[:1]])
    return xy[:, 0], xy[:, 1]


def plot_tour(tour: Tour, ax=None, title: str = "Tour", show_labels: bool = False):
    """
    Closed tour as a polyline (last point joined back to the first) with the
    points drawn on top. Returns the figure.
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    xs, ys = _closed_xy(tour)
    ax.plot(xs, ys, color=LINE_COLOR, linewidth=1.2)
    ax.scatter(xs[:-1], ys[:-1], s=20, color=POINT_COLOR, zorder=3)
    if show_labels:
        for p in tour.points:
            ax.annotate(str(p.label), (p.x, p.y), fontsize=7,
                        xytext=(3, 3), textcoords="offset points")
    ax.set_title(f"{title} (length {tour.total_length():.2f})")
    ax.set_aspect("equal", adjustable="datalim")
    return fig


def plot_history(energy_history: List[float],
                 temperature_history: List[float],
                 k_stop: Optional[int] = None,
                 title: str = "Energy and temperature"):
    """Energy (left axis) and temperature (right axis) per step."""
    fig, ax_e = plt.subplots(figsize=(8, 4))
    steps = np.arange(len(energy_history))
    ax_e.plot(steps, energy_history, color="C0", linewidth=1, label="energy")
    ax_e.set_xlabel("step"); ax_e.set_ylabel("energy (tour length)")
    ax_t = ax_e.twinx()
    ax_t.plot(steps, temperature_history, color="C3", linewidth=1, label="temperature")
    ax_t.set_ylabel("temperature")
    if k_stop is not None:
        # start of hill-descending
        ax_e.axvline(k_stop, color="k", linestyle=":", linewidth=1)
    ax_e.set_title(title)
    ax_e.grid(True, linestyle=":")
    fig.tight_layout()
    return fig


def animate(sa: SimulatedAnnealingTSP, steps_per_frame: int = 1, interval: int = 1):
    """
    Rendering loop: every frame draws the current tour, then advances the
    optimizer. Stepping stops once the run reports completion; the window stays
    open on the final tour.
    """
    fig, ax = plt.subplots(figsize=(WINDOW_WIDTH / 100, WINDOW_HEIGHT / 100))
    if fig.canvas.manager is not None:
        fig.canvas.manager.set_window_title("Simulated Annealing TSP")
    line, = ax.plot([], [], color=LINE_COLOR, linewidth=1.2)
    dots = ax.scatter(*sa.current_state.to_array().T, s=25, color=POINT_COLOR, zorder=3)
    xy = sa.current_state.to_array()
    if len(xy):
        lo, hi = xy.min(axis=0), xy.max(axis=0)
        ax.set_xlim(lo[0] - PADDING, hi[0] + PADDING)
        ax.set_ylim(lo[1] - PADDING, hi[1] + PADDING)
    ax.invert_yaxis()  # screen coordinates
    state = {"active": True}

    def frame(_):
        xs, ys = _closed_xy(sa.current_state)
        line.set_data(xs, ys)
        dots.set_offsets(sa.current_state.to_array())
        ax.set_title(f"k={sa.k}  T={sa.t:.3f}  E={sa.e:.2f}  best={sa.best_e:.2f}")
        for _ in range(steps_per_frame):
            if not state["active"]:
                break
            state["active"] = sa.make_step()
        return line, dots

    anim = FuncAnimation(fig, frame, interval=interval, blit=False, cache_frame_data=False)
    return fig, anim

# ------------------------------- Runner --------------------------------

def build_tour(n: int, distribution: str = "uniform", width: int = WINDOW_WIDTH,
               height: int = WINDOW_HEIGHT, padding: int = PADDING,
               seed: Optional[int] = None) -> Tour:
    """Random point set inside the window, padded away from its edges."""
    seed_x = seed_y = None
    if seed is not None:
        seed_x, seed_y = seed, seed + 1
    gen_x = RandomDoubleGenerator(padding, width - padding, width / 2, (width - 2 * padding) / 6, seed=seed_x)
    gen_y = RandomDoubleGenerator(padding, height - padding, height / 2, (height - 2 * padding) / 6, seed=seed_y)
    tour = Tour(seed=seed)
    if distribution == "uniform":
        tour.init_uniform(gen_x, gen_y, n)
    elif distribution == "normal":
        tour.init_normal(gen_x, gen_y, n)
    else:
        raise ValueError(f"Unknown distribution: {distribution!r}")
    return tour


def run_cli(argv=None) -> SimulatedAnnealingTSP:
    """Parse arguments, build the instance and run it; returns the finished optimizer."""
    parser = argparse.ArgumentParser(description="Simulated annealing TSP with live tour rendering")
    parser.add_argument("--n", type=int, default=30, help="Number of random points")
    parser.add_argument("--distribution", type=str, default="uniform", choices=["uniform", "normal"])
    parser.add_argument("--csv", type=str, default=None, help="Read points from a CSV with x,y columns instead")
    parser.add_argument("--iters", type=int, default=100000, help="Annealing iterations (kStop)")
    parser.add_argument("--max_higher", type=int, default=20000,
                        help="Iterations without a new best before resetting to the best tour")
    parser.add_argument("--descent", type=int, default=10000, help="Hill-descending iterations after annealing")
    parser.add_argument("--temperature", type=str, default="power_fast",
                        choices=[t.value for t in Temperature])
    parser.add_argument("--next_state", type=str, default="mixed",
                        choices=[s.value for s in NextState])
    parser.add_argument("--T0", type=float, default=1000.0, help="Initial temperature")
    parser.add_argument("--steps_per_frame", type=int, default=50)
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--headless", action="store_true", help="Run to completion without a window")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.csv:
        coords, _ = load_points_csv(args.csv)
        tour = Tour.from_coords(coords, seed=args.seed)
    else:
        tour = build_tour(args.n, args.distribution, seed=args.seed)

    print(tour)
    print(f"Total distance: {tour.total_length():.3f}")

    sa = SimulatedAnnealingTSP(tour, args.iters, args.max_higher, args.descent,
                               temperature=args.temperature, next_state=args.next_state,
                               initial_temperature=args.T0, seed=args.seed)
    if args.headless:
        sa.run()
    else:
        fig, anim = animate(sa, steps_per_frame=args.steps_per_frame)
        plt.show()

    print(f"Steps: {sa.k} | Energy: {sa.e:.3f} | Best: {sa.best_e:.3f}")
    return sa


def main(argv=None):
    run_cli(argv)

if __name__ == "__main__":
    main()
