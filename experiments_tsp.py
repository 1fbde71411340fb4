"""
Compare cooling schedules and neighbour strategies over varying instance sizes.
Every (schedule, strategy) pair anneals the same random instance per size and
records best costs, runtimes and time-convergence iters in a DataFrame.
"""
import numpy as np
import pandas as pd

from tsp_sa import run_sa, Temperature, NextState
from viz_tour import build_tour


def run_suite(sizes=(20, 30, 50),
              temperatures=tuple(Temperature),
              next_states=tuple(NextState),
              iters_scale=500,      # annealing iterations ~= iters_scale * n
              descent_frac=0.1,
              reset_frac=0.2,
              seed=0) -> pd.DataFrame:
    rows = []
    for n in sizes:
        # deterministic per-size seed derived from provided seed
        cur_seed = int(seed) + int(n)
        tour = build_tour(n, "uniform", seed=cur_seed)
        iters = max(1000, n * iters_scale)

        print(f"=== N={n} (seed={cur_seed}, iters={iters}) ===")
        for temp in temperatures:
            for strat in next_states:
                res = run_sa(tour,
                             iters=iters,
                             max_higher_energy_iterations=int(iters * reset_frac),
                             max_hill_descending_iterations=int(iters * descent_frac),
                             temperature=temp, next_state=strat, seed=cur_seed)
                rows.append({
                    "n": n,
                    "temperature": Temperature(temp).value,
                    "next_state": NextState(strat).value,
                    "initial_cost": tour.total_length(),
                    "best_cost": res["best_cost"],
                    "runtime_sec": res["runtime"],
                    "time_convergence_iter": res["time_convergence_iter"],
                })

    df = pd.DataFrame(rows)
    df["improvement"] = 1.0 - df["best_cost"] / df["initial_cost"].replace(0.0, np.nan)
    return df


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Mean best cost per (schedule, strategy), averaged over sizes."""
    return (df.groupby(["temperature", "next_state"])[["best_cost", "improvement", "runtime_sec"]]
              .mean()
              .sort_values("best_cost")
              .reset_index())

if __name__ == "__main__":
    results = run_suite()
    print(results.to_string(index=False))
    print()
    print(summarize(results).to_string(index=False))
