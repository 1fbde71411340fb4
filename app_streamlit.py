import pandas as pd
import streamlit as st
import matplotlib.pyplot as plt

from tsp_tour import Tour
from tsp_sa import SimulatedAnnealingTSP, Temperature, NextState, run_sa
from viz_tour import build_tour, plot_tour, plot_history
from experiments_tsp import run_suite, summarize
from utils import load_points_csv

TEMPERATURE_LABELS = {
    Temperature.LINEAR: "Linear",
    Temperature.POWER_SLOW: "Power (slow start)",
    Temperature.POWER_FAST: "Power (fast start)",
}
NEXT_STATE_LABELS = {
    NextState.CONSECUTIVE: "Consecutive swap",
    NextState.ARBITRARY: "Arbitrary swap",
    NextState.MIXED: "Mixed",
}

def explain_sa_params():
    with st.expander("What do these parameters mean?"):
        st.markdown(
            "- **Annealing iterations**: number of cooling steps; the temperature reaches 0 at the last one.\n"
            "- **Reset threshold**: after this many iterations without a new best tour, the search jumps back to the best tour.\n"
            "- **Hill-descending iterations**: greedy steps at T = 0 after annealing, starting from the best tour.\n"
            "- **Cooling schedule**: how temperature falls from T0 to 0 (linear, slow-then-fast, fast-then-slow).\n"
            "- **Neighbour strategy**: swap two adjacent cities, two random cities, or try random swaps first and fall back to adjacent.\n"
            "- **Random seed**: fixes the random choices for reproducible results."
        )

def sa_controls(key: str):
    c1, c2, c3 = st.columns(3)
    with c1:
        iters = st.number_input("Annealing iterations", value=20000, min_value=1, step=1000, key=f"{key}_iters")
        max_higher = st.number_input("Reset threshold", value=4000, min_value=0, step=500, key=f"{key}_reset")
    with c2:
        descent = st.number_input("Hill-descending iterations", value=2000, min_value=0, step=500, key=f"{key}_descent")
        T0 = st.number_input("Initial temperature T0", value=1000.0, min_value=0.001, key=f"{key}_t0")
    with c3:
        temp = st.selectbox("Cooling schedule", list(Temperature), index=2,
                            format_func=TEMPERATURE_LABELS.get, key=f"{key}_temp")
        strat = st.selectbox("Neighbour strategy", list(NextState), index=2,
                             format_func=NEXT_STATE_LABELS.get, key=f"{key}_strat")
    return dict(iters=int(iters), max_higher=int(max_higher), descent=int(descent),
                T0=float(T0), temperature=temp, next_state=strat)

def instance_controls(key: str):
    n = st.slider("Number of points", 3, 200, 30, step=1, key=f"{key}_n")
    distribution = st.selectbox("Point distribution", ["uniform", "normal"], key=f"{key}_dist")
    seed = st.number_input("Random seed", value=0, step=1, key=f"{key}_seed")
    uploaded = st.file_uploader("Or upload points (CSV with x,y columns)", type=["csv"], key=f"{key}_csv")
    if uploaded is not None:
        coords, _ = load_points_csv(uploaded)
        return Tour.from_coords(coords, seed=int(seed)), int(seed)
    return build_tour(n, distribution, seed=int(seed)), int(seed)

def plot_convergence(history, title="Convergence curve"):
    iters = [h[0] for h in history]; bests = [h[1] for h in history]
    plt.figure(); plt.plot(iters, bests)
    plt.xlabel("Iteration"); plt.ylabel("Best length so far"); plt.title(title)
    st.pyplot(plt.gcf())

st.set_page_config(page_title="Simulated Annealing TSP", layout="wide")
st.title("Simulated Annealing for the Euclidean TSP")

tab1, tab2, tab3 = st.tabs(["Full run", "Step by step", "Compare schedules"])

# ---------- Full run ----------
with tab1:
    st.header("Full run")
    tour, seed = instance_controls("full")
    params = sa_controls("full")
    explain_sa_params()
    if st.button("Run annealing"):
        res = run_sa(tour, iters=params["iters"],
                     max_higher_energy_iterations=params["max_higher"],
                     max_hill_descending_iterations=params["descent"],
                     temperature=params["temperature"], next_state=params["next_state"],
                     T0=params["T0"], seed=seed)
        st.subheader("Summary")
        df = pd.DataFrame([
            {"Tour": "Initial", "Length": tour.total_length()},
            {"Tour": "Best", "Length": res["best_cost"]},
        ])
        st.dataframe(df, use_container_width=True)
        st.caption(f"Runtime {res['runtime']:.2f}s | best found at iteration {res['time_convergence_iter'] - 1}")

        c1, c2 = st.columns(2)
        with c1: st.pyplot(plot_tour(tour, title="Initial tour"))
        with c2: st.pyplot(plot_tour(res["best_tour"], title="Best tour"))
        st.subheader("Energy and temperature")
        st.pyplot(plot_history(res["energy_history"], res["temperature_history"], k_stop=params["iters"]))
        plot_convergence(res["history"], "Best length so far")

# ---------- Step by step ----------
if "sa_stepper" not in st.session_state:
    st.session_state.sa_stepper = None

with tab2:
    st.header("Step by step")
    st.markdown("Create an optimizer, then advance it in batches of steps and watch the current tour change.")
    tour2, seed2 = instance_controls("step")
    params2 = sa_controls("step")
    if st.button("Create optimizer"):
        st.session_state.sa_stepper = SimulatedAnnealingTSP(
            tour2, params2["iters"], params2["max_higher"], params2["descent"],
            temperature=params2["temperature"], next_state=params2["next_state"],
            initial_temperature=params2["T0"], seed=seed2)

    sa = st.session_state.sa_stepper
    if sa is not None:
        batch = st.number_input("Steps per click", value=500, min_value=1, step=100)
        if st.button("Advance"):
            for _ in range(int(batch)):
                if not sa.make_step():
                    break
        total = sa.k_stop + sa.max_hill_descending_iterations
        st.progress(min(1.0, sa.k / total))
        st.write(f"Phase: **{sa.phase.value}** | k = {sa.k} / {total} | "
                 f"T = {sa.t:.3f} | E = {sa.e:.3f} | best = {sa.best_e:.3f}")
        c1, c2 = st.columns(2)
        with c1: st.pyplot(plot_tour(sa.current_state, title="Current tour"))
        with c2: st.pyplot(plot_history(sa.energy_history, sa.temperature_history, k_stop=sa.k_stop))

# ---------- Compare schedules ----------
with tab3:
    st.header("Compare cooling schedules and neighbour strategies")
    sizes_str = st.text_input("Instance sizes (comma-separated)", value="20,30")
    iters_scale = st.number_input("Annealing iterations per point", value=200, min_value=10, step=50)
    seed3 = st.number_input("Random seed", value=0, step=1, key="seed3")
    if st.button("Run comparison"):
        try:
            sizes = [int(x.strip()) for x in sizes_str.split(",") if x.strip() != ""]
        except ValueError:
            sizes = []
        if not sizes:
            st.error("Please provide at least one instance size.")
            st.stop()
        results = run_suite(sizes=sizes, iters_scale=int(iters_scale), seed=int(seed3))
        st.dataframe(results, use_container_width=True)
        st.subheader("Average over sizes")
        st.dataframe(summarize(results), use_container_width=True)

        plt.figure()
        for (temp, strat), sub in results.groupby(["temperature", "next_state"]):
            plt.plot(sub["n"], sub["best_cost"], marker="o", label=f"{temp} / {strat}")
        plt.xlabel("Points (n)"); plt.ylabel("Best length"); plt.title("Best length vs n")
        plt.legend(fontsize=7); plt.grid(True); plt.tight_layout()
        st.pyplot(plt.gcf())
