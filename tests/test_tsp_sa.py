import math

import numpy as np
import pytest

from tsp_tour import Tour
from tsp_sa import (
    SimulatedAnnealingTSP, Temperature, NextState, Phase,
    schedule_temperature, temperature_linear, temperature_power_slow, temperature_power_fast,
    acceptance_probability, run_sa,
)

ALL_CHOICES = [(t, s) for t in Temperature for s in NextState]

SQUARE = [(0, 0), (0, 1), (1, 1), (1, 0)]
CROSSING = [(0, 0), (1, 1), (0, 1), (1, 0)]


def _random_tour(n, seed=0):
    rng = np.random.default_rng(seed)
    return Tour.from_coords(rng.random((n, 2)) * 100.0, seed=seed)


# ---------------- schedules ----------------

def test_linear_schedule_endpoints():
    assert temperature_linear(0, 100, 1000.0) == 1000.0
    assert temperature_linear(50, 100, 1000.0) == pytest.approx(500.0)
    assert temperature_linear(100, 100, 1000.0) == 0.0


@pytest.mark.parametrize("k_stop", [1, 7, 100, 12345])
def test_power_fast_matches_closed_form(k_stop):
    for k in range(0, k_stop + 1, max(1, k_stop // 50)):
        expected = 1000.0 * (1 - k / k_stop) ** 2
        assert temperature_power_fast(k, k_stop, 1000.0) == pytest.approx(expected, abs=1e-9)


def test_power_slow_is_concave_and_reaches_zero():
    k_stop = 100
    temps = [temperature_power_slow(k, k_stop, 1000.0) for k in range(k_stop + 1)]
    assert temps[0] == 1000.0
    assert temps[-1] == pytest.approx(0.0, abs=1e-9)
    drops = np.diff(temps)
    assert np.all(drops <= 0)
    # drops grow as k approaches k_stop
    assert np.all(np.diff(drops) <= 1e-9)


def test_power_fast_drops_fast_then_levels_off():
    temps = [temperature_power_fast(k, 100, 1000.0) for k in range(101)]
    drops = -np.diff(temps)
    assert drops[0] > drops[-1]


def test_schedule_dispatch_and_strings():
    assert schedule_temperature(Temperature.LINEAR, 25, 100) == temperature_linear(25, 100)
    assert schedule_temperature("power_slow", 25, 100) == temperature_power_slow(25, 100)
    assert schedule_temperature("power_fast", 25, 100) == temperature_power_fast(25, 100)
    with pytest.raises(ValueError):
        schedule_temperature("cubic", 1, 10)
    with pytest.raises(ValueError):
        schedule_temperature(Temperature.LINEAR, 0, 0)


# ---------------- acceptance ----------------

def test_acceptance_probability_zero_temperature():
    assert acceptance_probability(12.0, 10.0, 0.0) == 0.0


def test_acceptance_probability_formula():
    assert acceptance_probability(12.0, 10.0, 4.0) == pytest.approx(math.exp(-0.5))
    assert acceptance_probability(10.0, 10.0, 4.0) == 1.0


def test_acceptance_probability_decreases_with_temperature():
    probs = [acceptance_probability(15.0, 10.0, t) for t in (1000.0, 100.0, 10.0, 1.0, 0.1)]
    assert all(a > b for a, b in zip(probs, probs[1:]))


def test_better_candidate_always_accepted():
    sa = SimulatedAnnealingTSP(Tour.from_coords(CROSSING), 10, 5, 5, seed=1)
    assert sa.attempt_accepting(Tour.from_coords(SQUARE))
    assert sa.e == pytest.approx(4.0)
    assert sa.best_e == pytest.approx(4.0)
    assert sa.best_state is not sa.current_state


def test_worse_candidate_rejected_at_zero_temperature():
    sa = SimulatedAnnealingTSP(Tour.from_coords(SQUARE), 1, 5, 5, seed=2)
    sa.make_step()
    sa.make_step()  # transition into hill-descending
    assert sa.phase is Phase.DESCENDING
    assert sa.t == 0.0
    for _ in range(50):
        assert not sa.attempt_accepting(Tour.from_coords(CROSSING))
    assert sa.e == pytest.approx(4.0)


def test_worse_candidate_sometimes_accepted_when_hot():
    sa = SimulatedAnnealingTSP(Tour.from_coords(SQUARE), 100, 50, 5, initial_temperature=1e6, seed=3)
    assert sa.attempt_accepting(Tour.from_coords(CROSSING))
    assert sa.e > sa.best_e


# ---------------- neighbours ----------------

@pytest.mark.parametrize("strategy", list(NextState))
def test_next_state_keeps_points_and_leaves_current_untouched(strategy):
    tour = _random_tour(9, seed=4)
    sa = SimulatedAnnealingTSP(tour, 10, 5, 5, next_state=strategy, seed=4)
    before = sa.current_state.points
    candidate = sa.next_state()
    assert candidate is not sa.current_state
    assert sorted(candidate.labels()) == sorted(tour.labels())
    assert sa.current_state.points == before


def test_mixed_strategy_prefers_improving_swap():
    # from the crossing order any improving move is a swap; mixed should find one
    sa = SimulatedAnnealingTSP(Tour.from_coords(CROSSING), 10, 5, 5, next_state=NextState.MIXED, seed=5)
    found = sum(sa.next_state().total_length() < sa.e for _ in range(20))
    assert found > 0


def test_mixed_strategy_falls_back_to_consecutive_swap():
    # no single swap improves the square, so every candidate is the fallback
    sa = SimulatedAnnealingTSP(Tour.from_coords(SQUARE), 10, 5, 5, next_state=NextState.MIXED, seed=6)
    current = sa.current_state.points
    for _ in range(50):
        candidate = sa.next_state().points
        diff = [i for i in range(4) if candidate[i] != current[i]]
        assert len(diff) == 2
        a, b = diff
        assert b == a + 1 or (a, b) == (0, 3)
    assert sa.current_state.points == current


# ---------------- construction ----------------

@pytest.mark.parametrize("kwargs", [
    dict(n_iterations=0),
    dict(n_iterations=-5),
    dict(max_higher_energy_iterations=-1),
    dict(max_hill_descending_iterations=-1),
    dict(initial_temperature=0.0),
    dict(temperature="cubic"),
    dict(next_state="random_walk"),
])
def test_invalid_construction_fails_fast(kwargs):
    params = dict(n_iterations=10, max_higher_energy_iterations=5, max_hill_descending_iterations=5)
    params.update(kwargs)
    with pytest.raises(ValueError):
        SimulatedAnnealingTSP(_random_tour(5), **params)


def test_tour_argument_type_checked():
    with pytest.raises(ValueError):
        SimulatedAnnealingTSP([(0, 0), (1, 1)], 10, 5, 5)


def test_iterations_since_best_is_read_only():
    sa = SimulatedAnnealingTSP(_random_tour(6, seed=17), 10, 5, 5)
    assert sa.iterations_since_best == 0
    with pytest.raises(AttributeError):
        sa.iterations_since_best = 3


def test_initial_state_is_cloned_not_aliased():
    tour = _random_tour(8, seed=6)
    sa = SimulatedAnnealingTSP(tour, 10, 5, 5)
    snapshot = sa.current_state.points
    for _ in range(10):
        tour.arbitrary_swap()
    assert sa.current_state.points == snapshot
    assert sa.current_state is not tour
    assert sa.best_state is not sa.current_state
    assert sa.energy_history == [sa.e]
    assert sa.temperature_history == [1000.0]
    assert sa.k == 0 and sa.phase is Phase.ANNEALING
    assert sa.k_stop == 10 and sa.max_hill_descending_iterations == 5


# ---------------- stepping ----------------

def test_step_returns_true_until_final_call():
    sa = SimulatedAnnealingTSP(_random_tour(10, seed=7), 50, 20, 20, seed=7)
    results = [sa.make_step() for _ in range(70)]
    assert results[:-1] == [True] * 69
    assert results[-1] is False
    assert sa.phase is Phase.TERMINAL
    assert len(sa.energy_history) == 71
    assert len(sa.temperature_history) == 71

    # terminal: no further change
    e, hist = sa.e, list(sa.energy_history)
    assert sa.make_step() is False
    assert sa.e == e and sa.energy_history == hist


def test_hill_descending_phase_is_greedy():
    sa = SimulatedAnnealingTSP(_random_tour(12, seed=8), 30, 10, 200, seed=8)
    for _ in range(30):
        sa.make_step()
    sa.make_step()
    assert sa.t == 0.0
    while sa.make_step():
        pass
    descent = sa.energy_history[31:]
    assert all(b <= a for a, b in zip(descent, descent[1:]))
    assert all(t == 0.0 for t in sa.temperature_history[31:])
    assert sa.best_e == pytest.approx(sa.e)


def test_transition_restores_best():
    sa = SimulatedAnnealingTSP(_random_tour(12, seed=9), 40, 1000, 10, initial_temperature=1e5, seed=9)
    for _ in range(40):
        sa.make_step()
    best_e = sa.best_e
    sa.make_step()
    assert sa.phase in (Phase.DESCENDING, Phase.TERMINAL)
    assert sa.e <= best_e
    assert sa.best_e <= best_e


def test_zero_descent_budget_completes_after_annealing():
    sa = SimulatedAnnealingTSP(_random_tour(8, seed=10), 10, 5, 0, seed=10)
    results = [sa.make_step() for _ in range(10)]
    assert results == [True] * 9 + [False]
    assert sa.phase is Phase.TERMINAL
    assert sa.t == 0.0
    assert sa.e == pytest.approx(sa.best_e)
    assert len(sa.energy_history) == 11


@pytest.mark.parametrize("temperature", list(Temperature))
def test_temperature_history_follows_schedule(temperature):
    k_stop = 40
    sa = SimulatedAnnealingTSP(_random_tour(6, seed=11), k_stop, 1000, 5, temperature=temperature, seed=11)
    for _ in range(k_stop):
        sa.make_step()
    expected = [schedule_temperature(temperature, k, k_stop) for k in range(1, k_stop + 1)]
    assert sa.temperature_history[1:] == pytest.approx(expected)
    assert sa.temperature_history[-1] == pytest.approx(0.0, abs=1e-9)


def test_linear_temperature_reaches_exactly_zero():
    sa = SimulatedAnnealingTSP(_random_tour(6, seed=12), 25, 1000, 5, temperature=Temperature.LINEAR)
    for _ in range(25):
        sa.make_step()
    assert sa.t == 0.0


@pytest.mark.parametrize("temperature,next_state", ALL_CHOICES)
def test_best_energy_invariants(temperature, next_state):
    sa = SimulatedAnnealingTSP(_random_tour(15, seed=13), 600, 100, 200,
                               temperature=temperature, next_state=next_state, seed=13)
    initial = sa.best_e
    bests = [sa.best_e]
    while sa.make_step():
        assert sa.best_e <= sa.e + 1e-9
        bests.append(sa.best_e)
    assert all(b <= a for a, b in zip(bests, bests[1:]))
    assert sa.best_e <= initial
    assert sa.best_state.total_length() == pytest.approx(sa.best_e)
    assert sorted(sa.best_state.labels()) == sorted(sa.current_state.labels())


@pytest.mark.parametrize("temperature,next_state", ALL_CHOICES)
def test_two_point_tour(temperature, next_state):
    tour = Tour.from_coords([(0.0, 0.0), (3.0, 4.0)])
    assert tour.total_length() == 5.0
    sa = SimulatedAnnealingTSP(tour, 5, 2, 3, temperature=temperature, next_state=next_state)
    for _ in range(8):
        sa.make_step()
        assert sa.current_state.size == 2
        assert sa.e == 5.0
    assert sa.best_e == 5.0


@pytest.mark.parametrize("coords", [[], [(1.0, 1.0)]])
def test_degenerate_tours_run_to_completion(coords):
    sa = SimulatedAnnealingTSP(Tour.from_coords(coords), 5, 2, 3, next_state=NextState.MIXED)
    assert sa.run() == 0.0
    assert sa.k == 8
    assert sa.energy_history == [0.0] * 9


def test_reset_restores_best_tour():
    sa = SimulatedAnnealingTSP(_random_tour(12, seed=14), 1000, 50, 10, initial_temperature=1e5, seed=14)
    for _ in range(20):
        sa.make_step()
    sa._iterations_since_best = 10 ** 6
    sa.make_step()
    assert sa.e == pytest.approx(sa.best_e)
    assert sa.current_state.total_length() == pytest.approx(sa.best_state.total_length())
    assert sa.current_state is not sa.best_state
    assert sa.iterations_since_best == 0


def test_run_matches_stepping():
    coords = np.random.default_rng(15).random((10, 2)) * 100.0

    bulk = SimulatedAnnealingTSP(Tour.from_coords(coords, seed=1), 300, 50, 100,
                                 Temperature.POWER_FAST, NextState.MIXED, seed=2)
    stepped = SimulatedAnnealingTSP(Tour.from_coords(coords, seed=1), 300, 50, 100,
                                    Temperature.POWER_FAST, NextState.MIXED, seed=2)
    bulk.run()
    while stepped.make_step():
        pass
    assert bulk.energy_history == stepped.energy_history
    assert bulk.temperature_history == stepped.temperature_history
    assert bulk.best_e == stepped.best_e
    assert bulk.best_state.points == stepped.best_state.points


def test_run_sa_result_shape():
    tour = _random_tour(12, seed=16)
    res = run_sa(tour, iters=500, max_higher_energy_iterations=100,
                 max_hill_descending_iterations=100, seed=16)
    assert set(res) >= {"route", "best_cost", "history", "time_convergence_iter", "runtime"}
    assert sorted(res["route"]) == sorted(tour.labels())
    assert res["best_cost"] <= tour.total_length()
    assert res["history"][0] == (0, tour.total_length())
    assert res["history"][-1] == (600, res["best_cost"])
    assert len(res["energy_history"]) == 601
