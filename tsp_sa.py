from typing import Dict, Any, List, Optional, Union
from enum import Enum
import logging
import math, time
from tsp_tour import Tour
from utils import RandomDoubleGenerator, ConvergenceTracker

logger = logging.getLogger(__name__)

INITIAL_T = 1000.0
MIXED_ATTEMPTS = 10  # arbitrary-swap attempts before the mixed strategy falls back


class Temperature(Enum):
    LINEAR = "linear"
    POWER_SLOW = "power_slow"
    POWER_FAST = "power_fast"


class NextState(Enum):
    CONSECUTIVE = "consecutive"
    ARBITRARY = "arbitrary"
    MIXED = "mixed"


class Phase(Enum):
    ANNEALING = "annealing"
    TRANSITION = "transition"
    DESCENDING = "descending"
    TERMINAL = "terminal"


# ---------------- cooling schedules ----------------

def temperature_linear(k: int, k_stop: int, t0: float = INITIAL_T) -> float:
    return t0 * ((k_stop - k) / k_stop)

def temperature_power_slow(k: int, k_stop: int, t0: float = INITIAL_T) -> float:
    return -(t0 / (k_stop * k_stop)) * (k * k) + t0

def temperature_power_fast(k: int, k_stop: int, t0: float = INITIAL_T) -> float:
    return (t0 / (k_stop * k_stop)) * (k * k) + (-2 * t0 / k_stop) * k + t0

_SCHEDULES = {
    Temperature.LINEAR: temperature_linear,
    Temperature.POWER_SLOW: temperature_power_slow,
    Temperature.POWER_FAST: temperature_power_fast,
}

def schedule_temperature(choice: Temperature, k: int, k_stop: int, t0: float = INITIAL_T) -> float:
    if k_stop <= 0:
        raise ValueError("k_stop must be positive")
    return _SCHEDULES[Temperature(choice)](k, k_stop, t0)


def acceptance_probability(candidate_e: float, e: float, t: float) -> float:
    """Metropolis probability of moving to a candidate that is not better."""
    if t <= 0.0:
        return 0.0
    return math.exp(-abs(candidate_e - e) / t)


class SimulatedAnnealingTSP:
    """
    Simulated annealing over a Tour, driven one step at a time.

    The run has two phases: `k_stop` annealing iterations following the chosen
    cooling schedule, then `max_hill_descending_iterations` greedy iterations at
    T = 0 starting from the best tour seen. `make_step` advances exactly one
    iteration and returns whether the run is still active afterwards.

    Current and best tours are owned by the optimizer and never aliased: every
    promotion to best and every restore from best makes an explicit copy. Tours
    returned by the accessors are live references and must not be mutated.
    """

    def __init__(self,
                 tour: Tour,
                 n_iterations: int,
                 max_higher_energy_iterations: int,
                 max_hill_descending_iterations: int,
                 temperature: Union[Temperature, str] = Temperature.LINEAR,
                 next_state: Union[NextState, str] = NextState.CONSECUTIVE,
                 initial_temperature: float = INITIAL_T,
                 seed: Optional[int] = None):
        if not isinstance(tour, Tour):
            raise ValueError(f"tour must be a Tour, got {type(tour).__name__}")
        if int(n_iterations) < 1:
            raise ValueError("n_iterations must be at least 1")
        if int(max_higher_energy_iterations) < 0:
            raise ValueError("max_higher_energy_iterations must be non-negative")
        if int(max_hill_descending_iterations) < 0:
            raise ValueError("max_hill_descending_iterations must be non-negative")
        if not initial_temperature > 0:
            raise ValueError("initial_temperature must be positive")

        # configuration, fixed for the run
        self._k_stop = int(n_iterations)
        self._max_higher = int(max_higher_energy_iterations)
        self._max_descent = int(max_hill_descending_iterations)
        self._temperature_choice = Temperature(temperature)
        self._next_state_choice = NextState(next_state)
        self._t0 = float(initial_temperature)
        self._rand = RandomDoubleGenerator(0.0, 1.0, 0.5, 0.0, seed=seed)

        # run state
        self._k = 0
        self._t = self._t0
        self._current = tour.copy()
        self._e = self._current.total_length()
        self._best = tour.copy()
        self._best_e = self._e
        self._iterations_since_best = 0
        self._phase = Phase.ANNEALING
        self._energy_history: List[float] = [self._e]
        self._temperature_history: List[float] = [self._t]

        self._anneal_log_every = max(1, self._k_stop // 10)
        self._descent_log_every = max(1, (self._k_stop + self._max_descent) // 10)

    # ---------------- accessors ----------------

    @property
    def current_state(self) -> Tour:
        return self._current

    @property
    def best_state(self) -> Tour:
        return self._best

    @property
    def e(self) -> float:
        return self._e

    @property
    def best_e(self) -> float:
        return self._best_e

    @property
    def t(self) -> float:
        return self._t

    @property
    def k(self) -> int:
        return self._k

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def iterations_since_best(self) -> int:
        return self._iterations_since_best

    @property
    def energy_history(self) -> List[float]:
        return self._energy_history

    @property
    def temperature_history(self) -> List[float]:
        return self._temperature_history

    @property
    def k_stop(self) -> int:
        return self._k_stop

    @property
    def max_hill_descending_iterations(self) -> int:
        return self._max_descent

    @property
    def temperature_choice(self) -> Temperature:
        return self._temperature_choice

    @property
    def next_state_choice(self) -> NextState:
        return self._next_state_choice

    # ---------------- building blocks ----------------

    def temperature(self) -> float:
        return schedule_temperature(self._temperature_choice, self._k, self._k_stop, self._t0)

    def next_state(self) -> Tour:
        """Candidate neighbour of the current tour; the current tour is left untouched."""
        choice = self._next_state_choice
        if choice is NextState.CONSECUTIVE:
            candidate = self._current.copy()
            candidate.consecutive_swap()
            return candidate
        if choice is NextState.ARBITRARY:
            candidate = self._current.copy()
            candidate.arbitrary_swap()
            return candidate
        if choice is NextState.MIXED:
            for _ in range(MIXED_ATTEMPTS):
                candidate = self._current.copy()
                candidate.arbitrary_swap()
                if candidate.total_length() < self._e:
                    return candidate
            candidate = self._current.copy()
            candidate.consecutive_swap()
            return candidate
        raise ValueError(f"Unknown next-state strategy: {choice!r}")

    def attempt_accepting(self, candidate: Tour) -> bool:
        candidate_e = candidate.total_length()
        if candidate_e < self._e:
            self._current, self._e = candidate, candidate_e
            self._update_best()
            return True
        if self._t > 0.0 and self._rand.uniform() < acceptance_probability(candidate_e, self._e, self._t):
            self._current, self._e = candidate, candidate_e
            return True
        return False

    def _update_best(self):
        if self._e < self._best_e:
            self._best_e = self._e
            self._best = self._current.copy()
            self._iterations_since_best = 0

    def _restore_best(self):
        self._current = self._best.copy()
        self._e = self._current.total_length()

    def _record(self):
        self._energy_history.append(self._e)
        self._temperature_history.append(self._t)

    def _log_progress(self):
        logger.info("Iteration %d: temperature %.6g, energy %.6g", self._k, self._t, self._e)

    # ---------------- state machine ----------------

    def _anneal_step(self):
        if self._k % self._anneal_log_every == 0:
            self._log_progress()
        self._k += 1
        self._iterations_since_best += 1
        self.attempt_accepting(self.next_state())
        self._t = self.temperature()

        if self._iterations_since_best > self._max_higher:
            logger.debug("No improvement for %d iterations, resetting to best (E=%.6g)",
                         self._iterations_since_best, self._best_e)
            self._restore_best()
            self._iterations_since_best = 0

        self._record()
        if self._k >= self._k_stop:
            self._phase = Phase.TRANSITION

    def _transition(self):
        self._t = 0.0
        self._restore_best()
        logger.info("---Ending annealing---")
        logger.info("---Starting hill-descending--- temperature %.6g, energy %.6g", self._t, self._e)
        self._phase = Phase.DESCENDING

    def _descent_step(self):
        if self._k % self._descent_log_every == 0:
            self._log_progress()
        self._k += 1
        self.attempt_accepting(self.next_state())
        self._record()
        self._update_best()

    def _finish(self):
        self._phase = Phase.TERMINAL
        logger.info("---Ending hill-descending--- temperature %.6g, energy %.6g", self._t, self._e)

    def make_step(self) -> bool:
        if self._phase is Phase.ANNEALING:
            self._anneal_step()
            if self._phase is Phase.TRANSITION and self._max_descent == 0:
                self._transition()
                self._finish()
        elif self._phase in (Phase.TRANSITION, Phase.DESCENDING):
            if self._phase is Phase.TRANSITION:
                self._transition()
            self._descent_step()
            if self._k >= self._k_stop + self._max_descent:
                self._finish()
        return self._phase is not Phase.TERMINAL

    def run(self) -> float:
        while self.make_step():
            pass
        return self._best_e

    anneal_all = run


def run_sa(tour: Tour,
           iters: int = 100000,
           max_higher_energy_iterations: int = 20000,
           max_hill_descending_iterations: int = 10000,
           temperature: Union[Temperature, str] = Temperature.POWER_FAST,
           next_state: Union[NextState, str] = NextState.MIXED,
           T0: float = INITIAL_T,
           seed: Optional[int] = None) -> Dict[str, Any]:
    sa = SimulatedAnnealingTSP(tour, iters, max_higher_energy_iterations,
                               max_hill_descending_iterations,
                               temperature=temperature, next_state=next_state,
                               initial_temperature=T0, seed=seed)
    tracker = ConvergenceTracker()
    tracker.update(0, sa.best_e)

    t0 = time.time()
    active = True
    while active:
        active = sa.make_step()
        tracker.update(sa.k, sa.best_e)
    runtime = time.time() - t0
    return {"route": sa.best_state.labels(), "best_cost": sa.best_e, "best_tour": sa.best_state,
            "history": tracker.history, "time_convergence_iter": tracker.time_convergence_iter,
            "runtime": runtime, "energy_history": sa.energy_history,
            "temperature_history": sa.temperature_history}
