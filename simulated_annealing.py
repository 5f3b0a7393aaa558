"""
Simulated annealing for the 0/1 knapsack problem.

A solution is a list of 0/1 flags index-aligned with the item catalog. The
search starts from a random feasible solution and walks single-bit-flip
neighbors, accepting improvements always and worse moves with the Metropolis
probability exp(delta / T). The temperature decays geometrically, but only on
iterations whose candidate fits under the weight cap; over-weight candidates
are discarded and retried at the same temperature.

All randomness comes from one `random.Random` stream passed in by the caller.
Draw order per run: the flag draws of every initialization attempt, then per
iteration one index draw and, for feasible candidates, one acceptance draw.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from knapsack_data_generator import Item


logger = logging.getLogger(__name__)

DEFAULT_MAX_INIT_ATTEMPTS = 100_000


class InfeasibleConfigurationError(RuntimeError):
    """Raised when no random solution within the weight cap was drawn in the attempt budget."""

    def __init__(self, weight_cap: float, attempts: int):
        super().__init__(
            f"no feasible initial solution after {attempts} attempts (weight cap {weight_cap})"
        )
        self.weight_cap = weight_cap
        self.attempts = attempts


@dataclass(frozen=True)
class AnnealingStep:
    """One feasible (cooled) iteration of the search."""
    temperature: float
    candidate_value: int
    candidate_weight: float
    accepted: bool
    best_value: int


@dataclass
class AnnealingResult:
    best_solution: List[int]
    best_value: int
    best_weight: float
    initial_value: int
    init_attempts: int
    iterations: int = 0
    cooled_iterations: int = 0
    rejected_candidates: int = 0
    accepted_moves: int = 0
    final_temperature: float = 0.0
    history: List[AnnealingStep] = field(default_factory=list)


def compute_energy(solution: Sequence[int], items: Sequence[Item]) -> Tuple[int, float]:
    """
    Total value and total weight of the items flagged in `solution`.

    `solution` and `items` must have the same length; a mismatch is a caller
    bug and raises ValueError.
    """
    if len(solution) != len(items):
        raise ValueError(
            f"solution length {len(solution)} does not match catalog length {len(items)}"
        )
    total_value = 0
    total_weight = 0.0
    for included, item in zip(solution, items):
        if included:
            total_value += item.value
            total_weight += item.weight
    return total_value, total_weight


def random_solution(n: int, rng: random.Random) -> List[int]:
    """Length-n solution with every flag drawn uniformly from {0, 1}."""
    return [rng.randrange(2) for _ in range(n)]


def generate_candidate(solution: Sequence[int], rng: random.Random) -> List[int]:
    """Copy of `solution` with exactly one uniformly chosen flag inverted."""
    if not solution:
        raise ValueError("cannot generate a neighbor of an empty solution")
    candidate = list(solution)
    index = rng.randrange(len(candidate))
    candidate[index] = 1 - candidate[index]
    return candidate


def acceptance_probability(current_value: int, candidate_value: int, temperature: float) -> float:
    """
    Metropolis criterion: 1.0 for a strict improvement, otherwise
    exp((candidate_value - current_value) / temperature). Ties give 1.0.
    """
    if candidate_value > current_value:
        return 1.0
    return math.exp((candidate_value - current_value) / temperature)


def _initial_solution(
    items: Sequence[Item],
    weight_cap: float,
    rng: random.Random,
    max_attempts: Optional[int],
) -> Tuple[List[int], int, float, int]:
    # rejection sampling; max_attempts=None keeps drawing forever
    attempts = 0
    while max_attempts is None or attempts < max_attempts:
        attempts += 1
        solution = random_solution(len(items), rng)
        value, weight = compute_energy(solution, items)
        if weight <= weight_cap:
            logger.debug("feasible initial solution after %d attempt(s): value=%d weight=%s",
                         attempts, value, weight)
            return solution, value, weight, attempts
    raise InfeasibleConfigurationError(weight_cap, attempts)


def anneal(
    items: Sequence[Item],
    weight_cap: float,
    max_temp: float,
    min_temp: float,
    cooling_rate: float,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    max_init_attempts: Optional[int] = DEFAULT_MAX_INIT_ATTEMPTS,
    record_history: bool = True,
) -> AnnealingResult:
    """
    Run one simulated annealing search and return the best feasible solution
    seen together with run statistics.

    Degenerate parameters are not corrected: cooling_rate >= 1 never
    terminates and min_temp >= max_temp performs no iterations.

    With record_history=False the per-iteration `history` stays empty and
    only the counters are kept.
    """
    if rng is None:
        rng = random.Random(seed)

    cur_solution, cur_value, cur_weight, attempts = _initial_solution(
        items, weight_cap, rng, max_init_attempts
    )
    result = AnnealingResult(
        best_solution=list(cur_solution),
        best_value=cur_value,
        best_weight=cur_weight,
        initial_value=cur_value,
        init_attempts=attempts,
    )
    temp = max_temp

    if not items:
        result.final_temperature = temp
        return result

    while temp > min_temp:
        result.iterations += 1
        candidate = generate_candidate(cur_solution, rng)
        cand_value, cand_weight = compute_energy(candidate, items)

        # over-weight candidates are dropped without cooling
        if cand_weight > weight_cap:
            result.rejected_candidates += 1
            continue

        accepted = acceptance_probability(cur_value, cand_value, temp) > rng.random()
        if accepted:
            cur_solution = candidate
            cur_value = cand_value
            result.accepted_moves += 1

        if cand_value > result.best_value:
            result.best_solution = list(candidate)
            result.best_value = cand_value
            result.best_weight = cand_weight

        if record_history:
            result.history.append(
                AnnealingStep(temp, cand_value, cand_weight, accepted, result.best_value)
            )
        temp *= cooling_rate
        result.cooled_iterations += 1

    result.final_temperature = temp
    logger.info(
        "annealing done: best_value=%d best_weight=%s iterations=%d cooled=%d rejected=%d",
        result.best_value,
        result.best_weight,
        result.iterations,
        result.cooled_iterations,
        result.rejected_candidates,
    )
    return result


def run_search(
    items: Sequence[Item],
    weight_cap: float,
    max_temp: float,
    min_temp: float,
    cooling_rate: float,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> Tuple[List[int], int]:
    """Anneal and return (best_solution, best_value)."""
    result = anneal(items, weight_cap, max_temp, min_temp, cooling_rate, rng=rng, seed=seed)
    return result.best_solution, result.best_value
