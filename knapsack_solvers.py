"""
Knapsack solvers sharing one calling convention.

Each solver adheres to the standard interface:
fit(items, capacity, timeout: Optional[float] = None, seed: Optional[int] = None) -> Tuple[List, float, Dict]

`items` may be dicts ({"id" or "name", "weight", "value"}) or Item records; the
`instance=` keyword ({"items": ..., "capacity": ...}) is accepted as well.

Returns:
1.  best_solution (List): ids (or names) of the items included in the knapsack.
2.  best_value (float): Total value of the best_solution.
3.  logs (Dict): structured run data (final_weight, params, convergence history, ...).

simulated_annealing_solver is the main solver; exhaustive_solver is the exact
reference for small catalogs, greedy_ratio_solver a fast baseline and
qubo_annealing_solver a penalty-QUBO formulation sampled with neal.
"""

import time
import math
import random
import logging
from functools import wraps
from typing import List, Dict, Any, Tuple, Optional

import numpy as np
import dimod
import neal

from knapsack_data_generator import Item, item_from_record
from simulated_annealing import (
    DEFAULT_MAX_INIT_ATTEMPTS,
    InfeasibleConfigurationError,
    anneal,
    compute_energy,
)


# --- compatibility decorator: accept instance=... or items+capacity ---
def accept_instance(func):
    """
    Decorator that allows calling solver(instance=inst, ...) where inst is a dict
    with keys 'items' and 'capacity'. Explicit items/capacity keywords win.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        inst = kwargs.pop('instance', None)
        if inst is not None:
            if 'items' not in kwargs:
                kwargs['items'] = inst.get('items')
            if 'capacity' not in kwargs:
                kwargs['capacity'] = inst.get('capacity')
        return func(*args, **kwargs)
    return wrapper


def _base_logs(message, runtime, final_value=None, final_weight=None,
               solution_size=None, seed=None, params=None, extra=None,
               capacity=None, strict=False):
    """
    Standardized logs for solvers with sanity checks.

    Args:
      message (str): human readable status.
      runtime (float): elapsed seconds.
      final_value (float|None): objective value returned by the solver.
      final_weight (float|None): total weight of the returned solution.
      solution_size (int|None): number of items in returned solution.
      seed (int|None): RNG seed used.
      params (dict|None): solver parameters for reproducibility.
      extra (dict|None): any extra fields (e.g. convergence_history).
      capacity (float|None): instance capacity; when provided final_weight <= capacity is checked.
      strict (bool): if True, raise AssertionError on sanity violation (useful for tests).

    Returns:
      dict: the inputs above plus 'timestamp', 'sanity_warnings' (list) and 'infeasible' (bool).
    """
    logs = {
        "message": str(message),
        "runtime": float(runtime) if runtime is not None else None,
        "final_value": None if final_value is None else float(final_value),
        "final_weight": None if final_weight is None else float(final_weight),
        "solution_size": None if solution_size is None else int(solution_size),
        "seed": seed,
        "params": params or {},
        "extra": extra or {},
        "timestamp": time.time(),
        "sanity_warnings": [],
        "infeasible": False
    }

    if logs["final_value"] is not None and not math.isfinite(logs["final_value"]):
        msg = f"final_value is not finite ({logs['final_value']})"
        if strict:
            raise AssertionError(msg)
        logs["sanity_warnings"].append(msg + " -> reset to 0.0")
        logs["final_value"] = 0.0

    if logs["final_weight"] is not None and capacity is not None:
        if logs["final_weight"] > float(capacity):
            msg = f"final_weight ({logs['final_weight']}) exceeds capacity ({float(capacity)})"
            if strict:
                raise AssertionError(msg)
            # keep the observed weight, only flag it
            logs["sanity_warnings"].append(msg + " -> marked infeasible in logs")
            logs["infeasible"] = True

    if logs["solution_size"] is not None and logs["solution_size"] < 0:
        msg = f"solution_size ({logs['solution_size']}) negative"
        if strict:
            raise AssertionError(msg)
        logs["sanity_warnings"].append(msg + " -> set to 0")
        logs["solution_size"] = 0

    return logs


def _catalog(items) -> Tuple[List[Any], List[Item]]:
    """Split solver input into (ids, Item catalog), index-aligned."""
    ids = []
    catalog = []
    for idx, it in enumerate(items):
        if isinstance(it, Item):
            ids.append(it.name)
            catalog.append(it)
        else:
            ids.append(it.get('id', it.get('name', idx)))
            catalog.append(item_from_record(it, f"items[{idx}]"))
    return ids, catalog


def _chosen(ids, bits):
    return [ids[i] for i, b in enumerate(bits) if b]


# ==============================================================================
# --- Simulated annealing ---
# ==============================================================================

@accept_instance
def simulated_annealing_solver(items, capacity, max_temp=1000.0, min_temp=0.1,
                               cooling_rate=0.9, restarts=1, timeout=None, seed=None,
                               max_init_attempts=DEFAULT_MAX_INIT_ATTEMPTS, record_history=True):
    """
    Simulated annealing with optional independent restarts.

    All restarts draw from one random.Random(seed) stream, so a fixed seed
    reproduces the whole batch. The annealing loop itself cannot be
    interrupted; timeout is checked between restarts and at least one run
    always completes.
    """
    start = time.perf_counter()
    rnd = random.Random(seed)
    ids, catalog = _catalog(items)
    params = {
        "method": "simulated_annealing",
        "max_temp": max_temp,
        "min_temp": min_temp,
        "cooling_rate": cooling_rate,
        "restarts": restarts,
        "max_init_attempts": max_init_attempts,
    }

    best = None
    run_best_values = []
    total_iterations = 0
    message = "simulated_annealing finished"

    for run in range(max(1, int(restarts))):
        if run > 0 and timeout is not None and (time.perf_counter() - start) > timeout:
            message = f"timed out after {run} of {restarts} restarts; returning best-so-far (SA)"
            logging.getLogger(__name__).warning(message)
            break
        try:
            res = anneal(catalog, capacity, max_temp, min_temp, cooling_rate,
                         rng=rnd, max_init_attempts=max_init_attempts,
                         record_history=record_history)
        except InfeasibleConfigurationError as e:
            logging.getLogger(__name__).warning("simulated_annealing: %s", e)
            logs = _base_logs(
                "simulated_annealing: infeasible configuration",
                time.perf_counter() - start,
                final_value=None,
                solution_size=0,
                seed=seed,
                params=dict(params, reason="no_feasible_initial_solution", attempts=e.attempts),
                capacity=capacity
            )
            return [], float('nan'), logs

        run_best_values.append(res.best_value)
        total_iterations += res.iterations
        if best is None or res.best_value > best.best_value:
            best = res

    final_ids = _chosen(ids, best.best_solution)
    logs = _base_logs(
        message,
        time.perf_counter() - start,
        final_value=best.best_value,
        final_weight=best.best_weight,
        solution_size=len(final_ids),
        seed=seed,
        params=params,
        extra={
            "runs": len(run_best_values),
            "run_best_values": run_best_values,
            "total_iterations": total_iterations,
            "best_run_iterations": best.iterations,
            "best_run_rejected": best.rejected_candidates,
            "best_solution": list(best.best_solution),
            "convergence_history": [float(s.best_value) for s in best.history],
        },
        capacity=capacity
    )
    return final_ids, float(best.best_value), logs


# ==============================================================================
# --- Reference solvers ---
# ==============================================================================

@accept_instance
def exhaustive_solver(items, capacity, timeout=None, seed=None, max_items=20, chunk_bits=16):
    """
    Exact solver by enumerating all 2^n subsets in numpy chunks.

    Intended as a ground truth for small catalogs; raises ValueError when
    n > max_items. On timeout returns the best subset among the chunks seen.
    """
    start = time.perf_counter()
    ids, catalog = _catalog(items)
    n = len(catalog)
    if n > max_items:
        raise ValueError(f"exhaustive_solver: {n} items exceeds max_items={max_items}")

    weights = np.array([it.weight for it in catalog], dtype=np.float64)
    values = np.array([it.value for it in catalog], dtype=np.int64)
    shifts = np.arange(n, dtype=np.int64)
    total = 1 << n
    step = 1 << min(n, chunk_bits)

    best_mask = None
    best_value = -1
    message = "exhaustive finished"
    checked = 0
    for lo in range(0, total, step):
        if timeout is not None and (time.perf_counter() - start) > timeout:
            message = "timed out; returning best-so-far (exhaustive)"
            logging.getLogger(__name__).warning("exhaustive: timed out after %d of %d subsets", checked, total)
            break
        masks = np.arange(lo, min(lo + step, total), dtype=np.int64)
        bits = (masks[:, None] >> shifts) & 1
        tot_w = bits @ weights
        tot_v = bits @ values
        feasible = np.flatnonzero(tot_w <= capacity)
        checked += len(masks)
        if feasible.size == 0:
            continue
        k = feasible[np.argmax(tot_v[feasible])]
        if int(tot_v[k]) > best_value:
            best_value = int(tot_v[k])
            best_mask = int(masks[k])

    params = {"method": "exhaustive", "n": n, "subsets_checked": checked}
    if best_mask is None:
        logs = _base_logs("exhaustive: no feasible subset", time.perf_counter() - start,
                          final_value=None, solution_size=0, seed=seed, params=params)
        return [], float('nan'), logs

    bits = [(best_mask >> i) & 1 for i in range(n)]
    value, weight = compute_energy(bits, catalog)
    final_ids = _chosen(ids, bits)
    logs = _base_logs(
        message,
        time.perf_counter() - start,
        final_value=value,
        final_weight=weight,
        solution_size=len(final_ids),
        seed=seed,
        params=params,
        extra={"best_solution": bits},
        capacity=capacity
    )
    return final_ids, float(value), logs


@accept_instance
def greedy_ratio_solver(items, capacity, timeout=None, seed=None, check_period=1000):
    """
    Greedy by value/weight ratio with deterministic tie-breaker (catalog index).
    Zero-weight items are always taken. Returns a feasible best-so-far solution on timeout.
    """
    start = time.perf_counter()
    ids, catalog = _catalog(items)

    bits = [0] * len(catalog)
    total_weight = 0.0
    for i, it in enumerate(catalog):
        if it.weight <= 0:
            bits[i] = 1

    order = [i for i, it in enumerate(catalog) if it.weight > 0]
    order.sort(key=lambda i: (-(catalog[i].value / catalog[i].weight), i))

    message = "greedy_ratio finished"
    for idx, i in enumerate(order):
        if timeout is not None and idx % check_period == 0 and (time.perf_counter() - start) > timeout:
            message = "timed out; returning best-so-far (greedy_ratio)"
            break
        if total_weight + catalog[i].weight <= capacity:
            bits[i] = 1
            total_weight += catalog[i].weight

    value, weight = compute_energy(bits, catalog)
    final_ids = _chosen(ids, bits)
    logs = _base_logs(
        message,
        time.perf_counter() - start,
        final_value=value,
        final_weight=weight,
        solution_size=len(final_ids),
        seed=seed,
        params={"method": "greedy_ratio", "check_period": check_period},
        capacity=capacity
    )
    return final_ids, float(value), logs


@accept_instance
def qubo_annealing_solver(items, capacity, timeout=None, seed=None,
                          num_reads=200, penalty_multiplier=1.5):
    """
    Penalty QUBO solved with neal's simulated annealing sampler.

    Energy: -sum(v_i x_i) + A * (sum(w_i x_i) - capacity)^2 with
    A = penalty_multiplier * max(v). The squared penalty pulls samples toward
    filling the capacity exactly, so the answer is the most valuable
    feasible sample rather than the lowest-energy one. Zero-weight items are
    always taken and left out of the model. No repair: when no sample is
    feasible the result is ([], nan, logs).
    """
    start = time.perf_counter()
    ids, catalog = _catalog(items)

    bits = [1 if it.weight <= 0 else 0 for it in catalog]
    active = [i for i, it in enumerate(catalog) if it.weight > 0]
    params = {
        "method": "qubo_annealing",
        "sampler_used": "neal.SimulatedAnnealingSampler",
        "num_reads": int(num_reads),
        "penalty_multiplier": float(penalty_multiplier),
    }

    if not active or capacity <= 0:
        value, weight = compute_energy(bits, catalog)
        final_ids = _chosen(ids, bits)
        logs = _base_logs("qubo_annealing: only zero-weight items fit", time.perf_counter() - start,
                          final_value=value, final_weight=weight, solution_size=len(final_ids),
                          seed=seed, params=params, capacity=capacity)
        return final_ids, float(value), logs

    weights = [float(catalog[i].weight) for i in active]
    values = [float(catalog[i].value) for i in active]
    cap = float(capacity)
    A = float(penalty_multiplier) * max(max(values), 1.0)
    params["A"] = A

    linear = {k: -values[k] + A * weights[k] * weights[k] - 2.0 * A * cap * weights[k]
              for k in range(len(active))}
    quadratic = {}
    for k in range(len(active)):
        for j in range(k + 1, len(active)):
            quadratic[(k, j)] = 2.0 * A * weights[k] * weights[j]
    bqm = dimod.BinaryQuadraticModel(linear, quadratic, A * cap * cap, dimod.BINARY)

    sample_kwargs = {"num_reads": int(num_reads)}
    if seed is not None:
        sample_kwargs["seed"] = int(seed) & 0xFFFFFFFF
    response = neal.SimulatedAnnealingSampler().sample(bqm, **sample_kwargs)

    best_bits = None
    best_key = None
    samples_checked = 0
    for sample, energy in response.data(['sample', 'energy']):
        samples_checked += 1
        trial = list(bits)
        for k, i in enumerate(active):
            trial[i] = int(sample[k])
        value, weight = compute_energy(trial, catalog)
        if weight > capacity:
            continue
        key = (value, -float(energy))
        if best_key is None or key > best_key:
            best_key = key
            best_bits = trial

    params["samples_checked"] = samples_checked
    if best_bits is None:
        logging.getLogger(__name__).warning("qubo_annealing: no feasible sample in %d reads", num_reads)
        logs = _base_logs("qubo_annealing: no feasible sample (no repair performed)",
                          time.perf_counter() - start,
                          final_value=None,
                          solution_size=0,
                          seed=seed,
                          params=params)
        return [], float('nan'), logs

    value, weight = compute_energy(best_bits, catalog)
    final_ids = _chosen(ids, best_bits)
    logs = _base_logs(
        "qubo_annealing finished",
        time.perf_counter() - start,
        final_value=value,
        final_weight=weight,
        solution_size=len(final_ids),
        seed=seed,
        params=params,
        extra={"best_energy": -best_key[1], "best_solution": best_bits},
        capacity=capacity
    )
    return final_ids, float(value), logs


SOLVERS = {
    "simulated_annealing": simulated_annealing_solver,
    "exhaustive": exhaustive_solver,
    "greedy_ratio": greedy_ratio_solver,
    "qubo_annealing": qubo_annealing_solver,
}
