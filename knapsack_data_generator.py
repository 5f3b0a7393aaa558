"""
Purpose:
- Item catalog for the 0/1 knapsack annealer: the immutable `Item` record and
  the readers/writers for catalog files.
- Generate reproducible knapsack instances at multiple scales.
  Supports: seed-based reproducibility, distributions, positive/negative correlation,
  capacity ratio, batch generation and file output (JSON + CSV).

Catalog files:
- a JSON array  : [{"name": "A", "weight": 2, "value": 3}, ...]
- an instance   : {"capacity": 5, "items": [...], "meta": {...}}
  items written by `generate_instance` carry an integer "id" and a "name".

Notes:
- Reproducibility: each instance JSON stores the seed used in meta.
  Regenerating the same instance with the same seed + parameters will produce identical items.
- Capacity_ratio controls hardness: smaller ratios generally make packing harder.
- (weight_dist / value_dist) let you simulate different real-world regimes
    > uniform : uniform sampling
    > normal-ish : bell-curve around mid-range
    > heavy-tailed/zipf : few large, many small
"""

import os
import json
import csv
import random
from dataclasses import dataclass
from typing import List, Tuple, Optional, Dict, Any


class CatalogFormatError(ValueError):
    """Raised when a catalog file or item record violates the expected schema."""


@dataclass(frozen=True)
class Item:
    """
    A single knapsack item.

    Attributes
    ----------
    name : str
        Display name, unique within a catalog by convention (not enforced).
    weight : float
        Nonnegative weight.
    value : int
        Nonnegative integer value.
    """
    name: str
    weight: float
    value: int

    def __post_init__(self) -> None:
        if not self.name:
            raise CatalogFormatError("Item.name must be non-empty.")
        if self.weight < 0:
            raise CatalogFormatError(f"Item[{self.name}] weight must be >= 0.")
        if self.value < 0:
            raise CatalogFormatError(f"Item[{self.name}] value must be >= 0.")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "weight": self.weight, "value": self.value}


def _as_int_value(raw, where: str) -> int:
    # values are integers; accept 3 or 3.0 but not 3.5
    try:
        f = float(raw)
    except (TypeError, ValueError) as e:
        raise CatalogFormatError(f"{where}: value {raw!r} is not a number") from e
    if not f.is_integer():
        raise CatalogFormatError(f"{where}: value {raw!r} must be an integer")
    return int(f)


def item_from_record(obj: Dict[str, Any], where: str = "item") -> Item:
    """Build an Item from a {name|id, weight, value} mapping."""
    if not isinstance(obj, dict):
        raise CatalogFormatError(f"{where}: expected an object, got {type(obj).__name__}")
    if "name" in obj:
        name = str(obj["name"])
    elif "id" in obj:
        name = str(obj["id"])
    else:
        raise CatalogFormatError(f"{where}: missing required key 'name' in object {obj}")
    for key in ("weight", "value"):
        if key not in obj:
            raise CatalogFormatError(f"{where}: missing required key '{key}' in object {obj}")
    try:
        weight = float(obj["weight"])
    except (TypeError, ValueError) as e:
        raise CatalogFormatError(f"{where}: weight {obj['weight']!r} is not a number") from e
    return Item(name=name, weight=weight, value=_as_int_value(obj["value"], where))


# --- Catalog readers ---
def _read_json(path: str):
    try:
        with open(path, "r", encoding="utf8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogFormatError(f"{path}: failed to read/parse JSON: {e}") from e


def _items_from_data(data, path: str) -> List[Item]:
    records = data.get("items") if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise CatalogFormatError(f"{path}: expected a JSON array of items or an object with 'items'.")
    return [item_from_record(obj, f"{path}[{idx}]") for idx, obj in enumerate(records)]


def load_items_json(path: str) -> List[Item]:
    """
    Load a catalog from a JSON file. Accepts either a bare array of item
    objects or an instance object with an "items" array.
    """
    return _items_from_data(_read_json(path), path)


def load_instance_json(path: str) -> Tuple[List[Item], Optional[float]]:
    """Load (items, capacity); capacity is None for a bare item array."""
    data = _read_json(path)
    items = _items_from_data(data, path)
    capacity = None
    if isinstance(data, dict) and data.get("capacity") is not None:
        try:
            capacity = float(data["capacity"])
        except (TypeError, ValueError) as e:
            raise CatalogFormatError(f"{path}: capacity {data['capacity']!r} is not a number") from e
    return items, capacity


# --- Utilities / RNG ---
def _get_rng(seed: Optional[int]):
    """Return (seed_used, random.Random instance)."""
    if seed is None:
        seed = random.randrange(0, 2**32)
    rng = random.Random(seed)
    return seed, rng

# --- Value/weight sampling functions ---
def _sample_uniform(rng: random.Random, low: int, high: int) -> int:
    return rng.randint(low, high)

def _sample_normal_int(rng: random.Random, mean: float, std: float, low: int, high: int) -> int:
    # redraw a few times before clamping
    for _ in range(10):
        val = int(round(rng.gauss(mean, std)))
        if low <= val <= high:
            return val
    return max(low, min(high, int(round(mean))))

def _sample_zipf_int(rng: random.Random, a: float, low: int, high: int) -> int:
    # Pareto-like inverse transform, clamped; a in ~[1.2, 2.0] gives a heavy tail
    x = rng.random()
    pareto = int(low + ((1.0 - x) ** (-1.0 / (a - 1.0))))
    return max(low, min(high, pareto))

def _sample(rng: random.Random, dist: str, low: int, high: int, what: str) -> int:
    if dist == "uniform":
        return _sample_uniform(rng, low, high)
    elif dist == "normal":
        mean = (low + high) / 2.0
        std = max(1.0, (high - low) / 6.0)
        return _sample_normal_int(rng, mean, std, low, high)
    elif dist == "zipf":
        return _sample_zipf_int(rng, a=1.8, low=low, high=high)
    raise ValueError(f"Unknown {what}_dist: {dist}")

# --- Instance generator ---
def generate_instance(
    n_items: int,
    weight_range: Tuple[int, int] = (1, 100),
    value_range: Tuple[int, int] = (1, 100),
    capacity_ratio: float = 0.5,
    correlation: Optional[str] = None,   # None | 'positive' | 'negative'
    weight_dist: str = "uniform",        # 'uniform' | 'normal' | 'zipf'
    value_dist: str = "uniform",         # same options
    seed: Optional[int] = None
) -> Dict:
    """
    Returns a dict:
    {
      "meta": { ... seed, params ... },
      "capacity": int,
      "items": [{"id": 0, "name": "item_0", "weight": w, "value": v}, ...]
    }
    Reproducible: instance['meta']['seed'] holds the RNG seed used.
    """
    if correlation not in (None, "positive", "negative"):
        raise ValueError("Unknown correlation: " + str(correlation))
    seed_used, rng = _get_rng(seed)

    wlow, whigh = weight_range
    vlow, vhigh = value_range

    def value_for(w):
        if correlation is None:
            return _sample(rng, value_dist, vlow, vhigh, "value")
        wnorm = (w - wlow) / max(1, (whigh - wlow))
        if correlation == "positive":
            base = vlow + wnorm * (vhigh - vlow)
        else:
            base = vlow + (1.0 - wnorm) * (vhigh - vlow)
        noise = rng.gauss(0, 0.08 * (vhigh - vlow))
        return max(vlow, min(vhigh, int(round(base + noise))))

    items = []
    total_weight = 0
    for i in range(n_items):
        w = _sample(rng, weight_dist, wlow, whigh, "weight")
        v = value_for(w)
        items.append({"id": i, "name": f"item_{i}", "weight": int(w), "value": int(v)})
        total_weight += w

    # At least 1 capacity
    capacity = max(1, int(round(total_weight * capacity_ratio)))

    return {
        "meta": {
            "n_items": n_items,
            "weight_range": list(weight_range),
            "value_range": list(value_range),
            "capacity_ratio": capacity_ratio,
            "correlation": correlation,
            "weight_dist": weight_dist,
            "value_dist": value_dist,
            "seed": seed_used
        },
        "capacity": int(capacity),
        "items": items
    }

def instance_items(instance: Dict) -> List[Item]:
    """Items of a generated (or loaded) instance dict as Item records."""
    return [item_from_record(obj, f"items[{idx}]") for idx, obj in enumerate(instance["items"])]

# --- I/O helpers ---
def _ensure_parent(path: str):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

def save_items_json(items: List[Item], path: str):
    _ensure_parent(path)
    with open(path, "w", encoding="utf8") as f:
        json.dump([it.to_dict() for it in items], f, indent=2)

def save_instance_json(instance: Dict, path: str):
    _ensure_parent(path)
    with open(path, "w", encoding="utf8") as f:
        json.dump(instance, f, indent=2)

def save_instance_csv(instance: Dict, path: str):
    _ensure_parent(path)
    with open(path, "w", newline='', encoding="utf8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "name", "weight", "value"])
        for it in instance["items"]:
            writer.writerow([it.get("id"), it.get("name"), it["weight"], it["value"]])

# --- Batch generator (multiple scales) ---
def generate_batch(
    ns: List[int],
    output_dir: str = "knapsack_instances",
    weight_range: Tuple[int, int] = (1, 100),
    value_range: Tuple[int, int] = (1, 100),
    capacity_ratio: float = 0.5,
    correlation: Optional[str] = None,
    weight_dist: str = "uniform",
    value_dist: str = "uniform",
    base_seed: int = 42,
    force_overwrite: bool = False
) -> List[Dict]:
    """
    Generate instances for each n in ns and save them.
    Naming: {output_dir}/knapsack_n{n}_seed{seed}.json / .csv
    Returns list of metadata records for each created instance.
    """
    os.makedirs(output_dir, exist_ok=True)
    records = []
    for idx, n in enumerate(ns):
        seed = (base_seed + idx) & 0xFFFFFFFF
        base_name = f"knapsack_n{n}_seed{seed}"
        json_path = os.path.join(output_dir, base_name + ".json")
        csv_path = os.path.join(output_dir, base_name + ".csv")

        if not force_overwrite and os.path.exists(json_path):
            records.append({
                "n": n, "seed": seed,
                "json": json_path, "csv": csv_path, "status": "skipped_exists"
            })
            continue

        inst = generate_instance(
            n_items=n,
            weight_range=weight_range,
            value_range=value_range,
            capacity_ratio=capacity_ratio,
            correlation=correlation,
            weight_dist=weight_dist,
            value_dist=value_dist,
            seed=seed
        )
        save_instance_json(inst, json_path)
        save_instance_csv(inst, csv_path)
        records.append({
            "n": n, "seed": seed,
            "json": json_path, "csv": csv_path, "status": "saved"
        })
    return records
