import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


# variables already set in the environment win over .env
load_dotenv()


@dataclass
class AnnealingConfig:
    """Default run parameters for the annealing CLI.

    Every field can be overridden with a KNAPSACK_* environment variable or a
    `.env` file in the working directory, e.g. KNAPSACK_COOLING_RATE=0.95.
    """

    items_file: str = "item_set_small.json"
    max_weight: float = 5.0
    max_temp: float = 1000.0
    min_temp: float = 0.1
    cooling_rate: float = 0.9
    # None: a fresh random stream every run
    seed: Optional[int] = None
    max_init_attempts: Optional[int] = 100_000


def _env(name: str, cast, default, kind: str = ""):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name}={raw!r} is not a valid {kind or cast.__name__}") from exc


def optional_int(raw: str) -> Optional[int]:
    if raw.lower() in {"none", "unbounded"}:
        return None
    return int(raw)


def get_annealing_config() -> AnnealingConfig:
    defaults = AnnealingConfig()
    return AnnealingConfig(
        items_file=_env("KNAPSACK_ITEMS_FILE", str, defaults.items_file),
        max_weight=_env("KNAPSACK_MAX_WEIGHT", float, defaults.max_weight),
        max_temp=_env("KNAPSACK_MAX_TEMP", float, defaults.max_temp),
        min_temp=_env("KNAPSACK_MIN_TEMP", float, defaults.min_temp),
        cooling_rate=_env("KNAPSACK_COOLING_RATE", float, defaults.cooling_rate),
        seed=_env("KNAPSACK_SEED", int, defaults.seed),
        max_init_attempts=_env("KNAPSACK_MAX_INIT_ATTEMPTS", optional_int, defaults.max_init_attempts, "int"),
    )
