import pytest

from config import AnnealingConfig, get_annealing_config, optional_int


ENV_VARS = [
    "KNAPSACK_ITEMS_FILE",
    "KNAPSACK_MAX_WEIGHT",
    "KNAPSACK_MAX_TEMP",
    "KNAPSACK_MIN_TEMP",
    "KNAPSACK_COOLING_RATE",
    "KNAPSACK_SEED",
    "KNAPSACK_MAX_INIT_ATTEMPTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert get_annealing_config() == AnnealingConfig(
        items_file="item_set_small.json",
        max_weight=5.0,
        max_temp=1000.0,
        min_temp=0.1,
        cooling_rate=0.9,
        seed=None,
        max_init_attempts=100_000,
    )


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("KNAPSACK_MAX_WEIGHT", "12.5")
    monkeypatch.setenv("KNAPSACK_COOLING_RATE", "0.95")
    monkeypatch.setenv("KNAPSACK_SEED", "7")
    monkeypatch.setenv("KNAPSACK_MAX_INIT_ATTEMPTS", "none")
    monkeypatch.setenv("KNAPSACK_ITEMS_FILE", "other.json")
    cfg = get_annealing_config()
    assert cfg.max_weight == 12.5
    assert cfg.cooling_rate == 0.95
    assert cfg.seed == 7
    assert cfg.max_init_attempts is None
    assert cfg.items_file == "other.json"


def test_blank_value_keeps_default(monkeypatch):
    monkeypatch.setenv("KNAPSACK_MAX_TEMP", "  ")
    assert get_annealing_config().max_temp == 1000.0


def test_invalid_value_names_the_variable(monkeypatch):
    monkeypatch.setenv("KNAPSACK_SEED", "abc")
    with pytest.raises(ValueError, match="KNAPSACK_SEED"):
        get_annealing_config()


def test_optional_int_parses_unbounded():
    assert optional_int("none") is None
    assert optional_int("Unbounded") is None
    assert optional_int("25") == 25
    with pytest.raises(ValueError):
        optional_int("lots")
