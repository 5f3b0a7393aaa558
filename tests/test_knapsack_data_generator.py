import dataclasses
import json

import pytest

from knapsack_data_generator import (
    CatalogFormatError,
    Item,
    generate_batch,
    generate_instance,
    instance_items,
    load_instance_json,
    load_items_json,
    save_instance_json,
    save_items_json,
)


def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf8")
    return str(path)


def test_item_is_immutable():
    item = Item("A", 2.0, 3)
    with pytest.raises(dataclasses.FrozenInstanceError):
        item.weight = 5.0


@pytest.mark.parametrize("kwargs", [
    {"name": "", "weight": 1.0, "value": 1},
    {"name": "A", "weight": -1.0, "value": 1},
    {"name": "A", "weight": 1.0, "value": -1},
])
def test_item_validation(kwargs):
    with pytest.raises(CatalogFormatError):
        Item(**kwargs)


def test_load_items_from_bare_array(tmp_path):
    path = _write(tmp_path / "items.json", [
        {"name": "A", "weight": 2, "value": 3},
        {"name": "B", "weight": 3.5, "value": 4.0},
    ])
    items = load_items_json(path)
    assert items == [Item("A", 2.0, 3), Item("B", 3.5, 4)]
    assert isinstance(items[1].value, int)


def test_load_instance_with_capacity_and_ids(tmp_path):
    path = _write(tmp_path / "inst.json", {
        "capacity": 10,
        "items": [{"id": 0, "weight": 4, "value": 1}, {"id": 1, "weight": 6, "value": 2}],
    })
    items, capacity = load_instance_json(path)
    assert capacity == 10.0
    assert [it.name for it in items] == ["0", "1"]


def test_bare_array_has_no_capacity(tmp_path):
    path = _write(tmp_path / "items.json", [{"name": "A", "weight": 1, "value": 1}])
    assert load_instance_json(path)[1] is None


@pytest.mark.parametrize("payload", [
    {"not_items": []},
    [{"name": "A", "value": 1}],
    [{"weight": 1, "value": 1}],
    [{"name": "A", "weight": 1, "value": 3.5}],
    [{"name": "A", "weight": "heavy", "value": 1}],
    [{"name": "A", "weight": -2, "value": 1}],
    ["A"],
])
def test_malformed_catalogs_are_rejected(tmp_path, payload):
    path = _write(tmp_path / "bad.json", payload)
    with pytest.raises(CatalogFormatError):
        load_items_json(path)


def test_unreadable_catalog(tmp_path):
    bad = tmp_path / "broken.json"
    bad.write_text("{not json", encoding="utf8")
    with pytest.raises(CatalogFormatError):
        load_items_json(str(bad))
    with pytest.raises(CatalogFormatError):
        load_items_json(str(tmp_path / "missing.json"))


def test_saved_items_load_back(tmp_path):
    items = [Item("A", 2.5, 3), Item("B", 1.0, 0)]
    path = str(tmp_path / "sub" / "items.json")
    save_items_json(items, path)
    assert load_items_json(path) == items


def test_generate_instance_is_reproducible():
    a = generate_instance(20, seed=123)
    b = generate_instance(20, seed=123)
    assert a == b
    assert a["meta"]["seed"] == 123
    assert len(a["items"]) == 20
    assert a["capacity"] >= 1
    assert a["items"][3]["name"] == "item_3"


def test_generate_instance_respects_ranges():
    inst = generate_instance(50, weight_range=(5, 10), value_range=(1, 3),
                             weight_dist="normal", correlation="positive", seed=4)
    assert all(5 <= it["weight"] <= 10 for it in inst["items"])
    assert all(1 <= it["value"] <= 3 for it in inst["items"])


def test_generate_instance_unknown_options():
    with pytest.raises(ValueError):
        generate_instance(5, weight_dist="triangular", seed=0)
    with pytest.raises(ValueError):
        generate_instance(5, correlation="sideways", seed=0)


def test_generated_instance_loads_as_catalog(tmp_path):
    inst = generate_instance(6, weight_dist="zipf", seed=8)
    path = str(tmp_path / "inst.json")
    save_instance_json(inst, path)
    items, capacity = load_instance_json(path)
    assert capacity == inst["capacity"]
    assert items == instance_items(inst)


def test_generate_batch_skips_existing(tmp_path):
    out = str(tmp_path / "batch")
    first = generate_batch([5, 8], output_dir=out, base_seed=10)
    assert [r["status"] for r in first] == ["saved", "saved"]
    assert first[1]["seed"] == 11
    second = generate_batch([5, 8], output_dir=out, base_seed=10)
    assert [r["status"] for r in second] == ["skipped_exists", "skipped_exists"]
    with open(first[0]["csv"], encoding="utf8") as f:
        assert f.readline().strip() == "id,name,weight,value"
