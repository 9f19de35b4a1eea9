import json
import pytest

from rollgate.store import KeyValueStore, open_store


def test_get_set_in_memory():
    store = open_store()
    assert store.path is None
    assert store.get(("shards", "rs0", "n1", "version")) is None
    store.set(("shards", "rs0", "n1", "version"), "4.4.29")
    assert store.get(("shards", "rs0", "n1", "version")) == "4.4.29"
    assert len(store) == 1


def test_list_by_prefix_in_key_order():
    store = KeyValueStore()
    store.set(("shards", "rs1", "b", "version"), "2")
    store.set(("shards", "rs0", "b", "version"), "1")
    store.set(("shards", "rs0", "a", "version"), "0")
    store.set(("other",), "x")

    listed = list(store.list(("shards", "rs0")))

    assert listed == [(("shards", "rs0", "a", "version"), "0"),
                      (("shards", "rs0", "b", "version"), "1")]
    assert len(list(store.list())) == 4


def test_delete():
    store = KeyValueStore()
    store.set("k", 1)
    store.delete("k")
    store.delete("missing")
    assert store.get("k") is None


def test_persists_between_opens(tmp_path):
    path = str(tmp_path / "state" / "store.json")
    with open_store(path) as store:
        store.set(("shards", "cfg", "config-server:27029", "version"),
                  "4.2.25")

    with open(path) as f:
        assert json.load(f) == [{
            'key': ["shards", "cfg", "config-server:27029", "version"],
            'value': "4.2.25"}]

    reopened = open_store(path)
    assert reopened.get(("shards", "cfg", "config-server:27029",
                         "version")) == "4.2.25"


def test_closed_store_refuses_access():
    store = KeyValueStore()
    store.close()
    with pytest.raises(ValueError):
        store.get("k")
    with pytest.raises(ValueError):
        store.set("k", 1)
