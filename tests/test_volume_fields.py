import numpy as np
import pytest

from pivol.volume.exceptions import TypeMismatch
from pivol.volume.fields import append_fields, index_fields, resolve_index
from pivol.volume.meta import UNSET, MetaTable


def test_resolve_index_variants():
    assert resolve_index(None, 3).tolist() == [0, 1, 2]
    assert resolve_index(":", 3).tolist() == [0, 1, 2]
    assert resolve_index("all", 3).tolist() == [0, 1, 2]
    assert resolve_index(slice(1, None), 3).tolist() == [1, 2]
    assert resolve_index(2, 3).tolist() == [2]
    assert resolve_index([True, False, True], 3).tolist() == [0, 2]
    assert resolve_index([2, 0, 0], 3).tolist() == [2, 0, 0]
    assert resolve_index([], 3).tolist() == []


def test_resolve_index_errors():
    with pytest.raises(IndexError, match="shape"):
        resolve_index([True, False], 3)
    with pytest.raises(IndexError, match="out of bounds"):
        resolve_index([3], 3)
    with pytest.raises(IndexError, match="Unknown index"):
        resolve_index("some", 3)
    with pytest.raises(IndexError):
        resolve_index([0.5], 3)


def test_index_fields_slices_set_fields_only():
    table = MetaTable(chunks=[1, 1, 2, 2], labels=["A", "B", "A", "B"])
    out = index_fields(table, [True, False, True, False])
    assert out["chunks"].tolist() == [1, 2]
    assert out["labels"].tolist() == ["A", "A"]
    assert out["names"] is UNSET
    assert out["order"] is UNSET


def test_index_fields_length_preservation():
    table = MetaTable(chunks=[1, 2, 3, 4], xyz=np.arange(12).reshape(4, 3))
    idx = [3, 1, 1]
    out = index_fields(table, idx)
    for name in ("chunks", "xyz"):
        assert len(out[name]) == len(idx)
    assert out["xyz"].shape == (3, 3)
    assert out["xyz"].dtype == table["xyz"].dtype
    assert out["labels"] is UNSET


def test_index_fields_leaves_input_untouched():
    table = MetaTable(chunks=[1, 2, 3])
    out = index_fields(table, ":")
    out["chunks"][0] = 100
    assert table["chunks"].tolist() == [1, 2, 3]
    assert out is not table


def test_index_fields_explicit_length_for_identity():
    table = MetaTable()
    out = index_fields(table, ":", length=5)
    assert all(v is UNSET for v in out.values())


def test_append_fields_concatenates_shared():
    base = MetaTable(chunks=[1, 1], labels=["A", "B"])
    incoming = MetaTable(chunks=[2], labels=["C"])
    out = append_fields(base, incoming, axis=0)
    assert isinstance(out, MetaTable)
    assert out["chunks"].tolist() == [1, 1, 2]
    assert out["labels"].tolist() == ["A", "B", "C"]
    assert out["names"] is UNSET
    # inputs untouched
    assert base["chunks"].tolist() == [1, 1]


def test_append_fields_adopts_new_fields_under_own_name():
    base = MetaTable(chunks=[1])
    incoming = MetaTable(chunks=[2], run=[7], session=["s1"])
    out = append_fields(base, incoming)
    assert out["run"].tolist() == [7]
    assert out["session"].tolist() == ["s1"]
    # the last shared field is not overwritten by new fields
    assert out["chunks"].tolist() == [1, 2]


def test_append_fields_keeps_base_only_fields():
    out = append_fields({"a": np.array([1]), "b": np.array([0])}, {"a": np.array([2])})
    assert out["a"].tolist() == [1, 2]
    assert out["b"].tolist() == [0]


def test_append_fields_unset_side():
    out = append_fields(MetaTable(labels=["A"]), MetaTable())
    assert out["labels"].tolist() == ["A"]
    assert out["chunks"] is UNSET


def test_append_fields_recurses_into_nested_tables():
    base = {"onsets": {"t": np.array([0.0, 1.0])}, "n": np.array([2])}
    incoming = {"onsets": {"t": np.array([5.0]), "dur": np.array([1.0])}, "n": np.array([1])}
    out = append_fields(base, incoming)
    assert isinstance(out, dict)
    assert out["onsets"]["t"].tolist() == [0.0, 1.0, 5.0]
    assert out["onsets"]["dur"].tolist() == [1.0]
    assert out["n"].tolist() == [2, 1]
    assert "dur" not in base["onsets"]


def test_append_fields_axis():
    out = append_fields({"m": np.ones((2, 2))}, {"m": np.zeros((2, 1))}, axis=1)
    assert out["m"].shape == (2, 3)


def test_append_fields_table_vs_array():
    with pytest.raises(TypeMismatch):
        append_fields({"a": {"x": np.array([1])}}, {"a": np.array([1])})
