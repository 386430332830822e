import numpy as np
import pytest

from pivol.volume.exceptions import FieldNotFound, TypeMismatch
from pivol.volume.meta import MetaTable
from pivol.volume.query import array_domain, find_by_meta, find_by_value


def test_find_by_value_or_semantics():
    mask = find_by_value(np.array([1, 2, 3, 2]), [2, 3])
    assert mask.tolist() == [False, True, True, True]


def test_find_by_value_scalar_queries():
    assert find_by_value([1.5, 2.0], 2).tolist() == [False, True]
    assert find_by_value(["A", "B", "A"], "A").tolist() == [True, False, True]
    assert find_by_value(np.array(["A", "B"], dtype=object), ["B"]).tolist() == [False, True]


def test_find_by_value_exact_string_equality():
    # no wildcard or case folding
    assert not find_by_value(["Alpha", "alpha"], "ALPHA").any()
    assert find_by_value(["Alpha", "alpha"], "alpha").tolist() == [False, True]


def test_find_by_value_empty_query_matches_nothing():
    assert find_by_value([1, 2], []).tolist() == [False, False]


def test_find_by_value_domain_mismatch():
    with pytest.raises(TypeMismatch, match="categorical"):
        find_by_value(["A", "B"], 1)
    with pytest.raises(TypeMismatch, match="numeric"):
        find_by_value([1, 2], "A")


def test_find_by_value_mixed_query_rejected():
    with pytest.raises(TypeMismatch, match="unrecognised input class"):
        find_by_value([1, 2], [1, "A"])
    with pytest.raises(TypeMismatch):
        find_by_value([1, 2], {"a": 1})


def test_find_by_value_requires_1d():
    with pytest.raises(TypeMismatch, match="one-dimensional"):
        find_by_value(np.zeros((2, 3)), 0)


def test_array_domain():
    assert array_domain(np.array([True, False])) == "numeric"
    assert array_domain(np.array(["a"])) == "categorical"
    assert array_domain(np.array([1, 2.5], dtype=object)) == "numeric"
    with pytest.raises(TypeMismatch):
        array_domain(np.array(["a", 1], dtype=object))


@pytest.fixture
def tables():
    samples = MetaTable(chunks=[1, 1, 2, 2], labels=["A", "B", "A", "B"])
    features = MetaTable(names=["v1", "v2", "v3"], labels=["A", "C", "A"])
    return samples, features


def test_find_by_meta_and_across_fields(tables):
    samples, features = tables
    sampind, featind = find_by_meta(samples, features, 4, 3, chunks=[1, 2], labels="A")
    assert sampind.tolist() == [True, False, True, False]
    # labels lives on both axes
    assert featind.tolist() == [True, False, True]


def test_find_by_meta_unconstrained_axis_all_true(tables):
    samples, features = tables
    sampind, featind = find_by_meta(samples, features, 4, 3, names="v2")
    assert sampind.all()
    assert featind.tolist() == [False, True, False]


def test_find_by_meta_no_criteria(tables):
    samples, features = tables
    sampind, featind = find_by_meta(samples, features, 4, 3)
    assert sampind.all() and featind.all()


def test_find_by_meta_unknown_field(tables):
    samples, features = tables
    with pytest.raises(FieldNotFound, match="meta data does not exist: chunkz"):
        find_by_meta(samples, features, 4, 3, chunkz=1)


def test_find_by_meta_unset_field_not_found(tables):
    samples, features = tables
    # 'order' is declared but unset on both tables
    with pytest.raises(FieldNotFound):
        find_by_meta(samples, features, 4, 3, order=1)


def test_field_not_found_is_key_error(tables):
    samples, features = tables
    with pytest.raises(KeyError):
        find_by_meta(samples, features, 4, 3, missing="x")
