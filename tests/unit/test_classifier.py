"""
Unit tests -- result-shape classification.
"""
from nrql_frames.frames.classifier import ResultShape, classify
from nrql_frames.frames.models import ResultSet


def test_empty():
    assert classify(ResultSet()) == ResultShape.EMPTY


def test_simple_scalar():
    assert classify(ResultSet(rows=[{"count": 5}])) == ResultShape.SIMPLE_SCALAR


def test_simple_scalar_with_null_facet():
    assert classify(ResultSet(rows=[{"count": 5, "facet": None}])) == ResultShape.SIMPLE_SCALAR


def test_faceted_scalar():
    rs = ResultSet(rows=[{"count": 5, "facet": ["x"]}], facet_names=["region"])
    assert classify(rs) == ResultShape.FACETED_SCALAR


def test_faceted_scalar_bare_facet():
    rs = ResultSet(rows=[{"count": 5, "facet": "x"}], facet_names=["region"])
    assert classify(rs) == ResultShape.FACETED_SCALAR


def test_generic_detail_row():
    assert classify(ResultSet(rows=[{"timestamp": 1000, "duration": 12.3}])) == ResultShape.GENERIC


def test_null_count_is_generic():
    assert classify(ResultSet(rows=[{"count": None, "facet": ["x"]}])) == ResultShape.GENERIC


def test_only_first_row_decides():
    rs = ResultSet(rows=[{"timestamp": 1000, "duration": 1.0}, {"count": 3}])
    assert classify(rs) == ResultShape.GENERIC


def test_multiple_count_rows_still_scalar():
    rs = ResultSet(rows=[{"count": 1}, {"count": 2}])
    assert classify(rs) == ResultShape.SIMPLE_SCALAR


def test_from_payload_engine_shape():
    rs = ResultSet.from_payload({
        "results": [{"count": 42, "facet": ["svc1"]}],
        "metadata": {"facets": ["service"]},
    })
    assert rs.facet_names == ("service",)
    assert classify(rs) == ResultShape.FACETED_SCALAR


def test_from_payload_flat_shape():
    rs = ResultSet.from_payload({"rows": [{"count": 1}], "facetNames": []})
    assert len(rs.rows) == 1
    assert rs.facet_names == ()
