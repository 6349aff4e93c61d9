"""
Unit tests -- frame building for every result shape.
"""
from datetime import datetime, timezone

import pytest
from nrql_frames.frames.builder import build, build_frames, facet_values, field_names
from nrql_frames.frames.classifier import ResultShape
from nrql_frames.frames.models import ResultSet, SemanticType, VisualizationHint
from nrql_frames.query.time_window import TimeWindow


@pytest.fixture
def window():
    return TimeWindow(from_=datetime(2024, 1, 1, tzinfo=timezone.utc),
                      to=datetime(2024, 1, 1, 1, tzinfo=timezone.utc))


# ── Empty ───────────────────────────────────────────────

def test_empty(window):
    assert build_frames(ResultSet(), window) == []


# ── Simple scalar ───────────────────────────────────────

def test_simple_scalar_frames(window):
    frames = build(ResultSet(rows=[{"count": 5}]), ResultShape.SIMPLE_SCALAR, window)
    assert len(frames) == 2
    table, graph = frames

    assert table.visualization_hint is VisualizationHint.TABLE
    assert table.column_names == ["count"]
    assert table.column("count").semantic_type is SemanticType.NUMERIC
    assert table.column("count").values == (5.0,)

    assert graph.visualization_hint is VisualizationHint.GRAPH
    assert graph.column("time").values == (window.from_, window.to)
    assert graph.column("count").values == (5.0, 5.0)


def test_simple_scalar_non_numeric_count(window):
    frames = build_frames(ResultSet(rows=[{"count": "lots"}]), window)
    assert frames[0].column("count").values == (0.0,)


# ── Faceted scalar ──────────────────────────────────────

def test_faceted_scalar_frames(window):
    rs = ResultSet(
        rows=[{"count": 42, "facet": ["svc1"]}, {"count": 24, "facet": ["svc2"]}],
        facet_names=["service"],
    )
    table, graph = build_frames(rs, window)

    assert table.visualization_hint is VisualizationHint.TABLE
    assert table.column_names == ["service", "count"]
    assert table.column("service").semantic_type is SemanticType.TEXT
    assert table.column("service").values == ("svc1", "svc2")
    assert table.column("count").values == (42.0, 24.0)

    assert graph.visualization_hint is VisualizationHint.GRAPH
    assert graph.column_names == ["time", "service", "count"]
    assert graph.column("time").values == (window.from_, window.from_)


def test_multi_facet_unpacked_positionally(window):
    rs = ResultSet(
        rows=[{"count": 1, "facet": ["web", "us-east", "extra"]}, {"count": 2, "facet": ["api"]}],
        facet_names=["appName", "region"],
    )
    table, _ = build_frames(rs, window)
    assert table.column("appName").values == ("web", "api")
    assert table.column("region").values == ("us-east", "")


def test_bare_scalar_facet_fallback(window):
    rs = ResultSet(rows=[{"count": 3, "facet": 200}], facet_names=["httpResponseCode"])
    table, _ = build_frames(rs, window)
    assert table.column("httpResponseCode").values == ("200",)


def test_facet_values_without_names():
    assert facet_values({"facet": ["x"]}, []) == []


def test_faceted_without_facet_names_uses_facet_column(window):
    rs = ResultSet(rows=[{"count": 3, "facet": "web"}])
    table, _ = build_frames(rs, window)
    assert table.column_names == ["facet", "count"]
    assert table.column("facet").values == ("web",)


# ── Generic ─────────────────────────────────────────────

def test_generic_frame(window):
    rs = ResultSet(rows=[
        {"timestamp": 1704067200000, "duration": 12.3, "name": "a"},
        {"timestamp": 1704067260000, "duration": 1, "error": True},
    ])
    frames = build_frames(rs, window)
    assert len(frames) == 1
    frame = frames[0]
    assert frame.column_names == ["time", "duration", "name", "error"]
    assert frame.column("time").values == (
        datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc),
    )
    assert frame.column("duration").values == (12.3, 1.0)
    assert frame.column("name").values == ("a", "")
    # absent in first row → TEXT
    assert frame.column("error").semantic_type is SemanticType.TEXT
    assert frame.column("error").values == ("", "true")


def test_generic_numeric_coercion_fallback(window):
    rs = ResultSet(rows=[{"value": 42.0}, {"value": "n/a"}])
    frame = build_frames(rs, window)[0]
    col = frame.column("value")
    assert col.semantic_type is SemanticType.NUMERIC
    assert col.values[1] == 0


def test_generic_missing_timestamp_falls_back_to_window_from(window):
    rs = ResultSet(rows=[{"timestamp": 1704067200000, "v": 1}, {"v": 2}, {"timestamp": "bad", "v": 3}])
    times = build_frames(rs, window)[0].column("time").values
    assert times[1] == window.from_
    assert times[2] == window.from_


def test_generic_preserves_row_order(window):
    rs = ResultSet(rows=[{"timestamp": 3000, "v": 3}, {"timestamp": 1000, "v": 1}, {"timestamp": 2000, "v": 1}])
    frame = build_frames(rs, window)[0]
    assert frame.column("v").values == (3.0, 1.0, 1.0)


def test_generic_hint_follows_timestamp(window):
    timed = build_frames(ResultSet(rows=[{"timestamp": 1000, "v": 1}]), window)[0]
    untimed = build_frames(ResultSet(rows=[{"appName": "web", "host": "h1"}]), window)[0]
    assert timed.visualization_hint is VisualizationHint.GRAPH
    assert untimed.visualization_hint is VisualizationHint.TABLE


def test_field_names_union_first_seen():
    rs = ResultSet(rows=[{"b": 1, "timestamp": 1}, {"a": 2, "b": 3}, {"c": 4}])
    assert field_names(rs) == ["b", "a", "c"]


def test_columns_align_with_rows(window):
    rs = ResultSet(rows=[{"a": 1}, {"b": "x"}, {}])
    frame = build_frames(rs, window)[0]
    assert all(len(c) == 3 for c in frame.columns)


# ── Wire shape ──────────────────────────────────────────

def test_to_dict_wire_shape(window):
    table, graph = build_frames(ResultSet(rows=[{"count": 5}]), window)
    d = graph.to_dict()
    assert d["name"] == "count_time_series"
    assert d["visualizationHint"] == "graph"
    assert d["columns"][0] == {"name": "time", "type": "time", "values": [window.from_ms, window.to_ms]}
    assert d["columns"][1] == {"name": "count", "type": "number", "values": [5.0, 5.0]}


def test_to_pandas(window):
    rs = ResultSet(rows=[{"count": 42, "facet": ["svc1"]}, {"count": 24, "facet": ["svc2"]}],
                   facet_names=["service"])
    table, _ = build_frames(rs, window)
    df = table.to_pandas()
    assert list(df.columns) == ["service", "count"]
    assert df["count"].tolist() == [42.0, 24.0]


def test_simple_scalar_huge_count_does_not_raise(window):
    table, _ = build_frames(ResultSet(rows=[{"count": 10**400}]), window)
    assert table.column("count").values == (0.0,)


# ── Generic: TIMESERIES, percentiles, facets ────────────

def test_timeseries_buckets_use_begin_time_seconds(window):
    rs = ResultSet(rows=[
        {"beginTimeSeconds": 1704067200, "endTimeSeconds": 1704067500, "average.duration": 0.5},
        {"beginTimeSeconds": 1704067500, "endTimeSeconds": 1704067800, "average.duration": 0.7},
    ])
    frame = build_frames(rs, window)[0]
    assert frame.visualization_hint is VisualizationHint.GRAPH
    assert frame.column_names == ["time", "average.duration"]
    assert frame.column("time").values == (
        datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc),
    )


def test_timestamp_wins_over_begin_time_seconds(window):
    rs = ResultSet(rows=[{"timestamp": 1704067260000, "beginTimeSeconds": 1704067200, "v": 1}])
    frame = build_frames(rs, window)[0]
    assert frame.column("time").values == (datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc),)


def test_numeric_string_timestamp_parsed(window):
    rs = ResultSet(rows=[{"timestamp": "1704067260000", "v": 1}, {"timestamp": " 1.70406732e12 ", "v": 2}])
    frame = build_frames(rs, window)[0]
    assert frame.column("time").values == (
        datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 0, 2, tzinfo=timezone.utc),
    )
    assert frame.visualization_hint is VisualizationHint.GRAPH


def test_out_of_range_timestamp_falls_back(window):
    rs = ResultSet(rows=[{"timestamp": 10**400, "v": 1}, {"timestamp": "nan", "v": 2}])
    times = build_frames(rs, window)[0].column("time").values
    assert times == (window.from_, window.from_)


def test_percentile_objects_flattened(window):
    rs = ResultSet(rows=[
        {"timestamp": 1704067200000, "percentile.duration": {"95": 1.2, "99": 3.4}},
        {"timestamp": 1704067260000, "percentile.duration": {"95": 1.1}},
    ])
    frame = build_frames(rs, window)[0]
    assert frame.column_names == ["time", "percentile.duration.95", "percentile.duration.99"]
    assert frame.column("percentile.duration.95").semantic_type is SemanticType.NUMERIC
    assert frame.column("percentile.duration.95").values == (1.2, 1.1)
    assert frame.column("percentile.duration.99").values == (3.4, 0.0)


def test_non_percentile_object_stays_text(window):
    rs = ResultSet(rows=[{"histogram.duration": {"a": 1}}])
    col = build_frames(rs, window)[0].column("histogram.duration")
    assert col.semantic_type is SemanticType.TEXT
    assert col.values == ('{"a":1}',)


def test_faceted_aggregation_without_count(window):
    rs = ResultSet(
        rows=[
            {"beginTimeSeconds": 1704067200, "facet": ["/api", "GET"], "sum.duration": 4.0},
            {"beginTimeSeconds": 1704067200, "facet": ["/home", "POST"], "sum.duration": 2.5},
        ],
        facet_names=["request.uri", "request.method"],
    )
    frames = build_frames(rs, window)
    assert len(frames) == 1
    frame = frames[0]
    assert frame.column_names == ["time", "request.uri", "request.method", "sum.duration"]
    assert frame.column("request.uri").values == ("/api", "/home")
    assert frame.column("request.method").values == ("GET", "POST")
    assert frame.column("sum.duration").values == (4.0, 2.5)


def test_field_names_skip_timeseries_keys():
    rs = ResultSet(rows=[{"beginTimeSeconds": 1, "endTimeSeconds": 2, "count": 3}])
    assert field_names(rs) == ["count"]
