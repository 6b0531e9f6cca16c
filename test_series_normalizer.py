"""
Tests for chart payload normalization.
"""

import polars as pl
import pytest

from series_normalizer import ChartPayload, InputShapeError, Series, X_KEY, normalize, rows_to_frame


@pytest.fixture
def two_series_payload():
    return ChartPayload(
        labels=["Jan", "Feb"],
        series=[Series("A", [1, 2]), Series("B", [3, 4])],
    )


class TestNormalize:
    """Row-per-label conversion."""

    def test_two_series(self, two_series_payload):
        assert normalize(two_series_payload) == [
            {"x": "Jan", "A": 1, "B": 3},
            {"x": "Feb", "A": 2, "B": 4},
        ]

    def test_row_count_matches_labels(self, two_series_payload):
        assert len(normalize(two_series_payload)) == len(two_series_payload.labels)

    def test_empty_labels_yield_no_rows(self):
        assert normalize(ChartPayload(labels=[], series=[Series("A", [])])) == []

    def test_no_series_yields_label_only_rows(self):
        rows = normalize(ChartPayload(labels=["Jan", "Feb"], series=[]))
        assert rows == [{X_KEY: "Jan"}, {X_KEY: "Feb"}]

    def test_nulls_are_kept(self):
        payload = ChartPayload(labels=["Jan", "Feb"], series=[Series("A", [None, 4.5])])
        rows = normalize(payload)
        assert "A" in rows[0]
        assert rows[0]["A"] is None
        assert rows[1]["A"] == 4.5

    def test_every_row_has_every_series(self):
        payload = ChartPayload(
            labels=["1", "2", "3"],
            series=[Series("A", [1, None, 3]), Series("B", [None, None, None])],
        )
        for row in normalize(payload):
            assert set(row) == {X_KEY, "A", "B"}

    def test_length_mismatch_raises(self):
        payload = ChartPayload(labels=["Jan"], series=[Series("A", [1, 2])])
        with pytest.raises(InputShapeError):
            normalize(payload)

    def test_short_series_raises(self):
        payload = ChartPayload(labels=["Jan", "Feb"], series=[Series("A", [1])])
        with pytest.raises(InputShapeError):
            normalize(payload)

    def test_repeatable(self, two_series_payload):
        assert normalize(two_series_payload) == normalize(two_series_payload)


class TestChartPayload:
    """Payload construction."""

    def test_from_api(self):
        payload = ChartPayload.from_api({
            "labels": ["Jan", "Feb"],
            "datasets": [{"label": "Joe's Pizza", "data": [4.1, None]}],
        })
        assert payload.labels == ("Jan", "Feb")
        assert payload.series_labels() == ["Joe's Pizza"]
        assert payload.series[0].values == (4.1, None)

    @pytest.mark.parametrize("data", [
        {"labels": ["Jan", "Feb"]},
        {"labels": ["Jan"], "datasets": []},
        {"labels": ["Jan"], "datasets": None},
        {"labels": [], "datasets": []},
    ])
    def test_from_api_without_datasets_is_empty(self, data):
        assert normalize(ChartPayload.from_api(data)) == []

    def test_labels_with_no_series_keep_label_rows(self):
        payload = ChartPayload(labels=["Jan", "Feb"], series=[])
        assert normalize(payload) == [{X_KEY: "Jan"}, {X_KEY: "Feb"}]

    @pytest.mark.parametrize("data", [None, {}])
    def test_from_api_nothing(self, data):
        assert normalize(ChartPayload.from_api(data)) == []

    def test_duplicate_labels_rejected(self):
        with pytest.raises(InputShapeError):
            ChartPayload(labels=["Jan"], series=[Series("A", [1]), Series("A", [2])])

    def test_reserved_label_rejected(self):
        with pytest.raises(InputShapeError):
            ChartPayload(labels=["Jan"], series=[Series(X_KEY, [1])])

    def test_payload_is_immutable(self, two_series_payload):
        with pytest.raises(AttributeError):
            two_series_payload.labels = ("Mar",)
        assert isinstance(two_series_payload.series[0].values, tuple)


class TestRowsToFrame:

    def test_columns_and_values(self, two_series_payload):
        df = rows_to_frame(normalize(two_series_payload))
        assert df.columns == ["x", "A", "B"]
        assert df["x"].to_list() == ["Jan", "Feb"]
        assert df["B"].to_list() == [3.0, 4.0]

    def test_nulls_become_frame_nulls(self):
        payload = ChartPayload(labels=["Jan", "Feb"], series=[Series("A", [None, 2.5])])
        df = rows_to_frame(normalize(payload))
        assert df["A"].null_count() == 1

    def test_empty_rows(self):
        df = rows_to_frame([])
        assert df.columns == ["x"]
        assert len(df) == 0
        assert df.schema["x"] == pl.Utf8
