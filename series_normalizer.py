#!/usr/bin/env python3

import polars as pl
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)

# Reserved key holding the x-axis label in every normalized row
X_KEY = "x"


class InputShapeError(ValueError):
    """Raised when a chart payload's series do not line up with its labels."""


@dataclass(frozen=True)
class Series:
    """One named numeric sequence aligned to a chart's category axis."""
    label: str
    values: tuple = field(default_factory=tuple)

    def __post_init__(self):
        # Freeze the values so a payload stays immutable after construction
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class ChartPayload:
    """
    Labeled multi-series chart data as returned by the review-data API.

    The API calls the series "datasets"; use `from_api` to build a payload
    from that shape.
    """
    labels: tuple = field(default_factory=tuple)
    series: tuple = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "series", tuple(self.series))

        seen = set()
        for s in self.series:
            if s.label in seen:
                raise InputShapeError(f"Duplicate series label '{s.label}'")
            if s.label == X_KEY:
                raise InputShapeError(f"Series label '{X_KEY}' is reserved for the x-axis")
            seen.add(s.label)

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> "ChartPayload":
        """
        Build a payload from `{labels: [...], datasets: [{label, data}, ...]}`.

        Args:
            data: Decoded JSON chart object; may be None or partially empty

        Returns:
            ChartPayload (empty when the API returned nothing usable)
        """
        if not data or not data.get("datasets"):
            return cls()

        labels = data.get("labels") or []
        datasets = data["datasets"]

        series = [
            Series(label=str(dataset.get("label", "")), values=dataset.get("data") or [])
            for dataset in datasets
        ]
        return cls(labels=labels, series=series)

    def series_labels(self) -> List[str]:
        return [s.label for s in self.series]


def check_shape(payload: ChartPayload):
    """Fail fast when any series length differs from the label count."""
    expected = len(payload.labels)
    for s in payload.series:
        if len(s.values) != expected:
            raise InputShapeError(
                f"Series '{s.label}' has {len(s.values)} values for {expected} labels"
            )


def normalize(payload: ChartPayload) -> List[Dict[str, Any]]:
    """
    Convert a multi-series payload into one row per x-axis label.

    Each row maps the reserved key "x" to the label and every series label
    to that series' value at the same position (None stays None).

    Args:
        payload: Chart payload whose series all match the label count

    Returns:
        List of row dicts in label order

    Raises:
        InputShapeError: If a series length does not match the labels
    """
    check_shape(payload)

    rows = []
    for i, label in enumerate(payload.labels):
        row = {X_KEY: label}
        for s in payload.series:
            row[s.label] = s.values[i]
        rows.append(row)

    logger.debug(f"Normalized {len(payload.series)} series over {len(rows)} labels")
    return rows


def rows_to_frame(rows: List[Dict[str, Any]]) -> pl.DataFrame:
    """Tabular view of normalized rows with the x-axis column first."""
    if not rows:
        return pl.DataFrame({X_KEY: []}, schema={X_KEY: pl.Utf8})

    columns = [X_KEY] + [key for key in rows[0] if key != X_KEY]

    # Value columns are floats so int and float series share one dtype
    data = {X_KEY: [row[X_KEY] for row in rows]}
    for column in columns[1:]:
        data[column] = [None if row.get(column) is None else float(row[column]) for row in rows]

    schema = {X_KEY: pl.Utf8}
    schema.update({column: pl.Float64 for column in columns[1:]})

    return pl.DataFrame(data, schema=schema)
