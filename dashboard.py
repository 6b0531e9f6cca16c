#!/usr/bin/env python3

import logging
from typing import Any, Dict, List, Optional

import polars as pl

from dashboard_config import DashboardConfig
from competitor_selection import SelectionError
from series_normalizer import ChartPayload, normalize, rows_to_frame
from moving_average import smooth_payload
from attribute_formatter import (
    ATTRIBUTE_PREFIX,
    ComplexObject,
    TranslationTables,
    classify,
    display_key_name,
    render_text,
)

logger = logging.getLogger(__name__)

CHART_KEYS = ('ratingOverTime', 'reviewsOverTime', 'ratingDistribution')
CHART_VIEWS = ('rating_over_time', 'reviews_over_time', 'rating_distribution')

# Attribute values averaging above this rating count as a strength
POSITIVE_IMPACT_THRESHOLD = 4.0
MAX_INSIGHTS = 10


class CompetitorDashboard:
    """
    Builds the competitor comparison views from the review-data API.

    The client performs all I/O; everything derived here (chart rows,
    smoothing, attribute classification) is computed from its responses.
    """

    def __init__(self, config: DashboardConfig, client, translations: Optional[TranslationTables] = None):
        self.config = config
        self.client = client
        self.translations = translations or TranslationTables.default()

    def summary(self) -> Dict[str, Any]:
        """Own business rating and review count."""
        summary = self.client.fetch_summary(self.config.business_id)
        summary.update({
            "business_id": self.config.business_id,
            "business_name": self.config.business_name
        })
        return summary

    def _chart_view(self, chart: Optional[Dict[str, Any]], window: Optional[int] = None) -> Dict[str, Any]:
        payload = ChartPayload.from_api(chart)
        if window is not None:
            payload = smooth_payload(payload, window)

        return {
            "series": [
                {"label": label, "color": self.config.color_for(i)}
                for i, label in enumerate(payload.series_labels())
            ],
            "rows": normalize(payload)
        }

    def _business_ids(self, competitor_ids: List[str]) -> List[str]:
        # Order-preserving dedup; upstream returns one dataset per requested id
        competitor_ids = [cid for cid in dict.fromkeys(competitor_ids) if cid != self.config.business_id]
        if not competitor_ids:
            raise SelectionError("Select at least one competitor to compare")
        if len(competitor_ids) > self.config.max_competitors:
            raise SelectionError(f"At most {self.config.max_competitors} competitors can be compared")

        return [self.config.business_id] + competitor_ids

    def _chart_views(self, metrics: Dict[str, Any], window: int) -> Dict[str, Dict[str, Any]]:
        return {
            "rating_over_time": self._chart_view(metrics.get(CHART_KEYS[0]), window),
            "reviews_over_time": self._chart_view(metrics.get(CHART_KEYS[1])),
            "rating_distribution": self._chart_view(metrics.get(CHART_KEYS[2]))
        }

    def compare(self, competitor_ids: List[str], window: Optional[int] = None) -> Dict[str, Any]:
        """
        Build the full comparison view for the selected competitors.

        Args:
            competitor_ids: Selected competitor business ids
            window: Rating trend smoothing window; the configured default when None

        Returns:
            Dict with the three chart views and the attribute insights
        """
        business_ids = self._business_ids(competitor_ids)
        if window is None:
            window = self.config.smoothing_window

        logger.info(f"Comparing {self.config.business_name} with {len(business_ids) - 1} competitors")

        metrics = self.client.fetch_compare_metrics(business_ids)
        impact = self.client.fetch_attribute_impact(list(self.config.analyzed_attributes))

        result = {"business_ids": business_ids, "window": window}
        result.update(self._chart_views(metrics, window))
        result["attribute_insights"] = self.attribute_insights(impact.get("byAttribute") or [])
        return result

    def export_chart(self, competitor_ids: List[str], chart: str, window: Optional[int] = None) -> pl.DataFrame:
        """
        One comparison chart as a table, x-axis column first.

        Args:
            competitor_ids: Selected competitor business ids
            chart: One of CHART_VIEWS
            window: Rating trend smoothing window; the configured default when None

        Returns:
            polars DataFrame with one row per x-axis label
        """
        if chart not in CHART_VIEWS:
            raise ValueError(f"Unknown chart '{chart}'. Valid: {', '.join(CHART_VIEWS)}")

        business_ids = self._business_ids(competitor_ids)
        if window is None:
            window = self.config.smoothing_window

        metrics = self.client.fetch_compare_metrics(business_ids)
        df = rows_to_frame(self._chart_views(metrics, window)[chart]["rows"])
        logger.info(f"Exported {chart}: {len(df)} rows x {len(df.columns)} columns")
        return df

    def attribute_insights(self, correlations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Rank attribute values by the average rating of businesses that have them."""
        insights = []
        for corr in [c for c in correlations if c.get("value") is not None][:MAX_INSIGHTS]:
            key = str(corr.get("key", ""))
            if key.startswith(ATTRIBUTE_PREFIX):
                key = key[len(ATTRIBUTE_PREFIX):]
            avg_stars = float(corr.get("avgStars") or 0.0)
            count = int(corr.get("count") or 0)

            insights.append({
                "attribute": f"{key}: {corr['value']}",
                "impact": "positive" if avg_stars > POSITIVE_IMPACT_THRESHOLD else "negative",
                "avg_rating": avg_stars,
                "businesses": count,
                "description": (f"The value '{corr['value']}' for '{key}' has an average rating "
                                f"of {avg_stars:.2f} stars across {count} reviews.")
            })

        insights.sort(key=lambda insight: insight["avg_rating"], reverse=True)
        return insights

    def attribute_table(self, business_ids: List[str]) -> Dict[str, Any]:
        """
        One row per attribute key with a classified cell for each business.

        Returns:
            Dict with the business columns and the attribute rows
        """
        records = self.client.fetch_business_attributes(business_ids)

        businesses = []
        attribute_maps = []
        for record in records:
            businesses.append({
                "business_id": record.get("business_id"),
                "name": record.get("name") or record.get("business_id")
            })
            attribute_maps.append(record.get("attributes") or {})

        keys = sorted({key for attributes in attribute_maps for key in attributes})

        rows = []
        for key in keys:
            cells = []
            for attributes in attribute_maps:
                category = classify(attributes.get(key), key, self.translations)
                cell = {"kind": category.kind, "text": render_text(category)}
                if isinstance(category, ComplexObject):
                    cell["detail"] = category.payload
                cells.append(cell)
            rows.append({
                "key": key,
                "name": display_key_name(key, self.translations),
                "cells": cells
            })

        return {"businesses": businesses, "rows": rows}
