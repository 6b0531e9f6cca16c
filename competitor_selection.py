#!/usr/bin/env python3

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from dashboard_config import DashboardConfig

logger = logging.getLogger(__name__)

# Catalog records are keyed by the same id the review collection uses
ID_FIELD = "business_id"


class SelectionError(ValueError):
    """Raised when a competitor cannot be added to the comparison."""


@dataclass(frozen=True)
class Competitor:
    id: str
    name: str
    category: str = "N/A"
    area: str = "N/A"

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Competitor"]:
        """Build a competitor from a catalog record, or None if it has no business_id."""
        business_id = record.get(ID_FIELD)
        if not business_id:
            logger.warning(f"Skipping catalog record without {ID_FIELD}: {record.get('name', '<unnamed>')}")
            return None

        return cls(
            id=str(business_id),
            name=record.get("name") or str(business_id),
            category=record.get("categories") or "N/A",
            area=record.get("city") or "N/A",
        )


class CompetitorSelection:
    """Paginated competitor catalog plus the user's current selection."""

    def __init__(self, config: DashboardConfig):
        self.config = config
        self.available: List[Competitor] = []
        self.selected: List[Competitor] = []
        self.current_page = 0
        self.total_pages = 1
        self.is_loading = False

    def _load_page(self, client, page: int) -> int:
        self.is_loading = True
        try:
            response = client.fetch_all_businesses(page, self.config.page_size)
        finally:
            self.is_loading = False

        known_ids = {c.id for c in self.available}
        added = 0
        for record in response.get("negocios", []):
            competitor = Competitor.from_record(record)
            if competitor is None or competitor.id in known_ids:
                continue
            self.available.append(competitor)
            known_ids.add(competitor.id)
            added += 1

        self.current_page = response.get("paginaActual", page)
        self.total_pages = response.get("totalPaginas", self.total_pages)
        logger.info(f"Loaded catalog page {self.current_page}/{self.total_pages} ({added} new businesses)")
        return added

    def load_initial(self, client) -> int:
        """Reset the catalog and load its first page."""
        self.available = []
        self.current_page = 0
        self.total_pages = 1
        return self._load_page(client, 1)

    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    def load_more(self, client) -> int:
        """Append the next catalog page; does nothing on the last page or mid-load."""
        if not self.has_more() or self.is_loading:
            return 0
        return self._load_page(client, self.current_page + 1)

    def available_to_select(self) -> List[Competitor]:
        selected_ids = {c.id for c in self.selected}
        return [c for c in self.available
                if c.id not in selected_ids and c.id != self.config.business_id]

    def add(self, competitor_id: str) -> Competitor:
        """Add a catalog business to the comparison."""
        if competitor_id == self.config.business_id:
            raise SelectionError("Your own business cannot be selected as a competitor")
        if any(c.id == competitor_id for c in self.selected):
            raise SelectionError(f"Competitor {competitor_id} is already selected")
        if len(self.selected) >= self.config.max_competitors:
            raise SelectionError(f"At most {self.config.max_competitors} competitors can be compared")

        competitor = next((c for c in self.available if c.id == competitor_id), None)
        if competitor is None:
            raise SelectionError(f"Unknown competitor {competitor_id}")

        self.selected.append(competitor)
        return competitor

    def remove(self, competitor_id: str):
        self.selected = [c for c in self.selected if c.id != competitor_id]

    def comparison_ids(self) -> List[str]:
        """Own business id followed by the selected competitor ids."""
        competitor_ids = [c.id for c in self.selected if c.id != self.config.business_id]
        return [self.config.business_id] + competitor_ids
