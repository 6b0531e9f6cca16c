#!/usr/bin/env python3

import requests
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Dict, List, Any

from dashboard_config import DashboardConfig

logger = logging.getLogger(__name__)

KPI_OPERATIONS = ('count', 'sum', 'avg', 'min', 'max')


class APIError(Exception):
    """Raised when the review-data API is unreachable or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ReviewDataAPIClient:
    """
    Client for the review-data API that backs the competitor dashboard.

    Features:
    - Competitor comparison charts (rating trend, review volume, rating distribution)
    - Attribute impact and per-business attribute comparison
    - Paginated business catalog for competitor selection
    - KPI aggregation and the admin bulk JSON upload
    """

    def __init__(self, config: DashboardConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")
        self.timeout = config.request_timeout
        self.session = session or requests.Session()

        # Headers for API requests
        self.headers = {
            "User-Agent": "Competitor-Dashboard/1.0",
            "Accept": "application/json"
        }

    def _error_message(self, response, default: str) -> str:
        """Pull the API's error text out of a failed response, if it sent one."""
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return default

    def _request(self, method: str, path: str, error_message: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(method, url, headers=self.headers,
                                            timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise APIError(f"{error_message}: {e}") from e

        if not response.ok:
            logger.error(f"{method} {url} returned {response.status_code}")
            raise APIError(self._error_message(response, error_message), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"{error_message}: invalid JSON response", status_code=response.status_code) from e

    def fetch_compare_metrics(self, business_ids: List[str]) -> Dict[str, Any]:
        """
        Get comparison charts for a set of businesses.

        Args:
            business_ids: Own business first, then competitors

        Returns:
            Dict with ratingOverTime, reviewsOverTime and ratingDistribution charts
        """
        logger.info(f"Fetching comparison metrics for {len(business_ids)} businesses")
        return self._request("POST", "/api/v1/competitors/compare",
                             "Could not fetch comparison metrics",
                             json={"businessIds": list(business_ids)})

    def fetch_attribute_impact(self, attributes: List[str]) -> Dict[str, Any]:
        """Get average rating per attribute value, as {byAttribute, diff}."""
        logger.info(f"Fetching attribute impact for {attributes}")
        return self._request("POST", "/api/v1/attributes/impact",
                             "Could not fetch attribute impact",
                             json={"attributes": list(attributes)})

    def fetch_all_businesses(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Get one page of the business catalog."""
        return self._request("GET", "/negocios", "Could not fetch the business list",
                             params={"page": page, "limit": limit})

    def fetch_kpi(self, collection: str, op: str, match: Dict[str, Any],
                  value_field: Optional[str] = None) -> Dict[str, Any]:
        """Run a single aggregate (count, sum, avg, min, max) over a collection."""
        if op not in KPI_OPERATIONS:
            raise ValueError(f"Unsupported KPI operation '{op}', expected one of {KPI_OPERATIONS}")

        body = {"collection": collection, "op": op, "match": match}
        if value_field:
            body["valueField"] = value_field

        return self._request("POST", "/api/v1/metrics/data", f"Could not fetch KPI: {op}", json=body)

    def fetch_business_attributes(self, business_ids: List[str]) -> List[Dict[str, Any]]:
        """Get the raw attribute maps of the given businesses."""
        return self._request("POST", "/api/v1/attributes/attributes-compare",
                             "Could not fetch business attributes",
                             json={"businessIds": list(business_ids)})

    def upload_json_file(self, filename: str, content: bytes, collection: str) -> Dict[str, Any]:
        """Forward a bulk JSON file to the storage service's admin upload."""
        logger.info(f"Uploading {filename} ({len(content):,} bytes) to collection {collection}")
        return self._request("POST", "/api/v1/admin/upload-json", "Could not upload the file",
                             files={"file": (filename, content, "application/json")},
                             data={"type": collection})

    def fetch_summary(self, business_id: str) -> Dict[str, Any]:
        """
        Get a business's average rating and review count.

        Both aggregates are requested concurrently. If either request fails
        the error propagates and no partial summary is returned.
        """
        match = {"business_id": business_id}

        with ThreadPoolExecutor(max_workers=2) as executor:
            rating_future = executor.submit(self.fetch_kpi, "resenas", "avg", match, "stars")
            count_future = executor.submit(self.fetch_kpi, "resenas", "count", match)

            rating_response = rating_future.result()
            count_response = count_future.result()

        try:
            rating = rating_response["value"]
            review_count = count_response["value"]
        except (KeyError, TypeError) as e:
            raise APIError(f"Malformed KPI response: missing {e}") from e

        return {
            "rating": round(float(rating), 1) if rating is not None else None,
            "review_count": int(review_count or 0)
        }


def main():
    """Test the API client against a running review-data API."""
    logging.basicConfig(level=logging.INFO)

    config = DashboardConfig.from_env()
    client = ReviewDataAPIClient(config)

    print("Business Summary:")
    print(json.dumps(client.fetch_summary(config.business_id), indent=2))

    page = client.fetch_all_businesses(1, config.page_size)
    print(f"\nCatalog: {page.get('totalNegocios', 0):,} businesses in {page.get('totalPaginas', 0)} pages")


if __name__ == "__main__":
    main()
