#!/usr/bin/env python3

import logging
from dataclasses import asdict
from typing import Optional, List

from fastapi import FastAPI, HTTPException, Query, File, Form, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, Field

from dashboard_config import DashboardConfig, MIN_SMOOTHING_WINDOW, MAX_SMOOTHING_WINDOW
from api_client import ReviewDataAPIClient, APIError
from dashboard import CompetitorDashboard
from competitor_selection import Competitor, SelectionError
from series_normalizer import ChartPayload, InputShapeError, normalize
from moving_average import smooth
from upload_validation import (
    UploadValidator,
    UploadFormatError,
    error_message,
    success_message,
    upload_payload_summary,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CompareRequest(BaseModel):
    competitor_ids: List[str]
    window: Optional[int] = Field(None, ge=MIN_SMOOTHING_WINDOW, le=MAX_SMOOTHING_WINDOW)


class AttributeTableRequest(BaseModel):
    business_ids: List[str]


class DatasetModel(BaseModel):
    label: str
    data: List[Optional[float]] = []


class ChartRequest(BaseModel):
    labels: List[str] = []
    datasets: List[DatasetModel] = []


class SmoothRequest(BaseModel):
    values: List[Optional[float]]
    window: int


def _http_error(e: Exception, context: str) -> HTTPException:
    """Map a failure to the HTTP status the dashboard frontend expects."""
    if isinstance(e, APIError):
        logger.error(f"Upstream API error in {context}: {e}")
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, (InputShapeError, SelectionError, ValueError)):
        return HTTPException(status_code=400, detail=str(e))

    logger.error(f"Error in {context}: {e}")
    return HTTPException(status_code=500, detail=str(e))


def create_app(config: Optional[DashboardConfig] = None,
               client: Optional[ReviewDataAPIClient] = None) -> FastAPI:
    """
    Build the dashboard API for one configured business.

    Args:
        config: Dashboard settings; read from the environment when omitted
        client: Review-data API client; built from the config when omitted

    Returns:
        FastAPI application
    """
    config = config or DashboardConfig.from_env()
    client = client or ReviewDataAPIClient(config)
    dashboard = CompetitorDashboard(config, client)
    validator = UploadValidator()

    app = FastAPI(title="Competitor Analytics Dashboard API", version="1.0.0")
    app.state.config = config
    app.state.dashboard = dashboard

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "Competitor Analytics Dashboard API",
            "business": config.business_name,
            "version": "1.0.0",
            "endpoints": {
                "/summary": "Rating and review count of your business",
                "/competitors": "Paginated business catalog for competitor selection",
                "/compare": "Comparison charts and attribute insights",
                "/compare/export": "One comparison chart as CSV",
                "/attributes/table": "Attribute comparison table",
                "/series/normalize": "Convert chart datasets into rows",
                "/series/smooth": "Trailing moving average of a series",
                "/admin/upload-json": "Bulk JSON upload",
                "/dashboard": "Interactive dashboard"
            }
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/summary")
    def get_summary():
        """Get the configured business's rating and review count."""
        try:
            return JSONResponse(content=dashboard.summary())
        except Exception as e:
            raise _http_error(e, "get_summary")

    @app.get("/competitors")
    def get_competitors(
        page: int = Query(1, ge=1, description="Catalog page"),
        limit: int = Query(config.page_size, ge=1, le=100, description="Businesses per page")
    ):
        """Get one page of selectable competitors."""
        try:
            response = client.fetch_all_businesses(page, limit)
            competitors = [Competitor.from_record(record) for record in response.get("negocios", [])]
            return JSONResponse(content={
                "competitors": [asdict(c) for c in competitors
                                if c is not None and c.id != config.business_id],
                "page": response.get("paginaActual", page),
                "total_pages": response.get("totalPaginas", 1),
                "total": response.get("totalNegocios", 0)
            })
        except Exception as e:
            raise _http_error(e, "get_competitors")

    @app.post("/compare")
    def compare(request: CompareRequest):
        """Get comparison charts and attribute insights for the selected competitors."""
        try:
            return JSONResponse(content=dashboard.compare(request.competitor_ids, request.window))
        except InputShapeError as e:
            # Chart shapes come from the upstream API, not from the caller
            logger.error(f"Malformed chart from upstream API: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            raise _http_error(e, "compare")

    @app.post("/compare/export")
    def export_compare(
        request: CompareRequest,
        chart: str = Query("rating_over_time", description="Chart view to export")
    ):
        """Download one comparison chart as CSV."""
        try:
            df = dashboard.export_chart(request.competitor_ids, chart, request.window)
        except InputShapeError as e:
            logger.error(f"Malformed chart from upstream API: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            raise _http_error(e, "export_compare")

        return Response(
            content=df.write_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{chart}.csv"'}
        )

    @app.post("/attributes/table")
    def attribute_table(request: AttributeTableRequest):
        """Get the classified attribute comparison table."""
        try:
            return JSONResponse(content=dashboard.attribute_table(request.business_ids))
        except Exception as e:
            raise _http_error(e, "attribute_table")

    @app.post("/series/normalize")
    async def normalize_series(request: ChartRequest):
        """Convert {labels, datasets} into one row per label."""
        try:
            payload = ChartPayload.from_api(request.model_dump())
            return {"rows": normalize(payload)}
        except Exception as e:
            raise _http_error(e, "normalize_series")

    @app.post("/series/smooth")
    async def smooth_series(request: SmoothRequest):
        """Trailing moving average of a single series."""
        try:
            return {"values": smooth(request.values, request.window)}
        except Exception as e:
            raise _http_error(e, "smooth_series")

    @app.post("/admin/upload-json")
    async def upload_json(file: UploadFile = File(...), collection: str = Form(..., alias="type")):
        """Validate a bulk JSON file and forward it to the storage service."""
        content = await file.read()

        try:
            records = validator.parse_upload(content)
        except UploadFormatError as e:
            raise HTTPException(status_code=400, detail=error_message(e, collection, validator))

        result = validator.validate(records, collection)
        if not result.is_valid:
            raise HTTPException(status_code=400, detail=result.message)

        logger.info(f"Forwarding upload: {upload_payload_summary(records)['record_count']:,} records to {collection}")

        try:
            upstream = client.upload_json_file(file.filename or "upload.json", content, collection)
        except APIError as e:
            logger.error(f"Upload to {collection} failed: {e}")
            raise HTTPException(status_code=502, detail=error_message(e, collection, validator))

        upserted = int(upstream.get("upserted", 0) or 0)
        modified = int(upstream.get("modified", 0) or 0)
        return JSONResponse(content={
            "status": "success",
            "message": success_message(upserted, modified),
            "upserted": upserted,
            "modified": modified
        })

    @app.get("/dashboard", response_class=HTMLResponse)
    async def get_dashboard():
        """Serve the dashboard page."""
        return HTMLResponse(content=DASHBOARD_HTML.replace("{{business_name}}", config.business_name))

    return app


DASHBOARD_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Competitor Analytics Dashboard</title>
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; margin: 24px; background: #f9fafb; }
        .card { background: white; border-radius: 8px; padding: 16px; margin-bottom: 16px; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }
        .summary { display: flex; gap: 16px; }
        .summary .card { flex: 1; font-size: 24px; font-weight: bold; }
        table { border-collapse: collapse; width: 100%; }
        td, th { border-bottom: 1px solid #e5e7eb; padding: 6px; text-align: left; }
    </style>
</head>
<body>
    <h1>Competitor Analytics: {{business_name}}</h1>
    <div class="summary">
        <div class="card">Rating: <span id="rating">...</span></div>
        <div class="card">Reviews: <span id="reviews">...</span></div>
    </div>
    <div class="card">
        <select id="competitor-select"></select>
        <button onclick="addCompetitor()">Add</button>
        <button onclick="loadMore()">Load more</button>
        <label>Smoothing window <input id="window" type="number" min="1" max="12" value="3"></label>
        <button onclick="compare()">Compare</button>
        <div id="selected"></div>
    </div>
    <div class="card"><canvas id="rating-chart"></canvas></div>
    <div class="card"><canvas id="volume-chart"></canvas></div>
    <div class="card"><canvas id="distribution-chart"></canvas></div>
    <div class="card"><table id="insights"></table></div>

    <script>
        const selected = [];
        const charts = {};
        let page = 0;

        async function loadSummary() {
            const response = await fetch('/summary');
            if (!response.ok) return;
            const data = await response.json();
            document.getElementById('rating').textContent = data.rating;
            document.getElementById('reviews').textContent = data.review_count;
        }

        async function loadMore() {
            const response = await fetch(`/competitors?page=${page + 1}`);
            if (!response.ok) return;
            const data = await response.json();
            page = data.page;
            const select = document.getElementById('competitor-select');
            data.competitors.forEach(c => {
                const option = document.createElement('option');
                option.value = c.id;
                option.textContent = `${c.name} - ${c.category}`;
                select.appendChild(option);
            });
        }

        function addCompetitor() {
            const id = document.getElementById('competitor-select').value;
            if (id && !selected.includes(id) && selected.length < 5) selected.push(id);
            document.getElementById('selected').textContent = `Selected (${selected.length}/5): ${selected.join(', ')}`;
        }

        function drawChart(canvasId, view, type) {
            if (charts[canvasId]) charts[canvasId].destroy();
            charts[canvasId] = new Chart(document.getElementById(canvasId), {
                type: type,
                data: {
                    labels: view.rows.map(row => row.x),
                    datasets: view.series.map(s => ({
                        label: s.label,
                        data: view.rows.map(row => row[s.label]),
                        borderColor: s.color,
                        backgroundColor: s.color,
                        spanGaps: true
                    }))
                }
            });
        }

        async function compare() {
            const window = parseInt(document.getElementById('window').value, 10);
            const response = await fetch('/compare', {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify({competitor_ids: selected, window: window})
            });
            if (!response.ok) return;
            const data = await response.json();
            drawChart('rating-chart', data.rating_over_time, 'line');
            drawChart('volume-chart', data.reviews_over_time, 'bar');
            drawChart('distribution-chart', data.rating_distribution, 'bar');
            document.getElementById('insights').innerHTML = data.attribute_insights.map(i =>
                `<tr><td>${i.attribute}</td><td>${i.avg_rating.toFixed(2)}</td><td>${i.impact}</td></tr>`
            ).join('');
        }

        loadSummary();
        loadMore();
    </script>
</body>
</html>
"""


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
