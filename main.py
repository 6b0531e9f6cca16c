#!/usr/bin/env python3

import sys
import json
import logging

from dashboard_config import DashboardConfig, ConfigError
from api_client import ReviewDataAPIClient, APIError
from dashboard import CompetitorDashboard, CHART_VIEWS
from moving_average import smooth
from upload_validation import UploadValidator, COLLECTIONS

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

USAGE = """Usage: python main.py [serve|compare|export|validate|smooth]
  serve                           - Start the dashboard API (default)
  compare <id> [<id> ...]         - Print comparison charts for competitor ids
  export <chart> <id> [<id> ...]  - Print one comparison chart as CSV ({charts})
  validate <file> <collection>    - Check a bulk upload file ({collections})
  smooth <window> <v1,v2,...>     - Moving average of a comma separated series (use 'null' for gaps)"""


def run_server():
    """Start the FastAPI dashboard service."""
    import uvicorn
    from web_api import create_app

    config = DashboardConfig.from_env()
    logger.info(f"Starting dashboard API for {config.business_name}")
    uvicorn.run(create_app(config), host="0.0.0.0", port=8000)


def run_compare(competitor_ids):
    """Fetch and print the comparison view."""
    config = DashboardConfig.from_env()
    dashboard = CompetitorDashboard(config, ReviewDataAPIClient(config))

    try:
        result = dashboard.compare(competitor_ids)
    except APIError as e:
        logger.error(f"Comparison failed: {e}")
        return False

    print("\n" + "=" * 60)
    print(f"COMPETITOR COMPARISON - {config.business_name}")
    print("=" * 60)
    for key in ("rating_over_time", "reviews_over_time", "rating_distribution"):
        view = result[key]
        print(f"\n{key.replace('_', ' ').title()} ({len(view['rows'])} rows)")
        for row in view['rows']:
            print(f"  {row}")

    print("\nAttribute insights:")
    for insight in result["attribute_insights"]:
        print(f"  {insight['attribute']}: {insight['avg_rating']:.2f} ({insight['impact']})")
    return True


def run_export(chart, competitor_ids):
    """Print one comparison chart as CSV."""
    config = DashboardConfig.from_env()
    dashboard = CompetitorDashboard(config, ReviewDataAPIClient(config))

    try:
        df = dashboard.export_chart(competitor_ids, chart)
    except APIError as e:
        logger.error(f"Export failed: {e}")
        return False

    print(df.write_csv(), end="")
    return True


def run_validate(path, collection):
    """Validate a bulk upload file without sending it."""
    result = UploadValidator().validate_file(path, collection)
    print(f"{'VALID' if result.is_valid else 'INVALID'}: {result.message}")
    return result.is_valid


def run_smooth(window, raw_values):
    values = [None if v.strip().lower() in ("", "null", "none") else float(v) for v in raw_values.split(",")]
    print(json.dumps(smooth(values, int(window))))
    return True


def main():
    """Main entry point with command line options."""
    usage = USAGE.format(collections="|".join(COLLECTIONS), charts="|".join(CHART_VIEWS))
    command = sys.argv[1].lower() if len(sys.argv) > 1 else "serve"
    args = sys.argv[2:]

    try:
        if command == "serve":
            run_server()
            ok = True
        elif command == "compare" and args:
            ok = run_compare(args)
        elif command == "export" and len(args) >= 2:
            ok = run_export(args[0], args[1:])
        elif command == "validate" and len(args) == 2:
            ok = run_validate(args[0], args[1])
        elif command == "smooth" and len(args) == 2:
            ok = run_smooth(args[0], args[1])
        else:
            print(usage)
            sys.exit(1)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        sys.exit(2)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
