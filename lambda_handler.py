"""
AWS Lambda handler for the Royalty Split Engine API.

This is the production entry point for AWS Lambda deployments; the batch
scheduler invokes it once per statement run.
For local development, use main.py (Flask app) instead.
"""

import json
import logging
import os

from royalty_engine import BatchCalculator, RoyaltyProcessor
from royalty_engine.errors import RoyaltyCalculationError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")
BATCH_MAX_WORKERS = int(os.environ.get("ROYALTY_BATCH_MAX_WORKERS", "4"))

# Initialize processor (reused across warm invocations)
processor = RoyaltyProcessor()
batch_calculator = BatchCalculator(processor=processor, max_workers=BATCH_MAX_WORKERS)

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /calculate_royalties
    - POST /calculate_batch
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/calculate_royalties" and http_method == "POST":
        return handle_calculate_royalties(event)
    elif path == "/calculate_batch" and http_method == "POST":
        return handle_calculate_batch(event)
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Royalty Split Engine API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "calculate_royalties": "/calculate_royalties [POST]",
                "calculate_batch": "/calculate_batch [POST]",
                "health": "/health [GET]",
            },
        },
    )


def handle_calculate_royalties(event):
    """Calculate one title's royalties for one period."""
    try:
        input_data = _parse_body(event)
        if not input_data or not isinstance(input_data, dict):
            return _response(400, {"error": "No input data provided", "status": "failed"})

        title_id = input_data.get("title_id", "Unknown")
        logger.info(f"Calculating royalties for title: {title_id}")

        result = processor.process_from_dict(input_data)

        logger.info(f"Royalties calculated successfully for title: {title_id}")
        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except RoyaltyCalculationError as e:
        # Data problems: missing contract, bad schedule, ownership mismatch...
        logger.error(f"Calculation blocked: [{e.code}] {str(e)}")
        return _response(400, {"error": str(e), "error_code": e.code, "status": "validation_failed"})

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Defects (e.g. split reconciliation) - log details but return a generic message
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})


def handle_calculate_batch(event):
    """Calculate many titles; each title succeeds or fails on its own."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        titles = input_data.get("titles") if isinstance(input_data, dict) else None
        if not isinstance(titles, list):
            return _response(400, {"error": "'titles' must be a list", "status": "validation_failed"})

        result = batch_calculator.run_from_dicts(titles)
        return _response(200, result.to_dict(processor.output_builder))

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except Exception as e:
        logger.error(f"Unexpected batch error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})


def _parse_body(event):
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        import base64

        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def _response(status_code, payload):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}
