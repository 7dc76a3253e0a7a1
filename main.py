from flask import Flask, request, jsonify
from flask_cors import CORS
from royalty_engine import BatchCalculator, RoyaltyProcessor
from royalty_engine.errors import RoyaltyCalculationError
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (statement tooling calls the API from the browser)
CORS(app)

# Initialize the royalty processor
processor = RoyaltyProcessor()
batch_calculator = BatchCalculator(
    processor=processor,
    max_workers=int(os.environ.get("ROYALTY_BATCH_MAX_WORKERS", "4")),
)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Royalty Split Engine API",
        "version": "1.0",
        "environment": os.environ.get("ENVIRONMENT", "dev"),
        "endpoints": {
            "calculate_royalties": "/calculate_royalties [POST]",
            "calculate_batch": "/calculate_batch [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate_royalties", methods=["POST"])
def calculate_royalties():
    """
    Calculate one title's royalties for one period
    """
    try:
        # Get input data
        input_data = request.get_json(force=True, silent=True)

        if not input_data or not isinstance(input_data, dict):
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        # Log request
        title_id = input_data.get('title_id', 'Unknown')
        logger.info(f"Calculating royalties for title: {title_id}")

        # Process through engine
        result = processor.process_from_dict(input_data)

        logger.info(f"Royalties calculated successfully for title: {title_id}")

        return jsonify(result), 200

    except RoyaltyCalculationError as e:
        # Data problems from engine (missing contract, bad schedule, ...)
        logger.error(f"Calculation blocked: [{e.code}] {str(e)}")
        return jsonify({
            "error": str(e),
            "error_code": e.code,
            "status": "validation_failed"
        }), 400

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/calculate_batch", methods=["POST"])
def calculate_batch():
    """
    Calculate many titles; each title succeeds or fails independently
    """
    input_data = request.get_json(force=True, silent=True)

    if not isinstance(input_data, dict) or not isinstance(input_data.get("titles"), list):
        return jsonify({
            "error": "'titles' must be a list",
            "status": "validation_failed"
        }), 400

    result = batch_calculator.run_from_dicts(input_data["titles"])
    return jsonify(result.to_dict(processor.output_builder)), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
