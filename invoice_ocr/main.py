"""Application entry point for the invoice OCR API server."""

import uvicorn

from invoice_ocr.api.app import app
from invoice_ocr.utils.config import load_config
from invoice_ocr.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
