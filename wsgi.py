import logging
import sys

logger = logging.getLogger(__name__)

try:
    # app.py configures logging on import
    from app import app
    logger.info("Gunicorn: CropYield-Predictor WSGI app imported successfully")
except Exception:
    logger.exception("CRITICAL ERROR importing app")
    sys.exit(1)

if __name__ == "__main__":
    app.run()
