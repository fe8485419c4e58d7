"""
Waitress WSGI entry point for production deployment.

Usage::

    python wsgi.py

Or run under a process supervisor (systemd, NSSM) pointing at this
file.  ``WAITRESS_HOST``, ``WAITRESS_PORT`` and ``WAITRESS_THREADS``
control the listener.
"""

import logging
import os

from dotenv import load_dotenv
from waitress import serve

# Config classes read the environment at import time.
load_dotenv()

from app import create_app  # noqa: E402

# Production config unless FLASK_ENV says otherwise.
app = create_app(os.environ.get("FLASK_ENV", "production"))

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    host = os.environ.get("WAITRESS_HOST", "127.0.0.1")
    port = int(os.environ.get("WAITRESS_PORT", "8080"))
    threads = int(os.environ.get("WAITRESS_THREADS", "4"))
    logger.warning("Starting LicenseLens on %s:%s (%s threads)", host, port, threads)
    serve(app, host=host, port=port, threads=threads)
