# FILE: run.py
# DESCRIPTION: Run the RhodeSign application (production entrypoint for Gunicorn).

"""
Entrypoint for the RhodeSign signing service.
Used by Gunicorn to start the app server: `gunicorn -c gunicorn.conf.py run:app`.
"""

from rhodesign import create_app
from rhodesign.logging_config import configure_logging

# Configure logging first
logger = configure_logging(
    name="rhodesign",
    logfile="rhodesign.log",
    level=None  # Will use LOG_LEVEL from .env if present
)

# Create the Flask application
app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
