"""Main Dash application setup."""
from dash import Dash

from coinwatch.app import callbacks, layout
from coinwatch.config import DASH_DEBUG, DASH_HOST, DASH_PORT
from coinwatch.live import register_live_route
from coinwatch.session import DashboardSession
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


def create_app(session: DashboardSession) -> Dash:
    """
    Create and configure the Dash application.

    The live price stream is served from the same Flask server the page is
    served from.

    Args:
        session: DashboardSession the callbacks read from and write to

    Returns:
        Configured Dash application
    """
    app = Dash(__name__, title="Crypto Price Dashboard")

    # Set layout
    app.layout = layout.create_layout()

    # Register callbacks and the live stream route
    callbacks.register_callbacks(app, session)
    register_live_route(app.server)

    return app


def run_app(app: Dash) -> None:
    """Run the Dash application."""
    startup_msg = f"Starting Dash… open http://{DASH_HOST}:{DASH_PORT}/"
    logger.info(startup_msg)
    # Reloader would start a second session in the child process
    app.run(host=DASH_HOST, debug=DASH_DEBUG, port=DASH_PORT, use_reloader=False, threaded=True)
