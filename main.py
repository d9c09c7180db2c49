"""Main entry point for the Crypto Price Dashboard."""
from coinwatch.app.app import create_app, run_app
from coinwatch.session import DashboardSession
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)

# The live stream is served by the same process; give Flask a moment to bind
LIVE_CONNECT_DELAY = 1.5


def main():
    """Main function to start the session and the dashboard."""
    session = DashboardSession(connect_delay=LIVE_CONNECT_DELAY)
    app = create_app(session)
    session.start()

    try:
        run_app(app)
    finally:
        session.stop()


if __name__ == "__main__":
    main()
