"""Dash application callbacks."""
from dash import ALL, Input, Output, State, ctx, no_update

from coinwatch.app.layout import (
    render_cards,
    render_detail,
    render_performers,
    render_search_results,
    render_status,
)
from coinwatch.session import DashboardSession
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


def register_callbacks(app, session: DashboardSession) -> None:
    """
    Register all Dash callbacks with the app.

    Args:
        app: Dash application instance
        session: Started DashboardSession
    """

    @app.callback(
        Output("cards", "children"),
        Output("performers", "children"),
        Output("status-bar", "children"),
        Output("search-results", "children"),
        Output("detail-panel", "children"),
        Input("refresh", "n_intervals"),
        Input("action-ack", "data"),
        Input("search-ack", "data"),
    )
    def refresh(_n, _action, _search):
        """Re-render from the latest session snapshot."""
        snapshot = session.snapshot()
        return (
            render_cards(snapshot),
            render_performers(snapshot),
            render_status(snapshot),
            render_search_results(snapshot),
            render_detail(snapshot),
        )

    @app.callback(
        Output("search-ack", "data"),
        Input("search-input", "value"),
        prevent_initial_call=True,
    )
    def update_search(value):
        session.set_search_query(value)
        return value

    @app.callback(
        Output("action-ack", "data"),
        Output("search-input", "value"),
        Input({"type": "remove-coin", "index": ALL}, "n_clicks"),
        Input({"type": "search-result", "index": ALL}, "n_clicks"),
        Input({"type": "open-detail", "index": ALL}, "n_clicks"),
        Input({"type": "close-detail", "index": ALL}, "n_clicks"),
        Input("btn-reset", "n_clicks"),
        Input("btn-retry-live", "n_clicks"),
        State("action-ack", "data"),
        prevent_initial_call=True,
    )
    def handle_action(_remove, _select, _open, _close, _reset, _retry, ack):
        """Watchlist edits, the detail panel and live reconnects."""
        trig = ctx.triggered_id
        # Re-rendered buttons fire with n_clicks 0/None; only real clicks count
        if trig is None or not ctx.triggered or not ctx.triggered[0].get("value"):
            return no_update, no_update

        count = (ack or 0) + 1
        if isinstance(trig, dict) and trig.get("type") == "remove-coin":
            session.remove_coin(trig["index"])
            return count, no_update
        if isinstance(trig, dict) and trig.get("type") == "search-result":
            session.select_search_result(trig["index"])
            return count, ""
        if isinstance(trig, dict) and trig.get("type") == "open-detail":
            session.open_detail(trig["index"])
            return count, no_update
        if isinstance(trig, dict) and trig.get("type") == "close-detail":
            session.close_detail()
            return count, no_update
        if trig == "btn-reset":
            session.reset_watchlist()
            return count, no_update
        if trig == "btn-retry-live":
            session.retry_live()
            return count, no_update
        return no_update, no_update
