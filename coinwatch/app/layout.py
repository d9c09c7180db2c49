"""Dash application layout."""
from typing import List, Optional, Sequence

from dash import dcc, html

from coinwatch.config import REFRESH_INTERVAL_MS
from coinwatch.constants import LIVE_CONNECTING, LIVE_ERROR, LIVE_OPEN
from coinwatch.models import CoinDetail, CoinOverview, SearchResult, WatchlistEntry
from coinwatch.registry import get_coin_meta
from coinwatch.session import SessionSnapshot
from coinwatch.utils import format_change, format_currency
from coinwatch.visualization import color_for, performers, sparkline_figure

POSITIVE = "#34d399"
NEGATIVE = "#fb7185"

CARD_STYLE = {
    "border": "1px solid rgba(255,255,255,0.1)",
    "borderRadius": "20px",
    "padding": "20px",
    "backgroundColor": "#0f172a",
    "color": "#f8fafc",
    "display": "flex",
    "flexDirection": "column",
    "gap": "12px",
}


def create_layout() -> html.Div:
    """
    Create the Dash application layout.

    Everything dynamic is filled in by the refresh callback; the layout only
    holds the containers and controls.

    Returns:
        HTML Div containing the full layout
    """
    return html.Div(
        style={
            "fontFamily": "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif",
            "padding": "32px",
            "minHeight": "100vh",
            "backgroundColor": "#020617",
            "color": "#e2e8f0",
        },
        children=[
            html.Div(
                style={"display": "flex", "justifyContent": "space-between", "alignItems": "center", "gap": "24px"},
                children=[
                    html.Div([
                        html.H2("Crypto Price Dashboard", style={"marginBottom": "4px", "fontWeight": "600"}),
                        html.P(
                            "Near real-time prices for your watchlist and their recent trend.",
                            style={"color": "#94a3b8", "marginTop": 0},
                        ),
                    ]),
                    html.Div(id="performers"),
                ],
            ),

            html.Div(id="status-bar", style={"margin": "16px 0"}),

            html.Div(
                style={"display": "flex", "gap": "12px", "alignItems": "center"},
                children=[
                    dcc.Input(
                        id="search-input",
                        type="text",
                        placeholder="Search a coin to add (e.g. polkadot)",
                        debounce=False,
                        autoComplete="off",
                        style={"flex": "1", "padding": "10px 14px", "borderRadius": "12px"},
                    ),
                    html.Button("Reset watchlist", id="btn-reset", n_clicks=0),
                    html.Button("Reconnect live", id="btn-retry-live", n_clicks=0),
                ],
            ),
            html.Div(id="search-results", style={"marginTop": "8px"}),
            html.Div(id="detail-panel", style={"marginTop": "24px"}),

            html.Div(
                id="cards",
                style={
                    "display": "grid",
                    "gridTemplateColumns": "repeat(auto-fill, minmax(280px, 1fr))",
                    "gap": "20px",
                    "marginTop": "24px",
                },
            ),

            dcc.Interval(id="refresh", interval=REFRESH_INTERVAL_MS, n_intervals=0),
            dcc.Store(id="search-ack"),
            dcc.Store(id="action-ack"),
        ],
    )


def render_cards(snapshot: SessionSnapshot) -> List[html.Div]:
    """One card per watchlist entry, in watchlist order."""
    view = snapshot.view
    return [
        _coin_card(entry, view.overviews.get(entry.id), view.histories.get(entry.id), entry.id in view.pending_ids)
        for entry in snapshot.entries
    ]


def _coin_card(
    entry: WatchlistEntry,
    overview: Optional[CoinOverview],
    history: Optional[Sequence[float]],
    pending: bool,
) -> html.Div:
    meta = get_coin_meta(entry.id)
    accent = color_for(entry.id)
    image = meta.image if meta else entry.image
    style = dict(CARD_STYLE)
    if meta is not None:
        style["backgroundImage"] = (
            f"linear-gradient(180deg, {meta.gradient[0]}33 0%, {meta.gradient[1]}00 40%)"
        )

    header = html.Div(
        style={"display": "flex", "alignItems": "center", "justifyContent": "space-between"},
        children=[
            html.Div(
                style={"display": "flex", "alignItems": "center", "gap": "12px"},
                children=[
                    html.Img(src=image, style={"width": "40px", "height": "40px"}) if image else None,
                    html.Div([
                        html.Div(entry.name, style={"fontWeight": "600", "fontSize": "18px"}),
                        html.Div(entry.symbol.upper(), style={"color": "#94a3b8", "fontSize": "12px"}),
                    ]),
                ],
            ),
            html.Div(
                style={"display": "flex", "gap": "6px"},
                children=[
                    html.Button("Details", id={"type": "open-detail", "index": entry.id}, n_clicks=0),
                    None if entry.is_default else html.Button(
                        "✕",
                        id={"type": "remove-coin", "index": entry.id},
                        n_clicks=0,
                        title=f"Remove {entry.name}",
                    ),
                ],
            ),
        ],
    )

    if overview is None:
        body = html.Div("Loading…" if pending else "No price data", style={"color": "#94a3b8"})
    else:
        color = POSITIVE if overview.change_24h >= 0 else NEGATIVE
        body = html.Div([
            html.Div(format_currency(overview.price), style={"fontSize": "28px", "fontWeight": "600"}),
            html.Span(f"{format_change(overview.change_24h)} 24h", style={"color": color, "fontSize": "14px"}),
        ])

    figure = sparkline_figure(history, accent)
    chart = (
        dcc.Graph(figure=figure, config={"displayModeBar": False, "staticPlot": True}, style={"height": "48px"})
        if figure is not None
        else html.Div("No data", style={"color": "#94a3b8", "fontSize": "12px", "textAlign": "center"})
    )
    return html.Div(style=style, children=[header, body, chart])


def render_performers(snapshot: SessionSnapshot) -> html.Div:
    tracked = [snapshot.view.overviews[e.id] for e in snapshot.entries if e.id in snapshot.view.overviews]
    best, worst = performers(tracked)

    def _tile(label: str, coin: Optional[CoinOverview], color: str) -> html.Div:
        return html.Div(
            style={"padding": "10px 16px", "borderRadius": "12px", "backgroundColor": "#0f172a"},
            children=[
                html.Div(label, style={"fontSize": "11px", "color": "#94a3b8", "textTransform": "uppercase"}),
                html.Div(coin.name if coin else "N/A", style={"fontWeight": "600"}),
                html.Div(format_change(coin.change_24h) if coin else "No data", style={"color": color, "fontSize": "12px"}),
            ],
        )

    return html.Div(
        style={"display": "flex", "gap": "12px"},
        children=[_tile("Best performer", best, POSITIVE), _tile("Worst performer", worst, NEGATIVE)],
    )


def render_status(snapshot: SessionSnapshot) -> List[html.Div]:
    view = snapshot.view
    live_text = {
        LIVE_OPEN: f"Live · updated {view.live_updated_at}" if view.live_updated_at else "Live",
        LIVE_CONNECTING: "Connecting to live prices…",
        LIVE_ERROR: view.live_error or "Live prices unavailable",
    }.get(view.live_status, "Live prices idle")
    live_color = {LIVE_OPEN: POSITIVE, LIVE_ERROR: NEGATIVE}.get(view.live_status, "#94a3b8")

    items = [html.Div(live_text, style={"color": live_color, "fontSize": "13px"})]
    if view.loading:
        items.append(html.Div("Loading market data…", style={"color": "#7dd3fc", "fontSize": "13px"}))
    if view.error:
        items.append(html.Div(view.error, style={"color": NEGATIVE, "fontSize": "13px"}))
    if view.warning:
        items.append(html.Div(view.warning, style={"color": "#fbbf24", "fontSize": "13px"}))
    return items


def render_search_results(snapshot: SessionSnapshot) -> List[html.Div]:
    search = snapshot.search
    if search.error:
        return [html.Div(search.error, style={"color": NEGATIVE, "fontSize": "13px"})]
    if search.loading and not search.results:
        return [html.Div("Searching…", style={"color": "#94a3b8", "fontSize": "13px"})]
    tracked = {e.id for e in snapshot.entries}
    return [_search_row(result, result.id in tracked) for result in search.results]


def _search_row(result: SearchResult, tracked: bool) -> html.Button:
    rank = f"#{result.market_cap_rank}" if result.market_cap_rank else ""
    return html.Button(
        f"{result.name} ({result.symbol}) {rank}".strip() + (" · tracked" if tracked else ""),
        id={"type": "search-result", "index": result.id},
        n_clicks=0,
        disabled=tracked,
        style={"display": "block", "width": "100%", "textAlign": "left", "padding": "8px 12px"},
    )


def render_detail(snapshot: SessionSnapshot) -> List[html.Div]:
    """Detail panel for the selected coin, empty when none is open."""
    state = snapshot.detail
    if state.coin_id is None:
        return []

    close = html.Button("Close", id={"type": "close-detail", "index": "panel"}, n_clicks=0)
    if state.loading:
        children = [html.Div("Loading details…", style={"color": "#94a3b8"}), close]
    elif state.error or state.detail is None:
        children = [html.Div(state.error or "No data", style={"color": NEGATIVE}), close]
    else:
        children = _detail_view(state.detail, state.history, close)
    return [html.Div(style=dict(CARD_STYLE), children=children)]


def _detail_view(detail: CoinDetail, history: Sequence[float], close: html.Button) -> List[html.Div]:
    color = POSITIVE if detail.change_24h >= 0 else NEGATIVE
    header = html.Div(
        style={"display": "flex", "alignItems": "center", "justifyContent": "space-between"},
        children=[
            html.Div(
                style={"display": "flex", "alignItems": "center", "gap": "12px"},
                children=[
                    html.Img(src=detail.image, style={"width": "48px", "height": "48px"}) if detail.image else None,
                    html.Div([
                        html.Div(detail.name, style={"fontWeight": "600", "fontSize": "22px"}),
                        html.Div(detail.symbol.upper(), style={"color": "#94a3b8", "fontSize": "12px"}),
                    ]),
                ],
            ),
            close,
        ],
    )
    updated = f"Last updated {detail.last_updated}" if detail.last_updated else "Last update unknown"

    figure = sparkline_figure(history, color, height=180)
    chart = (
        dcc.Graph(figure=figure, config={"displayModeBar": False}, style={"height": "180px"})
        if figure is not None
        else html.Div("No trend data", style={"color": "#94a3b8", "fontSize": "12px"})
    )

    def _tile(label: str, value: float) -> html.Div:
        return html.Div(
            style={"padding": "10px 16px", "borderRadius": "12px", "backgroundColor": "#020617"},
            children=[
                html.Div(label, style={"fontSize": "11px", "color": "#94a3b8", "textTransform": "uppercase"}),
                html.Div(format_currency(value), style={"fontWeight": "600"}),
            ],
        )

    return [
        header,
        html.Div(updated, style={"color": "#94a3b8", "fontSize": "12px"}),
        html.Div([
            html.Div(format_currency(detail.price), style={"fontSize": "32px", "fontWeight": "600"}),
            html.Span(f"{format_change(detail.change_24h)} 24h", style={"color": color, "fontSize": "14px"}),
        ]),
        chart,
        html.Div(
            style={"display": "flex", "gap": "12px"},
            children=[_tile("24h high", detail.high_24h), _tile("24h low", detail.low_24h)],
        ),
    ]
