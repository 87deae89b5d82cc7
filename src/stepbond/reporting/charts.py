"""Chart generation using Plotly."""

from typing import List

import plotly.graph_objects as go

from ..engine.ledger import Bond
from ..simulation.runner import TradeRecord

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "cyan": "#00d4ff",
    "cyan_fill": "rgba(0, 212, 255, 0.12)",
    "amber": "#ffab00",
    "amber_fill": "rgba(255, 171, 0, 0.12)",
    "red": "#ff5252",
    "green": "#00e676",
}


def apply_dark_layout(fig: go.Figure, title: str, x_title: str, y_title: str, showlegend: bool = True) -> None:
    """Apply the dark chart layout shared by every figure."""
    fig.update_layout(
        title={
            "text": title,
            "x": 0,
            "xanchor": "left",
            "font": {"size": 11, "color": THEME["text_secondary"]}
        },
        xaxis_title=x_title,
        yaxis_title=y_title,
        hovermode="x unified",
        template="plotly_dark",
        height=340,
        margin=dict(l=50, r=20, t=40, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        plot_bgcolor="rgba(8, 9, 10, 1)",
        paper_bgcolor="rgba(8, 9, 10, 1)",
        font={"color": THEME["text"], "size": 11},
        xaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
        yaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"])
    )


def create_price_curve_chart(bond: Bond) -> go.Figure:
    """Step price against supply, with a marker at the current supply."""
    xs = [0]
    ys = [bond.steps[0].price]
    for step in bond.steps:
        xs.append(step.range_to)
        ys.append(step.price)

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=xs,
        y=ys,
        name='Price',
        mode='lines',
        line=dict(color=THEME["cyan"], width=2, shape='vh'),
        fill='tozeroy',
        fillcolor=THEME["cyan_fill"]
    ))
    fig.add_vline(
        x=bond.current_supply,
        line_dash="dot",
        line_color=THEME["amber"],
        line_width=1
    )
    label = bond.symbol or f"Bond {bond.bond_id}"
    apply_dark_layout(fig, f"{label} Price Curve", "Supply", "Price per unit", showlegend=False)
    return fig


def create_reserve_chart(trades: List[TradeRecord]) -> go.Figure:
    """Supply and reserve after each simulated trade; failed trades marked in red."""
    index = [t.index for t in trades]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=index,
        y=[t.reserve_after for t in trades],
        name='Reserve',
        mode='lines',
        line=dict(color=THEME["amber"], width=2),
        fill='tozeroy',
        fillcolor=THEME["amber_fill"]
    ))
    fig.add_trace(go.Scatter(
        x=index,
        y=[t.supply_after for t in trades],
        name='Supply',
        mode='lines',
        line=dict(color=THEME["cyan"], width=2, dash='dot'),
        yaxis='y2'
    ))

    failed = [t for t in trades if t.outcome != "ok"]
    if failed:
        fig.add_trace(go.Scatter(
            x=[t.index for t in failed],
            y=[t.reserve_after for t in failed],
            name='Rejected',
            mode='markers',
            marker=dict(size=6, color=THEME["red"]),
            text=[t.outcome for t in failed]
        ))

    apply_dark_layout(fig, "Reserve and Supply per Trade", "Trade", "Reserve")
    fig.update_layout(yaxis2=dict(title="Supply", overlaying='y', side='right', showgrid=False))
    return fig
