"""
Module: visuals

Purpose: Charts for the uplift report.

Key Functions:
- plot_turnout_by_treatment: Raw turnout per mailer arm
- plot_tradeoff_curve: Expected turnout against expected cost
- plot_treatment_distribution: Arm shares as the vote value grows
- plot_variable_importance: Permutation importance bars

Architecture Notes:
- Uses matplotlib and seaborn
- Returns figure objects for notebook integration
"""

import base64
import io

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.figure import Figure

from gotv_uplift.data.schemas import DatasetSummary, TradeoffPoint, VariableImportance
from gotv_uplift.modeling.erupt import tradeoff_frame, treatment_share_frame
from gotv_uplift.modeling.uplift_model import UpliftModel


# =============================================================================
# CONFIGURATION
# =============================================================================


def set_style(style: str = "whitegrid") -> None:
    """Set the default plotting style."""
    sns.set_style(style)
    plt.rcParams["figure.figsize"] = (10, 6)
    plt.rcParams["font.size"] = 10


# =============================================================================
# DATA PLOTS
# =============================================================================


def plot_turnout_by_treatment(
    summary: DatasetSummary,
    *,
    title: str = "Turnout by Mailer",
    figsize: tuple[int, int] = (10, 6),
    color_palette: str = "viridis",
) -> Figure:
    """
    Plot raw turnout rate for each arm.

    Args:
        summary: Dataset summary
        title: Chart title
        figsize: Figure size
        color_palette: Seaborn color palette

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    arms = list(summary.turnout_by_arm.keys())
    rates = [summary.turnout_by_arm[a] for a in arms]
    colors = sns.color_palette(color_palette, len(arms))

    bars = ax.bar(arms, rates, color=colors)
    ax.axhline(y=summary.overall_turnout, color="gray", linestyle="--", alpha=0.6, label="Overall")

    for bar, rate, arm in zip(bars, rates, arms):
        ax.text(
            bar.get_x() + bar.get_width() / 2,
            rate,
            f"{rate:.1%}\n(n={summary.arm_counts.get(arm, 0):,})",
            ha="center",
            va="bottom",
            fontsize=9,
        )

    ax.set_ylabel("Turnout Rate")
    ax.set_title(title)
    ax.set_ylim(0, max(rates) * 1.25 if rates else 1)
    ax.legend(loc="lower right")

    plt.tight_layout()
    return fig


# =============================================================================
# TRADEOFF PLOTS
# =============================================================================


def plot_tradeoff_curve(
    points: list[TradeoffPoint],
    *,
    turnout_key: str = "voted",
    cost_key: str = "cost",
    title: str = "Turnout / Cost Tradeoff",
    figsize: tuple[int, int] = (10, 6),
) -> Figure:
    """
    Plot expected turnout against expected cost per voter.

    Model-targeted policies are compared with random assignment of the
    same treatment mix.

    Args:
        points: Tradeoff curve points
        turnout_key: Name of the turnout response
        cost_key: Name of the cost response
        title: Chart title
        figsize: Figure size

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    ordered = sorted(points, key=lambda p: p.vote_value)
    model_cost = [p.model_erupt[cost_key] for p in ordered]
    model_turnout = [p.model_erupt[turnout_key] for p in ordered]
    model_se = [p.model_erupt_se[turnout_key] for p in ordered]
    random_cost = [p.random_erupt[cost_key] for p in ordered]
    random_turnout = [p.random_erupt[turnout_key] for p in ordered]

    ax.errorbar(
        model_cost,
        model_turnout,
        yerr=1.96 * np.asarray(model_se),
        marker="o",
        capsize=3,
        label="Model targeting",
    )
    ax.plot(random_cost, random_turnout, marker="s", linestyle="--", alpha=0.7, label="Random assignment")

    for p, cx, ty in zip(ordered, model_cost, model_turnout):
        ax.annotate(f"{p.vote_value:g}", (cx, ty), textcoords="offset points", xytext=(4, 4), fontsize=8)

    ax.set_xlabel("Expected Cost per Voter")
    ax.set_ylabel("Expected Turnout (ERUPT)")
    ax.set_title(title)
    ax.legend()

    plt.tight_layout()
    return fig


def plot_responses_by_weight(
    points: list[TradeoffPoint],
    *,
    title: str = "Expected Responses by Value of a Vote",
    figsize: tuple[int, int] = (12, 5),
) -> Figure:
    """
    Plot each response's ERUPT against the vote value, one panel per response.

    Args:
        points: Tradeoff curve points
        title: Chart title
        figsize: Figure size

    Returns:
        matplotlib Figure
    """
    frame = tradeoff_frame(points)
    responses = list(dict.fromkeys(frame["response"]))
    fig, axes = plt.subplots(1, len(responses), figsize=figsize, squeeze=False)

    for ax, response in zip(axes[0], responses):
        sub = frame[frame["response"] == response]
        sns.lineplot(data=sub, x="vote_value", y="value", hue="policy", marker="o", ax=ax)
        model = sub[sub["policy"] == "model"].sort_values("vote_value")
        ax.fill_between(
            model["vote_value"],
            model["value"] - 1.96 * model["se"],
            model["value"] + 1.96 * model["se"],
            alpha=0.2,
        )
        ax.set_xlabel("Value of a Vote")
        ax.set_ylabel(f"ERUPT: {response}")
        ax.set_title(response)

    plt.suptitle(title, fontsize=14, y=1.02)
    plt.tight_layout()
    return fig


def plot_treatment_distribution(
    points: list[TradeoffPoint],
    *,
    title: str = "Proposed Mailer Mix by Value of a Vote",
    figsize: tuple[int, int] = (10, 6),
    color_palette: str = "Set2",
) -> Figure:
    """
    Stacked area of arm shares under the model's policy.

    Args:
        points: Tradeoff curve points
        title: Chart title
        figsize: Figure size
        color_palette: Seaborn color palette

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    shares = treatment_share_frame(points)
    colors = sns.color_palette(color_palette, shares.shape[1])
    ax.stackplot(
        shares.index.to_numpy(),
        shares.to_numpy().T,
        labels=list(shares.columns),
        colors=colors,
        alpha=0.85,
    )

    ax.set_xlabel("Value of a Vote")
    ax.set_ylabel("Share of Voters")
    ax.set_ylim(0, 1)
    ax.set_title(title)
    ax.legend(loc="upper left", bbox_to_anchor=(1.0, 1.0))

    plt.tight_layout()
    return fig


# =============================================================================
# MODEL PLOTS
# =============================================================================


def plot_variable_importance(
    importances: list[VariableImportance],
    *,
    title: str | None = None,
    figsize: tuple[int, int] = (10, 6),
    color_palette: str = "viridis",
) -> Figure:
    """
    Horizontal bars of permutation importance with one-std error bars.

    Args:
        importances: Permutation importances (any order)
        title: Optional custom title
        figsize: Figure size
        color_palette: Seaborn color palette

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    ordered = sorted(importances, key=lambda i: i.importance_mean)
    names = [i.variable for i in ordered]
    means = [i.importance_mean for i in ordered]
    stds = [i.importance_std for i in ordered]
    metric = ordered[0].metric if ordered else "importance"

    ax.barh(names, means, xerr=stds, color=sns.color_palette(color_palette, len(names)), capsize=3)
    ax.axvline(x=0, color="black", linewidth=0.8)
    ax.set_xlabel(metric.replace("_", " ").title())
    ax.set_title(title or "Permutation Variable Importance")

    plt.tight_layout()
    return fig


def plot_uplift_distribution(
    model: UpliftModel,
    x: np.ndarray,
    treatment_names: list[str],
    *,
    response_index: int = 0,
    title: str = "Predicted Turnout Uplift vs Control",
    figsize: tuple[int, int] = (10, 6),
    bins: int = 40,
) -> Figure:
    """
    Histogram of predicted uplift per non-control arm.

    Args:
        model: Fitted uplift model
        x: Explanatory variables
        treatment_names: Arm names, control first
        response_index: Which response to plot (0 is turnout)
        title: Chart title
        figsize: Figure size
        bins: Histogram bins

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    uplift = model.predict_uplift(x)[:, :, response_index]
    for arm in range(1, uplift.shape[1]):
        sns.histplot(uplift[:, arm], bins=bins, element="step", fill=False, label=treatment_names[arm], ax=ax)

    ax.axvline(x=0, color="black", linewidth=0.8)
    ax.set_xlabel("Predicted Uplift")
    ax.set_ylabel("Voters")
    ax.set_title(title)
    ax.legend()

    plt.tight_layout()
    return fig


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def save_figure(
    fig: Figure,
    filepath: str,
    *,
    dpi: int = 150,
    bbox_inches: str = "tight",
) -> None:
    """
    Save figure to file.

    Args:
        fig: Figure to save
        filepath: Path to save to
        dpi: Resolution
        bbox_inches: Bounding box option
    """
    fig.savefig(filepath, dpi=dpi, bbox_inches=bbox_inches)


def figure_to_base64(fig: Figure, *, dpi: int = 110) -> str:
    """Encode a figure as a base64 PNG for embedding in HTML."""
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def close_figure(fig: Figure) -> None:
    """Close a figure to free memory."""
    plt.close(fig)
