import matplotlib.pyplot as plt
import numpy as np


def arc_points(center, a, b, e, alpha1, alpha2, n=200):
    """(i, j) samples of the arc alpha1..alpha2."""
    t = np.linspace(alpha1, alpha2, n)
    ce, se = np.cos(e), np.sin(e)
    i = center[0] + b * ce * np.cos(t) - a * se * np.sin(t)
    j = center[1] + b * se * np.cos(t) + a * ce * np.sin(t)
    return i, j


def draw_ellipse_arc(ax, center, a, b, e, alpha1, alpha2, color="g"):
    """
    Draw the tracked arc on a matplotlib axis showing the image with imshow
    (columns j on x, rows i on y). The rest of the ellipse is dotted.
    """
    i, j = arc_points(center, a, b, e, alpha1, alpha2)
    ax.plot(j, i, color=color, lw=2)
    if alpha2 - alpha1 < 2.0 * np.pi - 1e-9:
        i2, j2 = arc_points(center, a, b, e, alpha2, alpha1 + 2.0 * np.pi)
        ax.plot(j2, i2, color=color, lw=1, ls=":")
    ax.plot([center[1]], [center[0]], "+", color=color, ms=10)
    return ax


def plot_tracking(image, tracker, ax=None, title="Ellipse tracking", color="g"):
    if ax is None:
        _, ax = plt.subplots(figsize=(5, 5))
    ax.imshow(image, cmap="gray", origin="upper")
    P = tracker.points.positions()
    if len(P):
        ax.scatter(P[:, 1], P[:, 0], s=10, c="dodgerblue", label=f"sample points (n={len(P)})")
    tracker.display(draw_ellipse_arc, ax, color)
    g = tracker.geometry
    ax.set_title(f"{title} (a≈{g.a:.1f}, b≈{g.b:.1f})")
    ax.set_aspect("equal", "box")
    ax.axis("off")
    ax.legend(frameon=False, loc="best")
    return ax
