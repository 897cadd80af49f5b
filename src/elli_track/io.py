from pathlib import Path

import numpy as np
import pandas as pd


TRACK_COLUMNS = ["frame", "ic", "jc", "a", "b", "e", "alpha1", "alpha2", "m00", "n_points", "status"]


def load_frame(path: str, delimiter: str = ",", skiprows: int = 0) -> np.ndarray:
    """
    Load a 2D intensity frame stored as CSV.

    Parameters
    ----------
    path : str
        CSV file path.
    delimiter : str
        CSV delimiter (default ",").
    skiprows : int
        Number of initial rows to skip (useful if the CSV has a header line).
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    return np.loadtxt(p, delimiter=delimiter, skiprows=skiprows, ndmin=2)


def save_frame(path: str, image: np.ndarray):
    np.savetxt(path, np.asarray(image, float), delimiter=",", fmt="%.6f")


def save_points_csv(path: str, points):
    """
    Save (i, j) points to a CSV with an "i,j" header.

    Useful to inspect sample points or to plot them with external tools.
    """
    arr = np.asarray(points, float).reshape(-1, 2)
    np.savetxt(path, arr, delimiter=",", header="i,j", comments="", fmt="%.6f")


def track_record(frame: int, tracker, status: str = "ok") -> dict:
    """One row of the tracking table from the tracker's current state."""
    g, arc = tracker.geometry, tracker.arc
    return {
        "frame": frame,
        "ic": g.center[0], "jc": g.center[1],
        "a": g.a, "b": g.b, "e": g.e,
        "alpha1": arc.alpha1, "alpha2": arc.alpha2,
        "m00": tracker.moments.m00,
        "n_points": tracker.points.n_valid,
        "status": status,
    }


def tracking_table(records) -> pd.DataFrame:
    return pd.DataFrame(list(records), columns=TRACK_COLUMNS)


def save_tracking_csv(path: str, records) -> pd.DataFrame:
    df = tracking_table(records)
    df.to_csv(path, index=False, float_format="%.6f")
    return df
