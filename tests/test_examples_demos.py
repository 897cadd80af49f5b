"""
===========================================================
Examples (CLI) Smoke Test
===========================================================

Smoke-test the example scripts: they run and write their outputs.
"""

import importlib.util
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd

from elli_track import EllipseGeometry
from elli_track.io import save_frame
from elli_track.synthetic import render_ellipse


# --- Helper ---------------------------------------------------------------

def _import_example(name: str):
    """
    Dynamically import examples/<name>.py using its absolute path.
    Works even when pytest runs in a tmpdir.
    """
    project_root = Path(__file__).resolve().parents[1]
    path = project_root / "examples" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


# --- Tests ----------------------------------------------------------------

def test_demo_cli_exports(tmp_path: Path):
    frames = []
    for k in range(3):
        g = EllipseGeometry((60.0 + k, 64.0), 18.0, 28.0, 0.4)
        path = tmp_path / f"frame_{k:03d}.csv"
        save_frame(path, render_ellipse((120, 128), g.center, g.a, g.b, g.e))
        frames.append(str(path))

    g0 = EllipseGeometry((60.0, 64.0), 18.0, 28.0, 0.4)
    init = ";".join(f"{i:.4f},{j:.4f}" for i, j in g0.point_at(np.radians(np.arange(0, 300, 50))))
    out = tmp_path / "tracking.csv"
    pts = tmp_path / "points.csv"

    demo = _import_example("demo_cli")
    code = demo.main(frames + ["--init", init, "--out", str(out), "--points-out", str(pts)])
    assert code == 0
    assert out.exists(), "tracking.csv not created"
    assert pts.exists(), "points csv not created"

    df = pd.read_csv(out)
    assert list(df["frame"]) == [0, 1, 2]
    assert (df["status"] == "ok").all()
    assert np.isclose(df["ic"].iloc[-1], 62.0, atol=0.5)


def test_demo_cli_rejects_bad_init(tmp_path: Path):
    path = tmp_path / "frame.csv"
    save_frame(path, np.zeros((20, 20)))
    demo = _import_example("demo_cli")
    assert demo.main([str(path), "--init", "1,1;2,2;3,3"]) == 1


def test_demo_plot_sequence_saves_figure(tmp_path: Path):
    demo = _import_example("demo_plot_sequence")
    png = tmp_path / "track.png"
    table = tmp_path / "track.csv"
    code = demo.main(["--frames", "8", "--size", "200", "--a", "25", "--b", "40",
                      "--occlude-at", "4", "--save", str(png), "--csv", str(table)])
    assert code == 0
    assert png.exists()
    assert len(pd.read_csv(table)) == 8
