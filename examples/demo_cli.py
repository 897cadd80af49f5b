"""
===========================================================
Ellipse Tracking Demo (CLI version)
===========================================================

Usage
-----
    python3 examples/demo_cli.py frame_000.csv frame_001.csv ... \
        --init "i,j;i,j;i,j;i,j;i,j"

Each CSV holds one grayscale frame. The --init points (≥ 5, or ≥ 3 with
--circle) lie on the contour in the first frame.

Outputs
-------
    tracking.csv        one row per frame (center, axes, angle, arc, m00)
    sample_points.csv   sample points of the last frame
"""

# --- Imports --------------------------------------------------------------

import argparse
import sys

import numpy as np

from elli_track import (EllipseTracker, ElliTrackError, TrackerConfig, TrackingLostError,
                        load_frame, save_points_csv, save_tracking_csv)
from elli_track.io import track_record


# --- CLI ------------------------------------------------------------------

def parse_points(text: str) -> np.ndarray:
    pts = [tuple(float(v) for v in p.split(",")) for p in text.split(";") if p.strip()]
    return np.array(pts, float)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Track an ellipse across CSV frames.")
    p.add_argument("frames", nargs="+", help="CSV frames, in order.")
    p.add_argument("--init", required=True, help='Initial points "i,j;i,j;..."')
    p.add_argument("--circle", action="store_true")
    p.add_argument("--threshold", type=float, default=0.2)
    p.add_argument("--step", type=float, default=5.0, help="Sample step (degrees).")
    p.add_argument("--range", type=int, default=8, dest="search_range")
    p.add_argument("--out", default="tracking.csv")
    p.add_argument("--points-out", default="sample_points.csv")
    return p.parse_args(argv)


# --- Main routine ---------------------------------------------------------

def main(argv=None):
    args = parse_args(argv if argv is not None else sys.argv[1:])
    cfg = TrackerConfig(circle=args.circle, threshold_robust=args.threshold,
                        sample_step=args.step, search_range=args.search_range)
    tracker = EllipseTracker(cfg)

    first = load_frame(args.frames[0])
    try:
        tracker.init_tracking(first, parse_points(args.init))
    except ElliTrackError as e:
        print(f"[error] initialization failed: {e}")
        return 1
    print(f"[info] initialized with {len(tracker.points)} sample points")

    records = []
    for k, path in enumerate(args.frames):
        frame = load_frame(path)
        try:
            tracker.track(frame)
            status = "ok"
        except TrackingLostError as e:
            print(f"[error] frame {k}: {e}")
            records.append(track_record(k, tracker, "lost"))
            break
        except ElliTrackError as e:
            print(f"[warn] frame {k}: fit failed, keeping previous model ({e})")
            status = "failed"
        records.append(track_record(k, tracker, status))
        g = tracker.geometry
        print(f"[frame {k}] center=({g.center[0]:.2f},{g.center[1]:.2f}), a={g.a:.2f}, "
              f"b={g.b:.2f}, e={np.degrees(g.e):.2f}°, arc={np.degrees(tracker.arc.extent):.0f}°")

    save_tracking_csv(args.out, records)
    save_points_csv(args.points_out, tracker.points.positions())
    print(f"[ok] exported '{args.out}' and '{args.points_out}'")
    return 0 if records and records[-1]["status"] != "lost" else 2


# --- Entrypoint -----------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
