# -*- coding: utf-8 -*-
"""
bulk_report.py
Summaries and charts from the per-page batch log written by bulk_touch.py.
Usage:
  python bulk_report.py                       # every run
  python bulk_report.py --run_id 3f2a9c1e --outdir figs_3f2a9c1e
Requires: pymongo pandas numpy matplotlib
"""
import os, sys, argparse
import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from pymongo import MongoClient

ROOT = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(ROOT)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from bulk_task import config
from bulk_task.report import pages_frame, summarize_runs


def ensure_outdir(d):
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def savefig(fig, outdir, name):
    path = os.path.join(outdir, name)
    fig.tight_layout()
    fig.savefig(path, dpi=160)
    plt.close(fig)
    print("Saved:", path)


def main():
    ap = argparse.ArgumentParser("Bulk run report")
    ap.add_argument("--run_id", default=None)
    ap.add_argument("--outdir", default="figs_bulk")
    ap.add_argument("--csv", default=None, help="also write the page table to this CSV")
    args = ap.parse_args()

    q = {"run_id": args.run_id} if args.run_id else {}
    docs = list(MongoClient(config.MONGO_URI)[config.DB_NAME][config.BATCH_LOG_COLL].find(q, {"_id": 0}))
    df = pages_frame(docs)
    if df.empty:
        print("No batch log entries", args.run_id or ""); return

    runs = summarize_runs(df)
    print(runs.to_string(index=False))
    ensure_outdir(args.outdir)

    for run_id, sub in df.sort_values(["run_id", "page"]).groupby("run_id"):
        xs = np.arange(len(sub))
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
        ax1.bar(xs, sub["count"]); ax1.set_title(f"Records per page - {run_id}")
        ax2.plot(xs, sub["elapsed_ms"], marker="o"); ax2.set_title("Elapsed per page (ms)")
        ax2.set_xlabel("page")
        savefig(fig, args.outdir, f"pages_{run_id}.png")

    if args.csv:
        df.to_csv(args.csv, index=False)
        print("Saved CSV:", args.csv)


if __name__ == "__main__":
    main()
