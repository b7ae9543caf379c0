# -*- coding: utf-8 -*-
"""
bulk_touch.py
Walk posts in bounded pages and stamp each one (or just count them).
Usage:
  python bulk_touch.py loop  --post_type=post,page --posts_per_page=200
  python bulk_touch.py loop  --taxonomy=category --terms=news,sport
  python bulk_touch.py loop  --post__in=1337,187
  python bulk_touch.py count --post_status=draft
Any --key=value flag not listed below is passed through as a query argument.
"""
import os, sys, time, logging, argparse
from typing import Any, Dict, List

from pymongo import MongoClient

# --- run from examples/ as well ---
ROOT = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(ROOT)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from bulk_task import (
    BaseCommand, BulkTask, Environment, MongoBatchLog, MongoQueryProvider, QuerySpec,
)
from bulk_task import config

logger = logging.getLogger("bulk_touch")


def parse_query_flags(extra: List[str]) -> Dict[str, Any]:
    """['--post__in=1,2', '--post_type', 'page', '--nopaging'] -> {'post__in': '1,2', 'post_type': 'page', 'nopaging': 'true'}"""
    out: Dict[str, Any] = {}
    i = 0
    while i < len(extra):
        tok = extra[i]
        if not tok.startswith("--"):
            raise ValueError(f"unexpected argument: {tok}")
        key = tok[2:]
        if "=" in key:
            key, value = key.split("=", 1)
        elif i + 1 < len(extra) and not extra[i + 1].startswith("--"):
            i += 1
            value = extra[i]
        else:
            value = "true"
        out[key if "__" in key else key.replace("-", "_")] = value
        i += 1
    return out


class TouchCommand(BaseCommand, BulkTask):
    """Stamps `touched_at` on every matching post."""
    name = "touch"

    def __init__(self, provider: MongoQueryProvider, batch_log=None, env=None):
        super().__init__(env=env)
        self.provider = provider
        self.batch_log = batch_log
        self.stamp = time.time()

    def touch_post(self, post_id, spec: QuerySpec):
        doc = self.provider.coll.find_one_and_update(
            {"_id": post_id}, {"$set": {"touched_at": self.stamp}}, projection={"terms": 1})
        # a re-saved post recounts its terms (deferred until end_bulk_operation)
        by_tax: Dict[str, List[Any]] = {}
        for t in (doc or {}).get("terms", []):
            by_tax.setdefault(t["taxonomy"], []).append(t["term_id"])
        for taxonomy, ids in by_tax.items():
            self.env.update_term_count(taxonomy, ids)

    def run(self, query_args: Dict[str, Any]):
        self.disable_hooks()
        self.start_bulk_operation()
        try:
            return self.loop_posts(query_args, self.touch_post)
        finally:
            self.end_bulk_operation()


class CountCommand(BaseCommand, BulkTask):
    name = "count"

    def __init__(self, provider: MongoQueryProvider, batch_log=None, env=None):
        super().__init__(env=env)
        self.provider = provider
        self.batch_log = batch_log

    def run(self, query_args: Dict[str, Any]):
        return self.loop_posts(query_args, lambda post_id, spec: None)


COMMANDS = {"loop": TouchCommand, "count": CountCommand}


def main(argv=None):
    ap = argparse.ArgumentParser("Bulk tasks over the posts collection")
    ap.add_argument("--log-level", default="WARNING")
    sub = ap.add_subparsers(dest="cmd", required=True)
    for name in COMMANDS:
        sp = sub.add_parser(name)
        sp.add_argument("--no-batch-log", action="store_true", help="do not write per-page stats")

    args, extra = ap.parse_known_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    query_args = parse_query_flags(extra)

    cli = MongoClient(config.MONGO_URI)
    db = cli[config.DB_NAME]
    env = Environment()
    provider = MongoQueryProvider(db[config.POSTS_COLL], env=env, terms_coll=db[config.TERMS_COLL])
    env.term_counter = provider.recount_terms

    batch_log = None
    if not args.no_batch_log:
        batch_log = MongoBatchLog(db[config.BATCH_LOG_COLL], command=args.cmd)

    cmd = COMMANDS[args.cmd](provider, batch_log=batch_log, env=env)
    stats = cmd.run(query_args)
    if batch_log is not None:
        s = batch_log.summary()
        print(f"[{args.cmd} run={s['run_id']}] pages={s['pages']} records={s['records']} elapsed={s['elapsed_ms']:.1f}ms")
    return stats


if __name__ == "__main__":
    main()
