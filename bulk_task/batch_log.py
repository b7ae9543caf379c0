from __future__ import annotations
import time
import uuid
from typing import Any, Dict, Optional

from pymongo.collection import Collection

from .loop import PageReport


class MongoBatchLog:
    """One document per page of a bulk run, for bulk_report.py."""

    def __init__(self, coll: Collection, command: str, run_id: Optional[str] = None):
        self.coll = coll
        self.command = command
        self.run_id = run_id or str(uuid.uuid4())[:8]
        self.page_no = 0

    def record(self, report: PageReport) -> None:
        self.coll.insert_one({
            "run_id": self.run_id, "command": self.command, "page": self.page_no,
            "offset": report.offset, "count": report.count,
            "elapsed_ms": report.elapsed_ms, "ts": time.time(),
        })
        self.page_no += 1

    def summary(self) -> Dict[str, Any]:
        agg = list(self.coll.aggregate([
            {"$match": {"run_id": self.run_id}},
            {"$group": {
                "_id": None,
                "pages": {"$sum": {"$cond": [{"$gt": ["$count", 0]}, 1, 0]}},
                "records": {"$sum": {"$ifNull": ["$count", 0]}},
                "elapsed_ms": {"$sum": {"$ifNull": ["$elapsed_ms", 0]}},
            }},
        ]))
        agg0 = agg[0] if agg else {}
        return {
            "run_id": self.run_id, "command": self.command,
            "pages": agg0.get("pages", 0), "records": agg0.get("records", 0),
            "elapsed_ms": float(agg0.get("elapsed_ms", 0.0)),
        }
