from __future__ import annotations
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from . import config
from .context import QuerySpec
from .provider import QueryProvider

logger = logging.getLogger(__name__)

IDENTIFIER_SCOPED_ADVISORY = (
    "Using p, post__in or post__not_in queries ALL posts at once: they are not "
    'batched by "posts_per_page", so this loop gives no memory benefit.'
)


@dataclass
class RunStats:
    total: int = 0
    pages: int = 0
    identifier_scoped: bool = False


@dataclass
class PageReport:
    offset: int
    count: int
    elapsed_ms: float


def iterate(provider: QueryProvider,
            query_spec: Union[QuerySpec, Mapping[str, Any], None],
            callback: Callable[[Any, QuerySpec], Any],
            callback_args: Sequence[Any] = (),
            free_up_memory: Optional[Callable[[], None]] = None,
            on_page: Optional[Callable[[PageReport], None]] = None,
            out: Callable[[str], None] = print) -> RunStats:
    """
    Walk every record matching `query_spec` one page at a time and call
    `callback(record_id, spec)` for each. Never asks for an unlimited result
    set: the cursor moves by `posts_per_page` until a page comes back empty.

    `callback_args` is accepted for call sites that register extra static
    arguments; it is not passed on. Exceptions from the callback propagate.
    `free_up_memory` runs after every page.
    """
    if not callable(callback):
        logger.error("Loop: callback not callable: %r", callback)
        return RunStats()

    base = query_spec if isinstance(query_spec, QuerySpec) else QuerySpec.from_args(query_spec)
    if base.posts_per_page < 1:
        logger.warning("posts_per_page=%s would fetch everything at once, using %s", base.posts_per_page, config.PAGE_SIZE)
        base = replace(base, posts_per_page=config.PAGE_SIZE)
    stats = RunStats(identifier_scoped=base.is_identifier_scoped)
    offset = 0

    while True:
        spec = base.with_batch_overrides(offset)
        t0 = time.perf_counter()
        count = 0

        for record_id in provider.query(spec):
            callback(record_id, spec)
            count += 1
            stats.total += 1
        if count:
            stats.pages += 1

        if on_page is not None:
            on_page(PageReport(offset, count, (time.perf_counter() - t0) * 1000.0))

        # the store drops offset/limit for id-scoped queries: one page is everything
        if spec.is_identifier_scoped:
            out(IDENTIFIER_SCOPED_ADVISORY)
            count = 0

        offset += spec.posts_per_page

        if free_up_memory is not None:
            free_up_memory()

        if count <= 0:
            break

    out(f"{stats.total} items processed.")
    return stats


class BulkTask:
    """
    Mixin for commands with a `provider`: loop through all records without
    doing a posts_per_page=-1 query.
    """
    provider: QueryProvider
    batch_log: Any = None

    def loop_posts(self, query_args: Union[QuerySpec, Mapping[str, Any], None] = None,
                   callback: Any = None, callback_args: Sequence[Any] = ()) -> RunStats:
        reclaim = getattr(self, "free_up_memory", None)
        out = getattr(self, "line", print)
        on_page = self.batch_log.record if self.batch_log is not None else None
        return iterate(self.provider, query_args, callback, callback_args,
                       free_up_memory=reclaim if callable(reclaim) else None,
                       on_page=on_page, out=out)
