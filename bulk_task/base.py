from __future__ import annotations
import logging
from typing import Optional

from .environment import Environment, get_environment, return_empty_list, return_false

logger = logging.getLogger(__name__)


class BaseCommand:
    """
    Base class for bulk CLI commands: keeps the load down while importing.
    Override the constructor if you do not want the limits maxed out.
    """
    name: str = "base"

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or get_environment()
        # only the minimum of extra actions fire while this is set
        self.env.define("IMPORTING", True)
        # no revisions: cuts memory use per write significantly
        self.env.define("POST_REVISIONS", 0)

    # ---- diagnostics ----
    def line(self, msg: str) -> None:
        print(msg)

    def error(self, msg: str) -> None:
        logger.error(msg)

    # ---- side effects ----
    def disable_hooks(self) -> None:
        """Turn off background indexers for the run; run them from their own commands afterwards."""
        hooks = self.env.hooks
        hooks.add_filter("search_index_process_enabled", return_false)
        hooks.add_filter("facet_indexer_enabled", return_false)
        hooks.add_filter("indexable_sites", return_empty_list)
        hooks.add_filter("background_image_regeneration", return_false)

    def start_bulk_operation(self) -> None:
        """Stop term/comment recounting after every write. Recount afterwards (end_bulk_operation)."""
        self.env.set_defer_term_counting(True)
        self.env.set_defer_comment_counting(True)

    def end_bulk_operation(self) -> None:
        self.env.set_defer_term_counting(False)
        self.env.set_defer_comment_counting(False)
        self.free_up_memory()

    # ---- memory ----
    def free_up_memory(self) -> None:
        """Reset the values that grow for every query in a long-running command."""
        self.clear_db_query_log()
        self.clear_actions_log()
        self.clear_local_object_cache()
        self.clear_get_term_metadata()

    def clear_db_query_log(self) -> None:
        self.env.query_log.clear()

    def clear_actions_log(self) -> None:
        self.env.hooks.actions.clear()

    def clear_local_object_cache(self) -> None:
        # local cache only; an external cache backend is left alone
        self.env.object_cache.flush_runtime()

    def clear_get_term_metadata(self) -> None:
        # the lazyloader queue never shrinks on its own
        self.env.hooks.remove_filter("get_term_metadata", self.env.lazyloader.lazyload_term_meta)
