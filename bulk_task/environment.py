from __future__ import annotations
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from . import config

logger = logging.getLogger(__name__)


def return_false(*_args) -> bool:
    return False


def return_empty_list(*_args) -> list:
    return []


class Hooks:
    """Filter/action registry shared by commands, providers and indexers."""

    def __init__(self):
        self._filters: Dict[str, List[Tuple[int, Callable]]] = defaultdict(list)
        self.actions: Dict[str, int] = {}

    def add_filter(self, name: str, fn: Callable, priority: int = 10) -> None:
        self._filters[name].append((priority, fn))
        self._filters[name].sort(key=lambda x: x[0])

    def remove_filter(self, name: str, fn: Callable) -> bool:
        before = len(self._filters.get(name, ()))
        if not before:
            return False
        self._filters[name] = [(p, f) for p, f in self._filters[name] if f != fn]
        return len(self._filters[name]) < before

    def has_filter(self, name: str, fn: Optional[Callable] = None) -> bool:
        registered = self._filters.get(name, ())
        if fn is None:
            return bool(registered)
        return any(f == fn for _, f in registered)

    def apply_filters(self, name: str, value: Any, *args) -> Any:
        for _, fn in list(self._filters.get(name, ())):
            value = fn(value, *args)
        return value

    def do_action(self, name: str) -> None:
        self.actions[name] = self.actions.get(name, 0) + 1


class ObjectCache:
    """Local (per-process) group/key cache. Grows without bound in long runs."""

    def __init__(self):
        self.cache: Dict[str, Dict[Any, Any]] = defaultdict(dict)
        self.hits = 0
        self.misses = 0

    def get(self, key: Any, group: str = "default") -> Any:
        grp = self.cache.get(group)
        if grp is not None and key in grp:
            self.hits += 1
            return grp[key]
        self.misses += 1
        return None

    def set(self, key: Any, value: Any, group: str = "default") -> None:
        self.cache[group][key] = value

    def __len__(self) -> int:
        return sum(len(g) for g in self.cache.values())

    def flush_runtime(self) -> None:
        self.cache = defaultdict(dict)
        self.hits = self.misses = 0


class TermMetaLazyloader:
    """Queues term ids whose meta should be loaded on first access; the queue only grows."""

    def __init__(self):
        self.pending: Set[Any] = set()

    def lazyload_term_meta(self, value: Any, term_id: Any = None) -> Any:
        if term_id is not None:
            self.pending.add(term_id)
        return value


class Environment:
    """
    Host runtime state a bulk command runs against: constants, hooks, the
    object cache, the query log and deferred counters.
    """

    def __init__(self, save_queries: bool = config.SAVE_QUERIES,
                 term_counter: Optional[Callable[[str, List[Any]], None]] = None):
        self.constants: Dict[str, Any] = {}
        self.hooks = Hooks()
        self.object_cache = ObjectCache()
        self.query_log: List[Dict[str, Any]] = []
        self.save_queries = save_queries

        self.term_counter = term_counter
        self.defer_term_counting = False
        self.defer_comment_counting = False
        self.pending_term_counts: Dict[str, Set[Any]] = defaultdict(set)

        self.lazyloader = TermMetaLazyloader()
        self.hooks.add_filter("get_term_metadata", self.lazyloader.lazyload_term_meta)

    # ---- constants ----
    def define(self, name: str, value: Any) -> bool:
        """Set a constant unless it is already defined; returns whether it was set."""
        if name in self.constants:
            return False
        self.constants[name] = value
        return True

    def defined(self, name: str) -> bool:
        return name in self.constants

    # ---- counting ----
    def set_defer_term_counting(self, defer: bool) -> None:
        self.defer_term_counting = defer
        if not defer:
            self.flush_term_counts()

    def set_defer_comment_counting(self, defer: bool) -> None:
        self.defer_comment_counting = defer

    def update_term_count(self, taxonomy: str, term_ids: List[Any]) -> None:
        if self.defer_term_counting:
            self.pending_term_counts[taxonomy].update(term_ids)
            return
        if self.term_counter is not None:
            self.term_counter(taxonomy, list(term_ids))

    def flush_term_counts(self) -> None:
        pending, self.pending_term_counts = self.pending_term_counts, defaultdict(set)
        if self.term_counter is None:
            if pending:
                logger.debug("no term counter set, dropping %d deferred taxonomies", len(pending))
            return
        for taxonomy, ids in pending.items():
            self.term_counter(taxonomy, sorted(ids, key=str))

    def log_query(self, query: Dict[str, Any]) -> None:
        if self.save_queries:
            self.query_log.append(query)


_default: Optional[Environment] = None


def get_environment() -> Environment:
    global _default
    if _default is None:
        _default = Environment()
    return _default
