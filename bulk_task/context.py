from __future__ import annotations
import copy
from dataclasses import dataclass, field, fields, replace, asdict
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .normalize import normalize_arguments, split_csv


@dataclass(frozen=True)
class TaxQuery:
    """Records classified under `terms` within `taxonomy`, matched by 'id' or 'slug'."""
    taxonomy: str
    terms: List[Any] = field(default_factory=list)
    field: str = "slug"           # 'id' | 'slug'

    @classmethod
    def from_mapping(cls, m: Mapping[str, Any]) -> "TaxQuery":
        return cls(taxonomy=m["taxonomy"], field=m.get("field", "slug"), terms=list(m.get("terms", [])))


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _as_bool(v: Any) -> bool:
    if isinstance(v, str):
        s = v.strip().lower()
        if s in _TRUE: return True
        if s in _FALSE: return False
        raise ValueError(f"not a boolean: {v!r}")
    return bool(v)


def _as_list(v: Any) -> List[Any]:
    if isinstance(v, str): return split_csv(v)
    if isinstance(v, (list, tuple, set)): return list(v)
    return [v]


def _copy_list(v: Optional[List[Any]]) -> Optional[List[Any]]:
    return None if v is None else list(v)


def _as_id(v: Any) -> Any:
    if isinstance(v, str) and v.strip().isdecimal():
        return int(v)
    return v


@dataclass
class QuerySpec:
    """
    Query arguments for one bulk run. Named fields cover what the iterator and
    MongoQueryProvider understand; anything else lands in `extra`.
    """
    post_type: List[str] = field(default_factory=lambda: ["post"])
    post_status: List[str] = field(default_factory=lambda: ["publish"])
    posts_per_page: int = config.PAGE_SIZE
    paged: int = 0
    fields: str = "ids"                     # 'ids' | 'all'
    update_post_term_cache: bool = False    # term cache is useless for id-only walks
    update_post_meta_cache: bool = False

    # query-layer flags (forced by with_batch_overrides)
    ignore_sticky_posts: bool = False
    cache_results: bool = True
    suppress_filters: bool = False
    no_found_rows: bool = False
    nopaging: bool = False
    offset: int = 0

    # identifier scope
    p: Optional[Any] = None
    post__in: Optional[List[Any]] = None
    post__not_in: Optional[List[Any]] = None

    tax_query: Optional[TaxQuery] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: Optional[Mapping[str, Any]] = None) -> "QuerySpec":
        """Build from a CLI-shaped mapping: CSV expansion, taxonomy translation, then type coercion."""
        args = normalize_arguments(args or {})
        known = {f.name for f in fields(cls)} - {"extra"}
        kw: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(args.pop("extra", None) or {})

        for key, value in args.items():
            if key not in known:
                extra[key] = value
                continue
            if key in ("post_type", "post_status", "post__in", "post__not_in"):
                value = _as_list(value)
                if not value and key in ("post__in", "post__not_in"):
                    # --post__in= (empty) is no id scope at all
                    continue
            elif key in ("posts_per_page", "paged", "offset"):
                value = int(value)
            elif key in ("update_post_term_cache", "update_post_meta_cache", "ignore_sticky_posts",
                         "cache_results", "suppress_filters", "no_found_rows", "nopaging"):
                value = _as_bool(value)
            elif key == "p":
                value = _as_id(value)
            elif key == "tax_query" and isinstance(value, Mapping):
                value = TaxQuery.from_mapping(value)
            kw[key] = value

        return cls(extra=extra, **kw)

    @property
    def is_identifier_scoped(self) -> bool:
        """Single id or explicit include/exclude lists: the store returns every match in one response."""
        return self.p is not None or self.post__in is not None or self.post__not_in is not None

    def with_batch_overrides(self, offset: int) -> "QuerySpec":
        """Copy with the fixed batch flags and the cursor applied; caller input for these is ignored."""
        return replace(
            self,
            ignore_sticky_posts=True,   # otherwise sticky records get prepended to every page
            cache_results=False,
            suppress_filters=True,      # no pre_get_posts filters from other subsystems
            no_found_rows=True,         # skip the count query, the loop never paginates by total
            nopaging=False,             # unlimited mode breaks offset batching
            offset=offset,
            post_type=list(self.post_type),
            post_status=list(self.post_status),
            post__in=_copy_list(self.post__in),
            post__not_in=_copy_list(self.post__not_in),
            tax_query=None if self.tax_query is None else replace(self.tax_query, terms=list(self.tax_query.terms)),
            extra=copy.deepcopy(self.extra),
        )

    def to_args(self) -> Dict[str, Any]:
        """Flat mapping in the CLI shape (None values and empty extras dropped)."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            v = getattr(self, f.name)
            if v is None:
                continue
            out[f.name] = asdict(v) if isinstance(v, TaxQuery) else v
        out.update(self.extra)
        return out
