from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, UpdateOne
from pymongo.collection import Collection

from .context import QuerySpec
from .environment import Environment, get_environment

logger = logging.getLogger(__name__)


class QueryProvider:
    """Returns exactly one page of record ids (or documents when fields='all') for a spec."""
    name: str = "base"

    def query(self, spec: QuerySpec) -> List[Any]:
        raise NotImplementedError


def _in_clause(values: List[Any], op: str = "$in") -> Dict[str, Any]:
    return {op: list(values)}


def build_filter(spec: QuerySpec) -> Dict[str, Any]:
    """
    QuerySpec -> Mongo filter. Records look like
    {_id, post_type, post_status, sticky?, terms: [{taxonomy, term_id, slug}], ...}
    """
    q: Dict[str, Any] = {}
    if spec.post_type and "any" not in spec.post_type:
        q["post_type"] = _in_clause(spec.post_type)
    if spec.post_status and "any" not in spec.post_status:
        q["post_status"] = _in_clause(spec.post_status)

    id_clause: Dict[str, Any] = {}
    if spec.post__in is not None:
        id_clause["$in"] = list(spec.post__in)
    if spec.post__not_in is not None:
        id_clause["$nin"] = list(spec.post__not_in)
    if spec.p is not None:
        q["_id"] = spec.p if not id_clause else {**id_clause, "$eq": spec.p}
    elif id_clause:
        q["_id"] = id_clause

    if spec.tax_query is not None:
        tq = spec.tax_query
        key = "term_id" if tq.field == "id" else "slug"
        q["terms"] = {"$elemMatch": {"taxonomy": tq.taxonomy, key: _in_clause(tq.terms)}}

    for key, value in spec.extra.items():
        if key.endswith("__not_in"):
            q[key[:-len("__not_in")]] = _in_clause(value if isinstance(value, list) else [value], "$nin")
        elif key.endswith("__in"):
            q[key[:-len("__in")]] = _in_clause(value if isinstance(value, list) else [value])
        else:
            q[key] = value
    return q


class MongoQueryProvider(QueryProvider):
    """
    pymongo-backed provider. Pagination is skip/limit over _id order; it is
    ignored for identifier-scoped specs (every match comes back at once).
    """
    name = "mongo"

    def __init__(self, coll: Collection, env: Optional[Environment] = None,
                 terms_coll: Optional[Collection] = None):
        self.coll = coll
        self.env = env or get_environment()
        self.terms_coll = terms_coll
        self.found_posts: Optional[int] = None

    def _paginates(self, spec: QuerySpec) -> bool:
        return not (spec.is_identifier_scoped or spec.nopaging or spec.posts_per_page < 0)

    def query(self, spec: QuerySpec) -> List[Any]:
        hooks = self.env.hooks
        if not spec.suppress_filters:
            spec = hooks.apply_filters("pre_get_posts", spec)
        hooks.do_action("posts_selection")

        q = build_filter(spec)
        projection = {"_id": 1} if spec.fields == "ids" else None
        cache_key = None
        if spec.cache_results:
            cache_key = repr((q, spec.fields, spec.offset, spec.posts_per_page, spec.ignore_sticky_posts))
            hit = self.env.object_cache.get(cache_key, group="post_queries")
            if hit is not None:
                return list(hit)

        sort = [("_id", ASCENDING)]
        if not spec.ignore_sticky_posts:
            sort.insert(0, ("sticky", DESCENDING))

        cur = self.coll.find(q, projection).sort(sort)
        if self._paginates(spec):
            if spec.offset:
                cur = cur.skip(spec.offset)
            cur = cur.limit(spec.posts_per_page)

        self.env.log_query({"filter": q, "offset": spec.offset, "limit": spec.posts_per_page})
        docs = list(cur)
        result = [d["_id"] for d in docs] if spec.fields == "ids" else docs

        if not spec.no_found_rows:
            self.found_posts = self.coll.count_documents(q)
        if cache_key is not None:
            self.env.object_cache.set(cache_key, list(result), group="post_queries")
        if spec.update_post_term_cache or spec.update_post_meta_cache:
            self._prime_caches(spec, [d["_id"] for d in docs])

        logger.debug("query offset=%s limit=%s -> %d", spec.offset, spec.posts_per_page, len(result))
        return result

    def _prime_caches(self, spec: QuerySpec, ids: List[Any]) -> None:
        if not ids:
            return
        cache = self.env.object_cache
        for doc in self.coll.find({"_id": {"$in": ids}}, {"_id": 1, "terms": 1, "meta": 1}):
            if spec.update_post_term_cache:
                cache.set(doc["_id"], doc.get("terms", []), group="post_terms")
            if spec.update_post_meta_cache:
                cache.set(doc["_id"], doc.get("meta", {}), group="post_meta")

    def recount_terms(self, taxonomy: str, term_ids: List[Any]) -> Dict[Any, int]:
        """Recount how many records use each term and store it on the terms collection."""
        counts = {}
        ops = []
        for term_id in term_ids:
            n = self.coll.count_documents({"terms": {"$elemMatch": {"taxonomy": taxonomy, "term_id": term_id}}})
            counts[term_id] = n
            ops.append(UpdateOne({"_id": term_id, "taxonomy": taxonomy}, {"$set": {"count": n}}, upsert=True))
        if ops and self.terms_coll is not None:
            self.terms_coll.bulk_write(ops, ordered=False)
        return counts
