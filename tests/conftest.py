from __future__ import annotations
import os
import sys
from typing import Any, List

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bulk_task import Environment, QueryProvider, QuerySpec


class ListProvider(QueryProvider):
    """Pages over a fixed list of ids; id-scoped specs get every match at once."""
    name = "list"

    def __init__(self, ids: List[Any]):
        self.ids = list(ids)
        self.calls: List[QuerySpec] = []

    @property
    def offsets(self) -> List[int]:
        return [s.offset for s in self.calls]

    def query(self, spec: QuerySpec) -> List[Any]:
        self.calls.append(spec)
        if spec.is_identifier_scoped:
            ids = self.ids
            if spec.p is not None:
                ids = [i for i in ids if i == spec.p]
            if spec.post__in is not None:
                ids = [i for i in ids if i in spec.post__in]
            if spec.post__not_in is not None:
                ids = [i for i in ids if i not in spec.post__not_in]
            return ids
        return self.ids[spec.offset:spec.offset + spec.posts_per_page]


@pytest.fixture
def env() -> Environment:
    return Environment(save_queries=True)


@pytest.fixture
def make_provider():
    return ListProvider
