from __future__ import annotations

import logging
import math

import pytest

from bulk_task import BaseCommand, BulkTask, QuerySpec, RunStats, iterate
from bulk_task.loop import IDENTIFIER_SCOPED_ADVISORY


@pytest.mark.parametrize("n,per_page", [(1, 1), (5, 2), (10, 5), (7, 500), (1001, 100)])
def test_callback_runs_once_per_record(make_provider, n, per_page) -> None:
    provider = make_provider(range(n))
    seen = []

    stats = iterate(provider, {"posts_per_page": per_page}, lambda pid, spec: seen.append(pid), out=lambda _: None)

    assert seen == list(range(n))
    assert stats.total == n
    assert stats.pages == math.ceil(n / per_page)


def test_offsets_advance_by_page_size(make_provider) -> None:
    provider = make_provider(range(5))
    iterate(provider, {"posts_per_page": 2}, lambda pid, spec: None, out=lambda _: None)
    assert provider.offsets == [0, 2, 4, 6]


def test_empty_set_reports_zero(make_provider, capsys) -> None:
    provider = make_provider([])
    calls = []

    stats = iterate(provider, {}, lambda pid, spec: calls.append(pid))

    assert calls == []
    assert stats == RunStats(total=0, pages=0, identifier_scoped=False)
    assert "0 items processed." in capsys.readouterr().out


def test_callback_gets_forced_spec(make_provider) -> None:
    provider = make_provider(range(3))
    specs = []
    iterate(provider, {"cache_results": "true", "offset": "50"}, lambda pid, spec: specs.append(spec), out=lambda _: None)
    assert all(isinstance(s, QuerySpec) for s in specs)
    assert specs[0].cache_results is False
    assert specs[0].offset == 0
    assert specs[0].no_found_rows is True


def test_non_callable_callback_does_nothing(make_provider, caplog) -> None:
    provider = make_provider(range(10))
    with caplog.at_level(logging.ERROR, logger="bulk_task.loop"):
        stats = iterate(provider, {}, "not a function")
    assert stats.total == 0
    assert provider.calls == []
    assert "callback not callable" in caplog.text


def test_identifier_scoped_query_runs_one_page(make_provider) -> None:
    provider = make_provider(range(20))
    lines = []

    stats = iterate(provider, {"post__in": "1,2,3,4,5", "posts_per_page": "2"},
                    lambda pid, spec: None, out=lines.append)

    assert len(provider.calls) == 1
    assert stats.total == 5
    assert stats.identifier_scoped
    assert IDENTIFIER_SCOPED_ADVISORY in lines
    assert lines[-1] == "5 items processed."


def test_single_id_query_runs_one_page(make_provider) -> None:
    provider = make_provider(range(20))
    lines = []
    stats = iterate(provider, {"p": "7"}, lambda pid, spec: None, out=lines.append)
    assert len(provider.calls) == 1
    assert stats.total == 1
    assert IDENTIFIER_SCOPED_ADVISORY in lines


def test_callback_errors_propagate(make_provider) -> None:
    provider = make_provider(range(10))
    reclaimed = []

    def boom(pid, spec):
        if pid == 3:
            raise RuntimeError("bad record")

    with pytest.raises(RuntimeError):
        iterate(provider, {"posts_per_page": 2}, boom, free_up_memory=lambda: reclaimed.append(1), out=lambda _: None)
    # pages 0-1 finished, page 2-3 failed midway
    assert len(reclaimed) == 1


def test_free_up_memory_runs_after_every_page(make_provider) -> None:
    provider = make_provider(range(5))
    reclaimed = []
    iterate(provider, {"posts_per_page": 2}, lambda pid, spec: None,
            free_up_memory=lambda: reclaimed.append(1), out=lambda _: None)
    assert len(reclaimed) == len(provider.calls) == 4


def test_on_page_reports(make_provider) -> None:
    provider = make_provider(range(3))
    reports = []
    iterate(provider, {"posts_per_page": 2}, lambda pid, spec: None, on_page=reports.append, out=lambda _: None)
    assert [(r.offset, r.count) for r in reports] == [(0, 2), (2, 1), (4, 0)]
    assert all(r.elapsed_ms >= 0 for r in reports)


def test_rerun_is_idempotent(make_provider) -> None:
    provider = make_provider(range(42))
    first = iterate(provider, {"posts_per_page": 10}, lambda pid, spec: None, out=lambda _: None)
    second = iterate(provider, {"posts_per_page": 10}, lambda pid, spec: None, out=lambda _: None)
    assert first == second


def test_callback_args_are_not_passed(make_provider) -> None:
    provider = make_provider(range(2))
    got = []
    iterate(provider, {}, lambda *a: got.append(a), callback_args=("extra",), out=lambda _: None)
    assert [len(a) for a in got] == [2, 2]


class _Command(BaseCommand, BulkTask):
    def __init__(self, provider, env):
        super().__init__(env=env)
        self.provider = provider


def test_bulk_task_frees_memory_between_pages(make_provider, env, capsys) -> None:
    provider = make_provider(range(4))
    cmd = _Command(provider, env)

    def cb(pid, spec):
        env.object_cache.set(pid, {"id": pid}, group="posts")
        env.hooks.do_action("save_post")
        # at most one page of cached posts at a time
        assert len(env.object_cache) <= 2

    stats = cmd.loop_posts({"posts_per_page": 2}, cb)

    assert stats.total == 4
    assert len(env.object_cache) == 0
    assert env.hooks.actions == {}
    assert "4 items processed." in capsys.readouterr().out


def test_bulk_task_logs_pages(make_provider, env) -> None:
    class Log:
        def __init__(self):
            self.reports = []

        def record(self, report):
            self.reports.append(report)

    cmd = _Command(make_provider(range(3)), env)
    cmd.batch_log = Log()
    cmd.loop_posts({"posts_per_page": 5}, lambda pid, spec: None)
    assert [r.count for r in cmd.batch_log.reports] == [3, 0]


def test_unlimited_page_size_falls_back_to_batches(make_provider, caplog) -> None:
    provider = make_provider(range(3))
    stats = iterate(provider, {"posts_per_page": "-1"}, lambda pid, spec: None, out=lambda _: None)
    assert stats.total == 3
    assert provider.calls[0].posts_per_page == 500
    assert "would fetch everything" in caplog.text


def test_callback_changes_do_not_leak_into_later_pages(make_provider) -> None:
    provider = make_provider(range(10))

    def cb(pid, spec):
        spec.post_type.append("page")
        spec.extra.setdefault("seen", []).append(pid)

    stats = iterate(provider, {"posts_per_page": 2, "seen": []}, cb, out=lambda _: None)

    assert stats.total == 10
    assert provider.calls[-1].post_type == ["post"]
    assert provider.calls[-1].extra == {"seen": []}
