"""Tests for TaskStore and the task tools exposed to the model."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

from advisor_engine.engine.models import ToolCallRequest
from advisor_engine.tools.tasks import TaskStatus, TaskStore


def _call(name: str, **arguments) -> ToolCallRequest:
    return ToolCallRequest(id=f"tc-{name}", name=name, arguments=arguments)


class TestTaskStore:
    def test_ids_are_sequential_from_one(self, task_store):
        first = task_store.create("a", "", "alice")
        second = task_store.create("b", "", "bob")
        assert (first.id, second.id) == (1, 2)
        assert first.status is TaskStatus.PENDING

    def test_concurrent_creates_get_distinct_ids(self):
        store = TaskStore()
        with ThreadPoolExecutor(max_workers=16) as pool:
            tasks = list(pool.map(lambda i: store.create(f"task {i}", "", "team"), range(100)))

        ids = sorted(t.id for t in tasks)
        assert ids == list(range(1, 101))
        assert len(store.all()) == 100

    def test_concurrent_status_and_assign_both_kept(self):
        store = TaskStore()
        ids = [store.create(f"task {i}", "", "team").id for i in range(50)]

        def work(job):
            kind, task_id = job
            if kind == "status":
                return store.update_status(task_id, TaskStatus.IN_PROGRESS)
            return store.assign(task_id, f"owner-{task_id}")

        jobs = [(kind, task_id) for task_id in ids for kind in ("status", "assign")]
        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(work, jobs))

        for task_id in ids:
            task = store.get(task_id)
            assert task.status is TaskStatus.IN_PROGRESS
            assert task.assignee == f"owner-{task_id}"

    def test_updates_replace_whole_task(self, task_store):
        original = task_store.create("deploy", "ship it", "alice")
        updated = task_store.update_status(original.id, TaskStatus.IN_PROGRESS)

        assert updated.status is TaskStatus.IN_PROGRESS
        assert original.status is TaskStatus.PENDING
        assert task_store.get(original.id) == updated

    def test_unknown_id_returns_none(self, task_store):
        assert task_store.update_status(42, TaskStatus.COMPLETED) is None
        assert task_store.assign(42, "bob") is None
        assert task_store.all() == []


class TestTaskTools:
    async def test_create_update_assign(self, tool_registry, task_store):
        created = await tool_registry.dispatch(
            _call("create_task", title="Write docs", description="API reference", assignee="alice")
        )
        assert created.value["task_id"] == 1
        assert created.value["status"] == "PENDING"
        assert created.value["message"] == "Task created successfully and assigned to alice"

        updated = await tool_registry.dispatch(_call("update_status", task_id=1, status="COMPLETED"))
        assert updated.value["status"] == "COMPLETED"
        assert updated.value["message"] == "Task status updated to COMPLETED"

        assigned = await tool_registry.dispatch(_call("assign_task", task_id=1, new_assignee="bob"))
        assert assigned.value["assignee"] == "bob"
        assert assigned.value["message"] == "Task reassigned to bob"
        assert task_store.get(1).assignee == "bob"

    async def test_unknown_task_reports_error_status(self, tool_registry):
        result = await tool_registry.dispatch(_call("update_status", task_id=99, status="COMPLETED"))

        assert not result.is_error
        assert result.value["status"] == "ERROR"
        assert result.value["message"] == "Task not found"

    async def test_invalid_status_is_rejected(self, tool_registry):
        result = await tool_registry.dispatch(_call("update_status", task_id=1, status="DONE-ISH"))
        assert result.is_error

    async def test_concurrent_tool_creates(self, tool_registry, task_store):
        results = await asyncio.gather(*(
            tool_registry.dispatch(_call("create_task", title=f"t{i}", assignee="team"))
            for i in range(100)
        ))

        ids = sorted(r.value["task_id"] for r in results)
        assert ids == list(range(1, 101))
        assert len(task_store.all()) == 100
