# tests/test_builtin_tasks.py

from __future__ import annotations

from signage_tasks.tasks import task_api
from signage_tasks.tasks.task_models import LastRunStatus

DAY = 86400


def _add_builtin(state, file: str, **options: str) -> int:
    task_id = task_api.add_task(state, {"name": file, "schedule": "0 * * * *", "file": f"builtin/{file}"}).id
    if options:
        task_api.edit_task(state, task_id, options)
    return task_id


def _run(state, task_id: int):
    state.executor.run(task_id)
    return state.task_store.get_by_id(task_id)


def test_notification_tidy_removes_old_system_notifications(state, clock) -> None:
    f = state.env.factories
    now = clock.now()
    old_system = f.notification.create({"subject": "old", "is_system": True}, now_ts=now - 10 * DAY)
    old_user = f.notification.create({"subject": "old user", "is_system": False}, now_ts=now - 10 * DAY)
    fresh = f.notification.create({"subject": "fresh", "is_system": True}, now_ts=now - DAY)
    f.user_notification.create({"notification_id": old_system.id, "user_id": 1}, now_ts=now)
    f.user_notification.create({"notification_id": old_system.id, "user_id": 2}, now_ts=now)
    f.user_notification.create({"notification_id": fresh.id, "user_id": 1}, now_ts=now)

    task = _run(state, _add_builtin(state, "notification-tidy.task"))

    assert task.last_run_status == LastRunStatus.SUCCESS
    assert task.last_run_message == "Deleted 1 notifications and 2 user links."
    assert {n.id for n in f.notification.query()} == {old_user.id, fresh.id}
    assert [link.get("notification_id") for link in f.user_notification.query()] == [fresh.id]


def test_notification_tidy_all_kinds_and_nothing_to_do(state, clock) -> None:
    f = state.env.factories
    f.notification.create({"subject": "old user", "is_system": False}, now_ts=clock.now() - 10 * DAY)
    task_id = _add_builtin(state, "notification-tidy.task", systemOnly="0", maxAgeDays="5")

    assert _run(state, task_id).last_run_message == "Deleted 1 notifications and 0 user links."
    assert _run(state, task_id).last_run_message == "No notifications to tidy."


def test_notification_tidy_negative_age_is_an_error(state) -> None:
    task = _run(state, _add_builtin(state, "notification-tidy.task", maxAgeDays="-1"))
    assert task.last_run_status == LastRunStatus.ERROR
    assert task.last_run_message == "maxAgeDays must not be negative"


def test_cache_purge_removes_expired_items(state, clock) -> None:
    pool = state.env.pool
    now = clock.now()
    pool.set("stale", {"a": 1}, ttl_seconds=10, now_ts=now - 60)
    pool.set("live", [1, 2], ttl_seconds=3600, now_ts=now)
    pool.set("forever", "x")

    task = _run(state, _add_builtin(state, "cache-purge.task"))

    assert task.last_run_message == "Purged 1 expired cache items."
    assert pool.has("live", now_ts=now)
    assert pool.get("forever") == "x"


def test_cache_purge_all_clears_everything(state) -> None:
    pool = state.env.pool
    pool.set("a", 1)
    pool.set("b", 2)

    task = _run(state, _add_builtin(state, "cache-purge.task", purgeAll="1"))

    assert task.last_run_message == "Cleared cache: 2 items removed."
    assert not pool.has("a")


def test_display_offline_check_marks_and_notifies(state, clock) -> None:
    f = state.env.factories
    now = clock.now()
    group = f.user_group.create({"group": "Ops"})
    alice = f.user.create({"user_name": "alice", "group_ids": [group.id]})
    f.user.create({"user_name": "bob", "group_ids": []})
    stale = f.display.create({"display": "Lobby", "logged_in": True, "last_accessed": now - 3600})
    fresh = f.display.create({"display": "Cafe", "logged_in": True, "last_accessed": now - 60})
    already_off = f.display.create({"display": "Store", "logged_in": False, "last_accessed": 0})

    task_id = _add_builtin(state, "display-offline-check.task", notifyGroupId=str(group.id))
    task = _run(state, task_id)

    assert task.last_run_status == LastRunStatus.SUCCESS
    assert task.last_run_message == "Lobby offline\n1 display(s) went offline, 1 user(s) notified."
    assert f.display.get_by_id(stale.id).get("logged_in") is False
    assert f.display.get_by_id(fresh.id).get("logged_in") is True
    assert f.display.get_by_id(already_off.id).get("logged_in") is False

    (notification,) = f.notification.query()
    assert notification.get("subject") == "Display Lobby is offline"
    assert notification.get("display_id") == stale.id
    (link,) = f.user_notification.query()
    assert link.data == {"notification_id": notification.id, "user_id": alice.id, "read": False}

    # Second run: nothing new goes offline.
    assert _run(state, task_id).last_run_message == "All displays checked in."


def test_display_offline_check_unknown_group_is_an_error(state) -> None:
    task = _run(state, _add_builtin(state, "display-offline-check.task", notifyGroupId="404"))
    assert task.last_run_status == LastRunStatus.ERROR
    assert task.last_run_message == "user_group 404 not found"


def test_display_offline_check_rejects_non_positive_timeout(state) -> None:
    task = _run(state, _add_builtin(state, "display-offline-check.task", timeoutMinutes="0"))
    assert task.last_run_status == LastRunStatus.ERROR
    assert task.last_run_message == "timeoutMinutes must be positive"
