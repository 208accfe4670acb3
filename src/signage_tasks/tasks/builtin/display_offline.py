# src/signage_tasks/tasks/builtin/display_offline.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..task_contract import BaseTask
from ..task_errors import ExecutionError


@dataclass(slots=True, frozen=True)
class DisplayOfflineOptions:
    timeout_minutes: int = field(default=30, metadata={"option": "timeoutMinutes"})
    notify_group_id: str = field(default="", metadata={"option": "notifyGroupId"})


class DisplayOfflineCheckTask(BaseTask):
    """
    Mark displays that stopped checking in as offline.

    Each display that goes offline in this run raises one system notification; when a
    notify group is configured, every user in that group gets a delivery link.
    """

    options_class = DisplayOfflineOptions

    def execute(self, options: DisplayOfflineOptions) -> str:
        if options.timeout_minutes <= 0:
            raise ExecutionError("timeoutMinutes must be positive")

        factories = self.env.factories
        now_ts = self.env.date.now()
        cutoff = now_ts - options.timeout_minutes * 60

        recipients: list[int] = []
        if options.notify_group_id:
            group = factories.user_group.get_by_id(int(options.notify_group_id))
            recipients = [
                u.id for u in factories.user.query(where=lambda e: group.id in (e.get("group_ids") or []))
            ]

        went_offline = 0
        for display in factories.display.query(filters={"logged_in": True}):
            last_accessed = float(display.get("last_accessed") or 0.0)
            if last_accessed >= cutoff:
                continue

            display.data["logged_in"] = False
            factories.display.save(display, now_ts=now_ts)
            went_offline += 1

            name = display.get("display") or f"#{display.id}"
            notification = factories.notification.create(
                {
                    "subject": f"Display {name} is offline",
                    "body": f"Display {name} has not checked in for {options.timeout_minutes} minutes.",
                    "is_system": True,
                    "display_id": display.id,
                },
                now_ts=now_ts,
            )
            for user_id in recipients:
                factories.user_notification.create(
                    {"notification_id": notification.id, "user_id": user_id, "read": False},
                    now_ts=now_ts,
                )
            self.report(f"{name} offline")

        if not went_offline:
            return "All displays checked in."
        return f"{went_offline} display(s) went offline, {len(recipients)} user(s) notified."
