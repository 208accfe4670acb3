# src/signage_tasks/tasks/builtin/notification_tidy.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..task_contract import BaseTask

SECONDS_PER_DAY = 86400


@dataclass(slots=True, frozen=True)
class NotificationTidyOptions:
    max_age_days: int = field(default=7, metadata={"option": "maxAgeDays"})
    system_only: bool = field(default=True, metadata={"option": "systemOnly"})


class NotificationTidyTask(BaseTask):
    """Delete old notifications together with their per-user delivery links."""

    options_class = NotificationTidyOptions

    def execute(self, options: NotificationTidyOptions) -> str:
        if options.max_age_days < 0:
            raise ValueError("maxAgeDays must not be negative")

        factories = self.env.factories
        cutoff = self.env.date.now() - options.max_age_days * SECONDS_PER_DAY

        old = factories.notification.query(created_before=cutoff)
        if options.system_only:
            old = [n for n in old if n.get("is_system", False)]

        if not old:
            return "No notifications to tidy."

        old_ids = {n.id for n in old}
        links = factories.user_notification.query(where=lambda e: e.get("notification_id") in old_ids)

        for link in links:
            factories.user_notification.delete(link)
        for notification in old:
            factories.notification.delete(notification)

        self.log.debug("Notification tidy removed %d notifications, %d links", len(old), len(links))
        return f"Deleted {len(old)} notifications and {len(links)} user links."
