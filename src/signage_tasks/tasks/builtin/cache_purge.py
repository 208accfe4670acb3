# src/signage_tasks/tasks/builtin/cache_purge.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..task_contract import BaseTask


@dataclass(slots=True, frozen=True)
class CachePurgeOptions:
    purge_all: bool = field(default=False, metadata={"option": "purgeAll"})


class CachePurgeTask(BaseTask):
    options_class = CachePurgeOptions

    def execute(self, options: CachePurgeOptions) -> str:
        pool = self.env.pool
        if options.purge_all:
            removed = pool.clear()
            return f"Cleared cache: {removed} items removed."
        removed = pool.purge(now_ts=self.env.date.now())
        return f"Purged {removed} expired cache items."
