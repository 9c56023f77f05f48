"""arq worker settings module.

Import path for arq CLI: arq wordpanda.workers.settings.WorkerSettings
"""

from __future__ import annotations

from wordpanda.workers.dispatch_worker import WorkerSettings

__all__ = ["WorkerSettings"]
