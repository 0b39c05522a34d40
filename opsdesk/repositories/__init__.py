from opsdesk.repositories.run_logs import JobStats, RunLogRepository
from opsdesk.repositories.sync_runs import SyncRunRepository

__all__ = ["JobStats", "RunLogRepository", "SyncRunRepository"]
