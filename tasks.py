"""
Fire-and-forget background work.

Submitted tasks run on a small thread pool. They are best effort: there is
no per-task cancellation and failures are logged, never reaching the request
that scheduled them. At interpreter exit the pool's workers are joined, so
queued tasks still run to completion; call ``shutdown(cancel_pending=True)``
to drop queued tasks instead.
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor

logger = logging.getLogger(__name__)


class BackgroundTasks:

    def __init__(self, max_workers: int = 2):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='news-bg')

    def submit(self, fn, *args, description: str = None, **kwargs) -> Future:
        label = description or getattr(fn, '__name__', 'task')
        future = self.executor.submit(fn, *args, **kwargs)

        def _log_outcome(done: Future):
            if done.cancelled():
                logger.warning(f"Background task '{label}' was dropped before it ran")
                return
            error = done.exception()
            if error is not None:
                logger.error(f"Background task '{label}' failed: {error}")

        future.add_done_callback(_log_outcome)
        return future

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting work; queued tasks are cancelled when ``cancel_pending`` is set"""
        self.executor.shutdown(wait=wait, cancel_futures=cancel_pending)
