"""
=============================================================================
CONNECTION WORKERS
=============================================================================

The accept loop hands every Connection to a WorkerPool. A worker thread
takes it and runs the connection handler until that client is done, so
one busy or silent client only ever holds one worker.

    accept loop ──submit(conn)──► [ waiting connections ] ──► worker ──► handler(conn)

    - min_workers threads start with the pool
    - whenever more connections are waiting than workers are idle, one
      more thread is started, up to max_workers
    - submit() refuses once max_pending connections are waiting; the
      caller answers 503
    - a waiting connection never expires: it is served, or closed by
      shutdown()

=============================================================================
"""

import logging
import queue
import threading
import time
from typing import Callable, List

from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]

# How often an idle worker looks at the stop flag
POLL_INTERVAL = 0.2


class WorkerPool:
    """
    Threads serving accepted connections.

        pool = WorkerPool(serve_connection, min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(conn):
            ...                      # overloaded
        pool.shutdown(timeout=10.0)
    """

    def __init__(
        self,
        handler: ConnectionHandler,
        min_workers: int = 4,
        max_workers: int = 16,
        max_pending: int = 100,
    ):
        self.handler = handler
        self.min_workers = min_workers
        self.max_workers = max_workers

        self._waiting: "queue.Queue[Connection]" = queue.Queue(maxsize=max_pending)
        self._threads: List[threading.Thread] = []
        self._outstanding = 0  # Submitted and not yet finished
        self._lock = threading.Lock()  # Guards _threads and _outstanding
        self._stop = threading.Event()
        self._accepting = False

    @property
    def size(self) -> int:
        """Worker threads started."""
        return len(self._threads)

    @property
    def pending(self) -> int:
        """Connections waiting for a worker."""
        return self._waiting.qsize()

    def start(self):
        self._stop.clear()
        with self._lock:
            while len(self._threads) < self.min_workers:
                self._spawn()
        self._accepting = True
        logger.info(f"Started {self.min_workers} workers (up to {self.max_workers})")

    def submit(self, conn: Connection) -> bool:
        """
        Queue conn for a worker without blocking.

        Returns:
            False if too many connections are already waiting.

        Raises:
            RuntimeError: If the pool is not started.
        """
        if not self._accepting:
            raise RuntimeError("Worker pool is not running")

        with self._lock:
            try:
                self._waiting.put_nowait(conn)
            except queue.Full:
                return False
            self._outstanding += 1

            # Every outstanding connection occupies, or waits for, a worker
            if self._outstanding > len(self._threads) and len(self._threads) < self.max_workers:
                self._spawn()
                logger.debug(f"Grew to {len(self._threads)} workers")
        return True

    def _spawn(self):
        """Start one worker. Caller holds _lock."""
        thread = threading.Thread(
            target=self._work,
            name=f"worker-{len(self._threads)}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _work(self):
        while not self._stop.is_set():
            try:
                conn = self._waiting.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                self.handler(conn)
            except Exception:
                logger.exception(f"[{conn.id}] Connection handler failed")
                conn.close()
            finally:
                with self._lock:
                    self._outstanding -= 1
                self._waiting.task_done()

    def shutdown(self, timeout: float = 10.0):
        """
        Stop taking connections, give the ones in hand up to timeout
        seconds to finish, then stop the workers. Connections still
        waiting after that are closed unanswered.
        """
        if not self._accepting:
            return
        self._accepting = False

        deadline = time.monotonic() + timeout
        while self._waiting.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.05)

        self._stop.set()
        for thread in self._threads:
            thread.join(max(deadline - time.monotonic(), POLL_INTERVAL * 2))

        dropped = 0
        while True:
            try:
                conn = self._waiting.get_nowait()
            except queue.Empty:
                break
            conn.close(linger=0)
            with self._lock:
                self._outstanding -= 1
            self._waiting.task_done()
            dropped += 1

        with self._lock:
            busy = sum(1 for t in self._threads if t.is_alive())
            self._threads.clear()

        if busy or dropped:
            logger.warning(f"Shutdown timed out: {busy} workers still busy, {dropped} connections dropped")
        logger.info("Workers stopped")
