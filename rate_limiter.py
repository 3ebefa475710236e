"""
Client-side request queue for the Google APIs.

One RateLimitedDispatcher exists per API family. All calls go through its FIFO
queue and a single worker loop, which keeps the number of calls per rolling
window under the configured capacity and backs off when the API still
reports a quota problem.
"""
import threading
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field

from api_errors import QueueFullError, is_quota_error
from batch_config import DispatcherConfig


@dataclass
class QuotaWindow:
    """Timestamps of the most recent dispatches, at most capacity per rolling window."""
    capacity: int
    window_seconds: float
    calls: deque = field(default_factory=deque)

    @property
    def count(self):
        """Dispatches currently inside the window."""
        return len(self.calls)

    def prune(self, now):
        """Forget dispatches that are a full window old."""
        while self.calls and now - self.calls[0] >= self.window_seconds:
            self.calls.popleft()

    def is_full(self, now):
        """True when capacity dispatches fall inside the window ending at now."""
        self.prune(now)
        return len(self.calls) >= self.capacity

    def record(self, now):
        """Count a dispatch made at now."""
        self.calls.append(now)
        while len(self.calls) > self.capacity:
            self.calls.popleft()

    def exhaust(self, now):
        """Block a whole window from now on after the API reported a quota error."""
        self.calls = deque([now] * self.capacity)

    def reset(self):
        """Forget all recorded dispatches."""
        self.calls.clear()

    def seconds_until_free(self, now, margin=0):
        """Wait until the oldest dispatch leaves the window, plus margin."""
        if len(self.calls) < self.capacity:
            return 0
        return max(0, self.calls[0] + self.window_seconds - now) + margin


@dataclass
class CallRequest:
    url: str
    method: str = 'GET'
    headers: dict = None
    body: object = None
    future: Future = field(default_factory=Future)
    quota_retries: int = 0


class RateLimitedDispatcher:
    """Serializes calls for one API family through a quota-aware queue."""

    def __init__(self, caller, config=None, sleep=time.sleep, clock=time.monotonic, name=None):
        self.caller = caller
        self.config = config or DispatcherConfig()
        self.sleep = sleep
        self.clock = clock
        self.name = name or getattr(caller, 'name', 'API')
        self.window = QuotaWindow(self.config.capacity, self.config.window_seconds)
        self._queue = deque()
        self._lock = threading.Lock()
        self._processing = False
        self._worker = None

    def submit(self, url, method='GET', headers=None, body=None):
        """Queue a call and return a Future for its decoded JSON response."""
        request = CallRequest(url, method=method, headers=headers, body=body)

        with self._lock:
            if len(self._queue) >= self.config.max_queue_size:
                raise QueueFullError(
                    f"{self.name} request queue is full ({self.config.max_queue_size} pending)")
            self._queue.append(request)
            start_worker = not self._processing
            self._processing = True

        if start_worker:
            self._worker = threading.Thread(target=self._process_queue,
                                            name=f"{self.name}-dispatcher", daemon=True)
            self._worker.start()

        return request.future

    def request(self, url, method='GET', headers=None, body=None):
        """Submit a call and block until it completes."""
        return self.submit(url, method=method, headers=headers, body=body).result()

    def pending(self):
        """Number of requests waiting in the queue."""
        with self._lock:
            return len(self._queue)

    def _process_queue(self):
        """Worker loop: drain the queue while keeping to the quota window."""
        try:
            self._drain()
        except BaseException:
            # Let the next submit() start a fresh worker
            with self._lock:
                self._processing = False
            raise

    def _drain(self):
        """Dispatch queued requests until the queue is empty."""
        while True:
            with self._lock:
                if not self._queue:
                    self._processing = False
                    return

            now = self.clock()
            if self.window.is_full(now):
                wait = self.window.seconds_until_free(now, self.config.window_margin_seconds)
                print(f"Rate limit reached ({self.window.count}/{self.window.capacity}). Waiting {round(wait)}s...")
                self.sleep(wait)
                continue

            with self._lock:
                request = self._queue.popleft()

            # Requeued requests are already running; anything else may have been cancelled
            if not request.future.running() and not request.future.set_running_or_notify_cancel():
                continue

            self.window.record(now)

            try:
                result = self.caller.call(request.url, method=request.method,
                                          headers=request.headers, body=request.body)
            except Exception as e:
                if is_quota_error(e):
                    cooldown = self.config.quota_cooldown_seconds
                    print(f"Quota exceeded detected, waiting {round(cooldown)} seconds before retry...")
                    self.window.exhaust(now)
                    self.sleep(cooldown)
                    request.quota_retries += 1
                    with self._lock:
                        self._queue.appendleft(request)
                    continue
                request.future.set_exception(e)
            else:
                request.future.set_result(result)

            self.sleep(self.config.pacing_seconds)
