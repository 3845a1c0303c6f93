"""Frame sources and the push-model dispatcher that feeds trackers.

Provides a unified interface for different frame sources:
- Device cameras (USB via V4L2)
- Synthetic frames for dry runs and tests

``FrameDispatcher`` pulls from a source on its own thread and pushes every
frame to the registered listeners.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol

import cv2
import numpy as np


class FrameListener(Protocol):
    def on_frame(self, frame: np.ndarray) -> None: ...


class FrameSource(ABC):
    """Abstract base class for frame sources."""

    @abstractmethod
    def start(self) -> None:
        """Start the frame source. Called before any read() calls."""
        ...

    @abstractmethod
    def read(self) -> tuple[np.ndarray, int, int] | None:
        """Read next frame.

        Returns:
            (frame_bgr, timestamp_ns, frame_id) tuple or None if no frame available.
            - frame_bgr: BGR image as ndarray (H, W, 3), uint8
            - timestamp_ns: timestamp in nanoseconds since epoch
            - frame_id: sequential frame number (1-indexed)
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the frame source and release resources."""
        ...


class DeviceCameraSource(FrameSource):
    """USB camera source using OpenCV's V4L2 interface."""

    def __init__(self, device: int | str, fps: int, width: int, height: int):
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.cap: Any = None
        self.frame_id = 0

    def start(self) -> None:
        """Open the camera device."""
        if isinstance(self.device, int):
            self.cap = cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        else:
            dev_str = str(self.device)
            match = re.match(r"^/dev/video(\d+)$", dev_str)
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
            else:
                self.cap = cv2.VideoCapture(dev_str)

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.device}")

        self.frame_id = 0

    def read(self) -> tuple[np.ndarray, int, int] | None:
        if self.cap is None:
            return None

        ok, img = self.cap.read()
        if not ok:
            return None

        self.frame_id += 1
        return (img, time.time_ns(), self.frame_id)

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class SyntheticSource(FrameSource):
    """Paced generated frames; black unless a ``frame_factory`` is given."""

    def __init__(
        self,
        fps: int,
        width: int,
        height: int,
        frame_factory: Optional[Callable[[int], np.ndarray]] = None,
    ):
        self.fps = fps
        self.width = width
        self.height = height
        self.frame_factory = frame_factory
        self.frame_id = 0
        self._last = 0.0

    def start(self) -> None:
        self.frame_id = 0
        self._last = time.time()

    def read(self) -> tuple[np.ndarray, int, int] | None:
        if self.fps > 0:
            wait = (1.0 / self.fps) - (time.time() - self._last)
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        self.frame_id += 1
        if self.frame_factory is not None:
            img = self.frame_factory(self.frame_id)
        else:
            img = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        return (img, time.time_ns(), self.frame_id)

    def stop(self) -> None:
        return None


class FrameDispatcher:
    """
    Push frames from a ``FrameSource`` to registered listeners.

    Listeners are called synchronously, one after another, on the delivery
    thread. Delivery holds the dispatch lock, and ``remove_listener`` takes
    the same lock, so once ``remove_listener`` returns the listener will not
    be called again.
    """

    def __init__(
        self,
        source: FrameSource,
        logger: Optional[logging.Logger] = None,
        idle_wait_sec: float = 0.01,
    ):
        self.source = source
        self.idle_wait_sec = idle_wait_sec
        self.logger = logger or logging.getLogger(__name__)
        self._listeners: list[FrameListener] = []
        self._dispatch_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames_delivered = 0
        self.errors = 0
        self.failure: Optional[BaseException] = None

    def add_listener(self, listener: FrameListener) -> None:
        with self._dispatch_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: FrameListener) -> None:
        with self._dispatch_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> list[FrameListener]:
        with self._dispatch_lock:
            return list(self._listeners)

    def deliver(self, frame: np.ndarray) -> None:
        """Push one frame to every listener. Listener exceptions propagate."""
        with self._dispatch_lock:
            for listener in list(self._listeners):
                listener.on_frame(frame)
            self.frames_delivered += 1

    def deliver_once(self) -> bool:
        """Read one frame from the source and deliver it. False if no frame was available."""
        item = self.source.read()
        if item is None:
            self.errors += 1
            self.logger.debug("no frame from source (errors=%d)", self.errors)
            return False
        frame, _ts_ns, _frame_id = item
        self.deliver(frame)
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.failure = None
        self.source.start()
        self._thread = threading.Thread(target=self._run, name="frame-dispatcher", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                delivered = self.deliver_once()
            except Exception as exc:
                self.failure = exc
                self.logger.error("frame delivery stopped: %s", exc)
                self._stop_event.set()
                break
            if not delivered:
                # camera gone or not ready yet
                self._stop_event.wait(self.idle_wait_sec)

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        self.source.stop()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()
