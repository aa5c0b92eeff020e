# dev_watchdog.py
'''
Portable event source based on the `watchdog` library.

Used where neither kqueue nor inotify is available.  watchdog reports events
per *directory*, from its own observer thread, so:

  • each file's parent directory is scheduled once (non-recursive);
  • the handler keeps only events whose path is a watched file and hands
    them to the dispatch thread through a ``queue.Queue``;
  • handles are plain tokens issued per registration, so an event queued for
    a watch that has since been rearmed no longer resolves and is dropped.
'''

from __future__ import annotations

import itertools
import os
import queue
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from watchdog.events import (
  EVENT_TYPE_CLOSED,
  EVENT_TYPE_CREATED,
  EVENT_TYPE_DELETED,
  EVENT_TYPE_MODIFIED,
  EVENT_TYPE_MOVED,
  FileSystemEvent,
  FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from .events import NONE, EventBatch, Kind, NormalizedEvent
from .registry import Registry, WatchedFile
from .source import EventSource

SRC_KINDS: Dict[str, Kind] = {
  EVENT_TYPE_MODIFIED: Kind.WRITE,
  EVENT_TYPE_CLOSED: Kind.WRITE,
  EVENT_TYPE_CREATED: Kind.WRITE,
  EVENT_TYPE_DELETED: Kind.DELETE,
  EVENT_TYPE_MOVED: Kind.RENAME,
}


def _key(path) -> str:
  return str(Path(os.fsdecode(path)).resolve())


class _ChangeHandler(FileSystemEventHandler):
  def __init__(self, pending: 'queue.Queue[Tuple[int, Kind]]') -> None:
    super().__init__()
    self._pending = pending
    self._tokens: Dict[str, int] = {}
    self._lock = threading.Lock()

  def track(self, key: str, token: Optional[int]) -> None:
    with self._lock:
      if token is None:
        self._tokens.pop(key, None)
      else:
        self._tokens[key] = token

  def _push(self, path, kinds: Kind) -> None:
    with self._lock:
      token = self._tokens.get(_key(path))
    if token is not None and kinds != NONE:   # ignore temp files etc.
      self._pending.put((token, kinds))

  def on_any_event(self, event: FileSystemEvent) -> None:  # type: ignore[override]
    if event.is_directory:
      return
    self._push(event.src_path, SRC_KINDS.get(event.event_type, NONE))
    # replace-by-rename: the watched name now holds new content
    if event.event_type == EVENT_TYPE_MOVED:
      self._push(event.dest_path, Kind.WRITE)


class WatchdogSource(EventSource):
  name = 'watchdog'

  def __init__(self, registry: Registry) -> None:
    super().__init__(registry)
    self._pending: 'queue.Queue[Tuple[int, Kind]]' = queue.Queue()
    self._handler = _ChangeHandler(self._pending)
    self._tokens = itertools.count(1)
    self._dirs: Dict[str, ObservedWatch] = {}
    self._members: Dict[str, set] = {}
    self._observer = Observer()
    self._observer.start()

  def register(self, wf: WatchedFile) -> int:
    key = _key(wf.path)
    parent = str(Path(key).parent)
    if parent not in self._dirs:
      self._dirs[parent] = self._observer.schedule(self._handler, parent, recursive=False)
      self._members[parent] = set()
    self._members[parent].add(key)

    token = next(self._tokens)
    self._handler.track(key, token)
    if wf.fd is not None:
      os.close(wf.fd)
      wf.fd = None
    return token

  def unregister(self, wf: WatchedFile) -> None:
    key = _key(wf.path)
    parent = str(Path(key).parent)
    self._handler.track(key, None)
    members = self._members.get(parent)
    if members is None:
      return
    members.discard(key)
    if not members:
      self._observer.unschedule(self._dirs.pop(parent))
      del self._members[parent]

  def _drain(self) -> List[Tuple[int, Kind]]:
    items = []
    while True:
      try:
        items.append(self._pending.get_nowait())
      except queue.Empty:
        return items

  def wait(self, timeout: Optional[float] = None) -> EventBatch:
    batch = EventBatch()
    try:
      if timeout == 0:
        first = self._pending.get_nowait()
      else:
        first = self._pending.get(timeout=timeout)
    except queue.Empty:
      return batch

    for token, kinds in [first] + self._drain():
      wf = self.registry.resolve(token)
      if wf is not None:
        batch.events.append(NormalizedEvent(wf, kinds))
    return batch

  def close(self) -> None:
    self._observer.stop()
    self._observer.join()
