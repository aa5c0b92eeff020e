# inotify_source.py
'''
Compatibility event source on top of Linux inotify (``inotify_simple``).

inotify differs from the native kqueue model in three ways handled here:

  • watches are per path, not per open descriptor: the descriptor opened by
    the rearm step is closed right after ``add_watch`` and the handle is the
    inotify watch descriptor;
  • its flag vocabulary is different (see ``INOTIFY_FLAGS``);
  • one read can carry several records for the same watch, which are merged
    here the way kqueue would have reported them.

Readiness of an optional input descriptor (stdin) is polled alongside the
inotify descriptor and reported as ``EventBatch.input_ready``.
'''

from __future__ import annotations

import errno
import logging
import os
import select
from typing import Dict, List, Optional

from inotify_simple import INotify, flags

from .errors import WatchError
from .events import NONE, EventBatch, Kind, NormalizedEvent, kind_names, translate
from .registry import Registry, WatchedFile
from .source import EventSource

logger = logging.getLogger(__name__)

INOTIFY_FLAGS: Dict[int, Kind] = {
  flags.CLOSE_WRITE: Kind.WRITE,
  flags.CREATE: Kind.WRITE,        # editors that delete + recreate
  flags.DELETE_SELF: Kind.DELETE,
  flags.MOVE_SELF: Kind.RENAME,
  flags.ATTRIB: Kind.ATTRIB,
}

WATCH_MASK = (
    flags.CLOSE_WRITE
  | flags.DELETE_SELF
  | flags.MODIFY
  | flags.MOVE_SELF
  | flags.ATTRIB
  | flags.CREATE
)

# keep collecting while records keep arriving this close together
SETTLE_MS = 50


def merge_records(records, resolve_all) -> List[NormalizedEvent]:
  '''
  Translate one read's worth of raw inotify records.  Records for the same
  watch descriptor are unioned; records that translate to nothing or whose
  descriptor no longer resolves are dropped.  A descriptor shared by several
  aliases of one file yields one event per alias.
  '''
  merged: Dict[int, List[NormalizedEvent]] = {}
  for rec in records:
    if rec.mask & flags.Q_OVERFLOW:
      logger.warning('inotify event queue overflowed; some changes were lost')
      continue
    kinds = translate(rec.mask, INOTIFY_FLAGS)
    if kinds == NONE:
      continue
    seen = merged.get(rec.wd)
    if seen is not None:
      for ev in seen:
        ev.kinds |= kinds
      continue
    targets = resolve_all(rec.wd)
    if not targets:
      logger.debug('dropping inotify record for stale watch %d', rec.wd)
      continue
    merged[rec.wd] = [NormalizedEvent(wf, kinds) for wf in targets]
  return [ev for evs in merged.values() for ev in evs]


class InotifySource(EventSource):
  name = 'inotify'

  def __init__(self, registry: Registry, input_fd: Optional[int] = None) -> None:
    super().__init__(registry)
    self._inotify = INotify()
    self._poll = select.poll()
    self._poll.register(self._inotify.fileno(), select.POLLIN)
    self._input_fd = input_fd
    if input_fd is not None:
      self._poll.register(input_fd, select.POLLIN)

  def register(self, wf: WatchedFile) -> int:
    try:
      wd = self._inotify.add_watch(wf.path, WATCH_MASK)
    except OSError as exc:
      raise WatchError(wf.path, f'inotify_add_watch failed: {exc.strerror}') from exc
    if wf.fd is not None:
      os.close(wf.fd)
      wf.fd = None
    return wd

  def unregister(self, wf: WatchedFile) -> None:
    if wf.handle is None:
      return
    try:
      self._inotify.rm_watch(wf.handle)
    except OSError as exc:
      # the kernel drops the watch itself once the inode is gone
      if exc.errno != errno.EINVAL:
        raise
      logger.debug('watch %d for %s already removed', wf.handle, wf.path)

  # ---------- reading ------------------------------------------------------
  def _ready(self, timeout_ms: Optional[int]):
    inotify_ready = input_ready = False
    for fd, _ in self._poll.poll(timeout_ms):
      if fd == self._inotify.fileno():
        inotify_ready = True
      elif fd == self._input_fd:
        input_ready = True
    return inotify_ready, input_ready

  def _input_seen(self) -> None:
    # stdin stays readable once at EOF; report it once, then stop polling it
    self._poll.unregister(self._input_fd)
    self._input_fd = None

  def wait(self, timeout: Optional[float] = None) -> EventBatch:
    timeout_ms = None if timeout is None else int(timeout * 1000)
    batch = EventBatch()

    inotify_ready, input_ready = self._ready(timeout_ms)
    while inotify_ready or input_ready:
      if inotify_ready:
        records = self._inotify.read(timeout=0)
        for ev in merge_records(records, self.registry.resolve_all):
          logger.debug('%s: %s', ev.target.path, kind_names(ev.kinds))
          batch.events.append(ev)
      if input_ready:
        batch.input_ready = True
        self._input_seen()
        break
      inotify_ready, input_ready = self._ready(SETTLE_MS)
    return batch

  def close(self) -> None:
    self._inotify.close()
