# kqueue_source.py
'''
Native event source on top of ``select.kqueue`` (BSD, macOS).

Each watched descriptor gets one EVFILT_VNODE kevent with EV_CLEAR, and the
kevent's ``udata`` carries the registry index of the file.  The kernel
already merges flags per descriptor, so translation is one-to-one.
'''

from __future__ import annotations

import logging
import select
from typing import Dict, Optional

from .errors import WatchError
from .events import EventBatch, Kind, NormalizedEvent, kind_names, translate
from .registry import Registry, WatchedFile
from .source import EventSource

logger = logging.getLogger(__name__)

NOTE_FLAGS: Dict[int, Kind] = {
  select.KQ_NOTE_DELETE: Kind.DELETE,
  select.KQ_NOTE_WRITE: Kind.WRITE,
  select.KQ_NOTE_EXTEND: Kind.EXTEND,
  select.KQ_NOTE_RENAME: Kind.RENAME,
  select.KQ_NOTE_ATTRIB: Kind.ATTRIB,
}

WATCH_FFLAGS = 0
for _bit in NOTE_FLAGS:
  WATCH_FFLAGS |= _bit


class KqueueSource(EventSource):
  name = 'kqueue'

  def __init__(self, registry: Registry) -> None:
    super().__init__(registry)
    self._kq = select.kqueue()

  def _kevent(self, wf: WatchedFile, flags: int) -> select.kevent:
    return select.kevent(
      wf.fd,
      filter=select.KQ_FILTER_VNODE,
      flags=flags,
      fflags=WATCH_FFLAGS,
      udata=wf.index,
    )

  def register(self, wf: WatchedFile) -> int:
    if wf.fd is None:
      raise WatchError(wf.path, 'file is not open')
    try:
      self._kq.control([self._kevent(wf, select.KQ_EV_ADD | select.KQ_EV_CLEAR)], 0, 0)
    except OSError as exc:
      raise WatchError(wf.path, f'kevent registration failed: {exc.strerror}') from exc
    return wf.fd

  def unregister(self, wf: WatchedFile) -> None:
    if wf.fd is None:
      return
    self._kq.control([self._kevent(wf, select.KQ_EV_DELETE)], 0, 0)

  def wait(self, timeout: Optional[float] = None) -> EventBatch:
    batch = EventBatch()
    raw = self._kq.control(None, max(len(self.registry), 1), timeout)
    for kev in raw:
      wf = self.registry.get(kev.udata)
      if wf is None or self.registry.resolve(kev.ident) is not wf:
        logger.debug('dropping kevent for superseded descriptor %d', kev.ident)
        continue
      kinds = translate(kev.fflags, NOTE_FLAGS)
      if not kinds:
        continue
      logger.debug('%s: %s', wf.path, kind_names(kinds))
      batch.events.append(NormalizedEvent(wf, kinds))
    return batch

  def close(self) -> None:
    self._kq.close()
