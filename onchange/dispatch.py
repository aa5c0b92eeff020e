# dispatch.py
'''
The dispatch loop: WAITING (blocked in ``source.wait``) → ACTING → WAITING.

Per batch:
  1. coalesce events by file (kind sets unioned);
  2. rearm every file that was deleted or replaced;
  3. if anything is change-worthy (WRITE / EXTEND / DELETE) fire the sink:
       exec mode   → once, then one non-blocking drain of queued events;
       stream mode → one line per change-worthy file, in batch order.
RENAME / ATTRIB on their own never reach the sink.
'''

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from .events import EventBatch, Kind, NormalizedEvent
from .rearm import RearmManager
from .source import EventSource

logger = logging.getLogger(__name__)


class Sink(Protocol):
  drains: bool

  def fire(self, events: List[NormalizedEvent]) -> int: ...


class DispatchLoop:
  def __init__(self, source: EventSource, rearm: RearmManager, sink: Sink) -> None:
    self.source = source
    self.rearm = rearm
    self.sink = sink

  def run(self, max_batches: Optional[int] = None) -> None:
    '''Loop until canceled (or *max_batches* non-empty batches, for tests).'''
    handled = 0
    while max_batches is None or handled < max_batches:
      batch = self.source.wait()
      if batch.input_ready:
        logger.debug('input descriptor ready')
      if len(batch):
        self.handle(batch)
        handled += 1

  def _rearm_deleted(self, events: List[NormalizedEvent]) -> None:
    for ev in events:
      if Kind.DELETE in ev.kinds:
        self.rearm.rearm(ev.target)

  def handle(self, batch: EventBatch) -> int:
    '''Act on one batch; return how many times the sink produced output.'''
    events = batch.coalesced()
    self._rearm_deleted(events)

    worthy = [ev for ev in events if ev.change_worthy]
    if not worthy:
      if events:
        logger.debug('ignoring %d rename/attribute-only event(s)', len(events))
      return 0

    fired = self.sink.fire(worthy)
    if self.sink.drains:
      self._drain()
    return fired

  def _drain(self) -> None:
    '''Discard what queued up while the command ran; keep watches alive.'''
    stale = self.source.wait(0)
    if not len(stale):
      return
    logger.debug('discarding %d event(s) queued during the action', len(stale))
    self._rearm_deleted(stale.coalesced())
