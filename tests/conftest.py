# conftest.py
'''
Shared fakes: a scripted event source and a recording sink.

Two-space indent, single quotes everywhere.
'''

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

import pytest

from onchange.events import EventBatch, NormalizedEvent
from onchange.registry import Registry, WatchedFile
from onchange.source import EventSource


# ─────────────────────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────────────────────
class FakeSource(EventSource):
  '''Hands out handles 101, 102, … and replays queued batches.'''
  name = 'fake'

  def __init__(self, registry: Registry) -> None:
    super().__init__(registry)
    self.batches: Deque[EventBatch] = deque()
    self.waits: List[Optional[float]] = []
    self.registered: List[str] = []
    self.unregistered: List[str] = []
    self.fail_paths: set = set()
    self._next = 100

  def register(self, wf: WatchedFile) -> int:
    from onchange.errors import WatchError
    if wf.path in self.fail_paths:
      raise WatchError(wf.path, 'refused')
    self.registered.append(wf.path)
    self._next += 1
    return self._next

  def unregister(self, wf: WatchedFile) -> None:
    self.unregistered.append(wf.path)

  def push(self, *pairs, input_ready: bool = False) -> None:
    '''Queue a batch of (WatchedFile, Kind) pairs.'''
    self.batches.append(EventBatch(
      [NormalizedEvent(wf, kinds) for wf, kinds in pairs],
      input_ready=input_ready,
    ))

  def wait(self, timeout: Optional[float] = None) -> EventBatch:
    self.waits.append(timeout)
    if self.batches:
      return self.batches.popleft()
    if timeout is None:
      raise AssertionError('blocking wait with nothing queued')
    return EventBatch()


class RecordingSink:
  def __init__(self, drains: bool) -> None:
    self.drains = drains
    self.calls: List[List[str]] = []

  def fire(self, events: List[NormalizedEvent]) -> int:
    self.calls.append([ev.target.path for ev in events])
    return 1 if self.drains else len(events)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture
def files(tmp_path):
  paths = []
  for name in ('a.txt', 'b.txt', 'c.txt'):
    p = tmp_path / name
    p.write_text(name, encoding='utf-8')
    paths.append(str(p))
  return paths
