# test_dispatch.py
'''
Tests for DispatchLoop coalescing, driven by a scripted event source.

Two-space indent, single quotes everywhere.
'''

from __future__ import annotations

import pytest

from conftest import FakeSource, RecordingSink
from onchange.config import Config
from onchange.dispatch import DispatchLoop
from onchange.events import Kind
from onchange.rearm import RearmManager
from onchange.registry import FileState, Registry


@pytest.fixture
def armed(files):
  reg = Registry(files)
  src = FakeSource(reg)
  mgr = RearmManager(reg, src, Config(), sleep=lambda _: None)
  mgr.arm_all()
  yield reg, src, mgr
  mgr.disarm_all()


def _loop(armed, drains):
  reg, src, mgr = armed
  sink = RecordingSink(drains=drains)
  return DispatchLoop(src, mgr, sink), sink


# ─────────────────────────────────────────────────────────────────────────────
# 1. Exec mode: one action per batch, then one drain
# ─────────────────────────────────────────────────────────────────────────────
def test_exec_many_writes_fire_once(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=True)
  src.push(*[(wf, Kind.WRITE) for wf in reg])

  loop.run(max_batches=1)

  assert len(sink.calls) == 1
  assert src.waits == [None, 0]          # blocking wait, then the drain


def test_exec_drain_discards_queued_events(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=True)
  src.push((reg.get(0), Kind.WRITE))
  src.push((reg.get(1), Kind.WRITE))    # arrives while the command runs
  src.push((reg.get(2), Kind.EXTEND))

  loop.run(max_batches=2)

  # second batch was eaten by the drain; third fires again
  assert sink.calls == [[reg.get(0).path], [reg.get(2).path]]


def test_exec_drain_still_rearms_deleted_files(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=True)
  b = reg.get(1)
  old = b.handle
  src.push((reg.get(0), Kind.WRITE))
  src.push((b, Kind.DELETE))

  loop.run(max_batches=1)

  assert len(sink.calls) == 1
  assert b.handle != old and b.state is FileState.ACTIVE


# ─────────────────────────────────────────────────────────────────────────────
# 2. Stream mode: one record per change-worthy file, in order
# ─────────────────────────────────────────────────────────────────────────────
def test_stream_every_file_in_order(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=False)
  a, b, c = list(reg)
  src.push((b, Kind.WRITE), (a, Kind.WRITE), (c, Kind.ATTRIB))

  assert loop.handle(src.wait()) == 2
  assert sink.calls == [[b.path, a.path]]
  assert src.waits == [None]             # no drain in stream mode


def test_stream_same_file_twice_in_batch_is_one_line(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=False)
  a = reg.get(0)
  src.push((a, Kind.WRITE), (a, Kind.EXTEND))
  assert loop.handle(src.wait()) == 1
  assert sink.calls == [[a.path]]


# ─────────────────────────────────────────────────────────────────────────────
# 3. Not change-worthy / out-of-band members
# ─────────────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize('drains', [True, False])
def test_rename_and_attrib_alone_do_nothing(armed, drains):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=drains)
  src.push((reg.get(0), Kind.RENAME), (reg.get(1), Kind.ATTRIB | Kind.RENAME))
  assert loop.handle(src.wait()) == 0
  assert sink.calls == []


def test_input_ready_is_not_an_event(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=True)
  src.push(input_ready=True)
  src.push((reg.get(0), Kind.WRITE))

  loop.run(max_batches=1)

  assert len(sink.calls) == 1
  assert src.waits[:2] == [None, None]


# ─────────────────────────────────────────────────────────────────────────────
# 4. Delete handling
# ─────────────────────────────────────────────────────────────────────────────
def test_delete_rearms_then_fires(armed):
  reg, src, _ = armed
  loop, sink = _loop(armed, drains=False)
  a = reg.get(0)
  old = a.handle

  src.push((a, Kind.DELETE))
  assert loop.handle(src.wait()) == 1
  assert reg.resolve(old) is None
  assert reg.resolve(a.handle) is a
  assert sink.calls == [[a.path]]


def test_delete_of_missing_file_is_fatal(armed):
  from onchange.errors import WatchError
  import os

  reg, src, _ = armed
  loop, sink = _loop(armed, drains=True)
  a = reg.get(0)
  os.unlink(a.path)
  src.push((a, Kind.DELETE), (reg.get(1), Kind.WRITE))

  with pytest.raises(WatchError):
    loop.handle(src.wait())
  assert a.state is FileState.FAILED
  assert sink.calls == []
