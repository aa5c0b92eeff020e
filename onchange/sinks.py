# sinks.py
'''
What happens when files change.

    CommandSink(argv)   run argv once per batch, wait for it     (exec mode)
    StreamSink(path)    one "<path>\\n" per event on a FIFO       (stream mode)

``drains`` tells the dispatch loop whether to discard the events that piled
up while the sink was busy.
'''

from __future__ import annotations

import logging
import os
import stat
import subprocess
from typing import IO, List, Optional, Sequence

from .errors import SetupError
from .events import NormalizedEvent

logger = logging.getLogger(__name__)


class CommandSink:
  drains = True

  def __init__(self, argv: Sequence[str]) -> None:
    if not argv:
      raise ValueError('empty command')
    self.argv = list(argv)

  def fire(self, events: List[NormalizedEvent]) -> int:
    '''Run the command once, whatever the number of *events*.'''
    logger.info('running %s (%d changed)', ' '.join(self.argv), len(events))
    try:
      proc = subprocess.run(self.argv)
    except OSError as exc:
      # the command's failure is its own business, keep watching
      logger.error('cannot run %s: %s', self.argv[0], exc)
      return 1
    if proc.returncode != 0:
      logger.info('%s exited with status %d', self.argv[0], proc.returncode)
    return 1


class StreamSink:
  drains = False

  def __init__(self, path: str) -> None:
    self.path = path
    self._stream: Optional[IO[str]] = None

  def open(self) -> 'StreamSink':
    try:
      os.mkfifo(self.path, stat.S_IRUSR | stat.S_IWUSR)
    except OSError as exc:
      raise SetupError(f'mkfifo {self.path!r} failed: {exc.strerror}') from exc
    try:
      # read-write so that opening does not wait for a reader; with no reader
      # attached, writes block once the pipe buffer is full
      fd = os.open(self.path, os.O_RDWR)
    except OSError as exc:
      os.unlink(self.path)
      raise SetupError(f'open fifo {self.path!r} failed: {exc.strerror}') from exc
    self._stream = os.fdopen(fd, 'w', encoding='utf-8')
    logger.info('streaming changes to %s', self.path)
    return self

  def close(self) -> None:
    if self._stream is None:
      return
    self._stream.close()
    self._stream = None
    if os.path.exists(self.path):
      os.unlink(self.path)

  def __enter__(self) -> 'StreamSink':
    return self.open()

  def __exit__(self, *exc) -> None:
    self.close()

  def fire(self, events: List[NormalizedEvent]) -> int:
    if self._stream is None:
      raise RuntimeError('stream sink is not open')
    for ev in events:
      self._stream.write(ev.target.path + '\n')
      self._stream.flush()
    return len(events)
