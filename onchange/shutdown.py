# shutdown.py
'''
Scoped shutdown: SIGINT / SIGTERM become an ``Interrupted`` exception, so
every resource entered into the context (FIFO, event source, watches) is
released by normal unwinding instead of from inside a signal handler.

    with ShutdownContext() as ctx:
      sink = ctx.enter_context(StreamSink(path))
      ...
'''

from __future__ import annotations

import contextlib
import logging
import signal
from typing import Any, Dict, Sequence

from .errors import Interrupted, SetupError

logger = logging.getLogger(__name__)

SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _raise_interrupted(signum: int, frame) -> None:
  raise Interrupted(signum)


class ShutdownContext(contextlib.ExitStack):
  def __init__(self, signals: Sequence[int] = SIGNALS) -> None:
    super().__init__()
    self._signals = tuple(signals)
    self._previous: Dict[int, Any] = {}

  def __enter__(self) -> 'ShutdownContext':
    super().__enter__()
    try:
      for sig in self._signals:
        self._previous[sig] = signal.signal(sig, _raise_interrupted)
    except (OSError, ValueError) as exc:
      self._restore()
      raise SetupError(f'cannot install signal handlers: {exc}') from exc
    self.callback(self._restore)
    logger.debug('trapping signals %s', ', '.join(signal.Signals(s).name for s in self._signals))
    return self

  def _restore(self) -> None:
    while self._previous:
      sig, handler = self._previous.popitem()
      signal.signal(sig, handler)
