# source.py
'''
Event source interface and back-end selection.

    register(file)       -> handle      (raises WatchError)
    unregister(file)
    wait(timeout=None)   -> EventBatch  (seconds; None blocks, 0 polls)

Concrete sources:
    kqueue    native VNODE events              (BSD, macOS)
    inotify   per-path inotify watches         (Linux)
    watchdog  observer thread, portable        (everything else)
'''

from __future__ import annotations

import abc
import logging
import select
import sys
from typing import Optional

from .errors import SetupError
from .events import EventBatch
from .registry import Registry, WatchedFile

logger = logging.getLogger(__name__)

BACKENDS = ('auto', 'kqueue', 'inotify', 'watchdog')


class EventSource(abc.ABC):
  name = 'abstract'

  def __init__(self, registry: Registry) -> None:
    self.registry = registry

  @abc.abstractmethod
  def register(self, wf: WatchedFile) -> int:
    '''Start watching *wf* (whose ``fd`` is open) and return its handle.'''

  @abc.abstractmethod
  def unregister(self, wf: WatchedFile) -> None:
    '''Stop watching *wf*; its handle stays assigned until released.'''

  @abc.abstractmethod
  def wait(self, timeout: Optional[float] = None) -> EventBatch:
    '''Block until at least one event arrives or *timeout* elapses.'''

  def close(self) -> None:
    pass

  def __enter__(self) -> 'EventSource':
    return self

  def __exit__(self, *exc) -> None:
    self.close()


def default_backend() -> str:
  if hasattr(select, 'kqueue'):
    return 'kqueue'
  if sys.platform.startswith('linux'):
    return 'inotify'
  return 'watchdog'


def select_source(
  registry: Registry,
  backend: str = 'auto',
  input_fd: Optional[int] = None,
) -> EventSource:
  '''Instantiate the event source for *backend* ('auto' → platform pick).'''
  if backend not in BACKENDS:
    raise SetupError(f'unknown backend {backend!r} (choose from {", ".join(BACKENDS)})')
  if backend == 'auto':
    backend = default_backend()
  try:
    if backend == 'kqueue':
      from .kqueue_source import KqueueSource
      source: EventSource = KqueueSource(registry)
    elif backend == 'inotify':
      from .inotify_source import InotifySource
      source = InotifySource(registry, input_fd=input_fd)
    else:
      from .dev_watchdog import WatchdogSource
      source = WatchdogSource(registry)
  except (OSError, AttributeError, ImportError) as exc:
    raise SetupError(f'cannot create {backend} event source: {exc}') from exc
  logger.info('using %s event source', source.name)
  return source
