# rearm.py
'''
Keeping watches alive across delete / replace.

    retry(fn, attempts, interval, retry_on, sleep)  -> fn()
    RearmManager(registry, source, cfg)
        .arm(file)     open with retry + register   (startup and rearm)
        .rearm(file)   release stale watch, then arm
'''

from __future__ import annotations

import logging
import os
import time
from typing import Callable, Tuple, Type, TypeVar

from .config import Config
from .errors import WatchError
from .registry import FileState, Registry, WatchedFile
from .source import EventSource

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry(
  fn: Callable[[], T],
  attempts: int = 20,
  interval: float = 0.1,
  retry_on: Tuple[Type[BaseException], ...] = (FileNotFoundError,),
  sleep: Callable[[float], None] = time.sleep,
) -> T:
  '''
  Call *fn* up to *attempts* times, sleeping *interval* seconds after each
  failure listed in *retry_on*.  The last failure propagates.
  '''
  if attempts < 1:
    raise ValueError('attempts must be >= 1')
  for attempt in range(1, attempts + 1):
    try:
      return fn()
    except retry_on:
      if attempt == attempts:
        raise
      sleep(interval)
  raise AssertionError('unreachable')


class RearmManager:
  def __init__(
    self,
    registry: Registry,
    source: EventSource,
    cfg: Config | None = None,
    sleep: Callable[[float], None] = time.sleep,
  ) -> None:
    self.registry = registry
    self.source = source
    self.cfg = cfg or Config()
    self._sleep = sleep

  def _open(self, wf: WatchedFile) -> int:
    return retry(
      lambda: os.open(wf.path, os.O_RDONLY),
      attempts=self.cfg.retry_attempts,
      interval=self.cfg.retry_interval,
      sleep=self._sleep,
    )

  def arm(self, wf: WatchedFile) -> None:
    try:
      wf.fd = self._open(wf)
    except OSError as exc:
      self.registry.fail(wf)
      raise WatchError(wf.path, exc.strerror or str(exc)) from exc

    try:
      handle = self.source.register(wf)
    except WatchError:
      self.registry.fail(wf)
      raise
    self.registry.assign(wf, handle)
    logger.debug('watching %s (handle %d)', wf.path, handle)

  def rearm(self, wf: WatchedFile) -> None:
    logger.info('%s was deleted or replaced; rearming', wf.path)
    self.registry.release(wf)
    self.arm(wf)

  def arm_all(self) -> None:
    for wf in self.registry:
      self.arm(wf)

  def disarm_all(self) -> None:
    '''Unregister and release every live watch (shutdown).'''
    for wf in self.registry:
      if wf.state is FileState.ACTIVE:
        self.source.unregister(wf)
      self.registry.release(wf)
