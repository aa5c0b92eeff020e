# errors.py
'''
Error taxonomy.

    OnchangeError
      ├─ UsageError   : bad command line or empty file list      → exit 1
      ├─ SetupError   : fd limit, FIFO, signals, backend choice  → exit 1
      ├─ WatchError   : a file cannot be opened / registered     → exit 1
      └─ Interrupted  : SIGINT / SIGTERM                          → exit 0
'''

from __future__ import annotations


class OnchangeError(Exception):
  pass


class UsageError(OnchangeError):
  pass


class SetupError(OnchangeError):
  pass


class WatchError(OnchangeError):
  def __init__(self, path: str, reason: str) -> None:
    super().__init__(f'cannot watch {path!r}: {reason}')
    self.path = path
    self.reason = reason


class Interrupted(OnchangeError):
  def __init__(self, signum: int) -> None:
    super().__init__(f'interrupted by signal {signum}')
    self.signum = signum
