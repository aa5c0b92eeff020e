# config.py
from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Config — watcher knobs, all optional
# ─────────────────────────────────────────────────────────────────────────────
class Config:
  def __init__(
    self,
    retry_attempts: int = 20,
    retry_interval: float = 0.1,
    backend: str = 'auto',
    verbosity: int = 0,
  ) -> None:
    self.retry_attempts = retry_attempts    # opens tried before giving up
    self.retry_interval = retry_interval    # seconds between opens
    self.backend = backend
    self.verbosity = verbosity
