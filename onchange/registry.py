# registry.py
'''
WatchedFile registry.

Every input path gets exactly one ``WatchedFile`` addressed by a stable
``index``.  Raw OS identifiers (kqueue descriptor, inotify watch descriptor,
watchdog token) are only ever looked up here, through ``resolve``, so a
rearm touches one field instead of invalidating references held elsewhere.
'''

from __future__ import annotations

import enum
import logging
import os
from typing import Dict, Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)


class FileState(enum.Enum):
  ACTIVE = 'active'
  PENDING_REARM = 'pending-rearm'
  FAILED = 'failed'


class WatchedFile:
  def __init__(self, index: int, path: str) -> None:
    self._path = path
    self.index = index
    self.fd: Optional[int] = None
    self.handle: Optional[int] = None
    self.state = FileState.PENDING_REARM

  @property
  def path(self) -> str:
    return self._path

  def __repr__(self) -> str:
    return (f'WatchedFile({self.index}, {self._path!r}, '
            f'handle={self.handle}, {self.state.value})')


class Registry:
  def __init__(self, paths: Iterable[str] = ()) -> None:
    self._files: List[WatchedFile] = []
    self._by_path: Dict[str, WatchedFile] = {}
    self._by_handle: Dict[int, List[WatchedFile]] = {}
    for p in paths:
      self.add(p)

  # ---------- membership ---------------------------------------------------
  def add(self, path: str) -> WatchedFile:
    '''Return the WatchedFile for *path*, creating it on first sight.'''
    existing = self._by_path.get(path)
    if existing is not None:
      logger.debug('duplicate input path %r ignored', path)
      return existing
    wf = WatchedFile(len(self._files), path)
    self._files.append(wf)
    self._by_path[path] = wf
    return wf

  def get(self, index: int) -> Optional[WatchedFile]:
    if 0 <= index < len(self._files):
      return self._files[index]
    return None

  def __iter__(self) -> Iterator[WatchedFile]:
    return iter(self._files)

  def __len__(self) -> int:
    return len(self._files)

  # ---------- handle bookkeeping ------------------------------------------
  def _unbind(self, wf: WatchedFile) -> None:
    bound = self._by_handle.get(wf.handle)
    if bound is None:
      return
    if wf in bound:
      bound.remove(wf)
    if not bound:
      del self._by_handle[wf.handle]

  def assign(self, wf: WatchedFile, handle: int) -> None:
    '''
    Bind a freshly registered *handle* to *wf* and mark it active.  Path
    based facilities hand out one handle per inode, so aliases of the same
    file (``a.txt``, ``./a.txt``, a symlink) end up sharing it.
    '''
    if wf.handle is not None:
      self._unbind(wf)
    wf.handle = handle
    wf.state = FileState.ACTIVE
    bound = self._by_handle.setdefault(handle, [])
    if bound:
      logger.debug('%s shares watch %d with %s', wf.path, handle, bound[0].path)
    bound.append(wf)

  def resolve_all(self, handle: int) -> List[WatchedFile]:
    '''Every active file bound to *handle*, in registry order.'''
    bound = self._by_handle.get(handle, ())
    return sorted(
      (wf for wf in bound if wf.state is FileState.ACTIVE and wf.handle == handle),
      key=lambda wf: wf.index,
    )

  def resolve(self, handle: int) -> Optional[WatchedFile]:
    '''Active file for *handle*, or None when the handle was superseded.'''
    files = self.resolve_all(handle)
    return files[0] if files else None

  def release(self, wf: WatchedFile) -> None:
    '''
    Drop *wf*'s current watch.  Closing a still-open descriptor also removes
    any kqueue registration attached to it, so no unregister follows.
    '''
    if wf.fd is not None:
      os.close(wf.fd)
      wf.fd = None
    if wf.handle is not None:
      self._unbind(wf)
      wf.handle = None
    if wf.state is not FileState.FAILED:
      wf.state = FileState.PENDING_REARM

  def fail(self, wf: WatchedFile) -> None:
    self.release(wf)
    wf.state = FileState.FAILED
