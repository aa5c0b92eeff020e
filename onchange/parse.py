# parse.py
'''
Input helpers: the list of files to watch and the descriptor limit that caps
it.
'''

from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO

from .errors import SetupError

logger = logging.getLogger(__name__)


def read_file_list(stream: TextIO, limit: Optional[int] = None) -> List[str]:
  '''
  One path per line; the trailing newline is stripped, empty lines are
  skipped, repeated paths are kept once.  At most *limit* paths are read.
  '''
  paths: List[str] = []
  seen = set()
  for line in stream:
    path = line[:-1] if line.endswith('\n') else line
    if not path or path in seen:
      continue
    if limit is not None and len(paths) >= limit:
      logger.warning('more than %d files given; ignoring the rest', limit)
      break
    seen.add(path)
    paths.append(path)
  return paths


def raise_fd_limit() -> Optional[int]:
  '''
  Raise the soft RLIMIT_NOFILE to the hard limit and return the soft limit,
  which caps how many files can be watched.  None where rlimits don't exist.
  '''
  if sys.platform == 'win32':
    return None
  import resource

  try:
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    if hard != resource.RLIM_INFINITY and soft < hard:
      resource.setrlimit(resource.RLIMIT_NOFILE, (hard, hard))
      soft = hard
  except (OSError, ValueError) as exc:
    raise SetupError(f'cannot adjust file descriptor limit: {exc}') from exc

  if soft == resource.RLIM_INFINITY:
    return None
  logger.debug('file descriptor limit %d', soft)
  return soft
