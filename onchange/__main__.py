# __main__.py
from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO

from .config import Config
from .dev_argparse import build_parser, parse_argv
from .dispatch import DispatchLoop
from .errors import Interrupted, OnchangeError, UsageError
from .parse import raise_fd_limit, read_file_list
from .rearm import RearmManager
from .registry import Registry
from .shutdown import ShutdownContext
from .sinks import CommandSink, StreamSink
from .source import select_source

logger = logging.getLogger('onchange')

_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _setup_logging(verbosity: int) -> None:
  logging.basicConfig(
    level=_LEVELS.get(verbosity, logging.DEBUG),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    stream=sys.stderr,
  )


def _fileno(stream: TextIO) -> Optional[int]:
  try:
    return stream.fileno()
  except (OSError, ValueError):      # StringIO and friends
    return None


def watch(args, cfg: Config, stdin: TextIO, max_batches: Optional[int] = None) -> None:
  '''Set everything up around the dispatch loop and run it.'''
  with ShutdownContext() as ctx:
    limit = raise_fd_limit()
    paths = read_file_list(stdin, limit)
    if not paths:
      raise UsageError('no files to watch on standard input')

    if args.fifo is not None:
      sink = ctx.enter_context(StreamSink(args.fifo))
    else:
      sink = CommandSink(args.command)

    registry = Registry(paths)
    source = ctx.enter_context(select_source(registry, cfg.backend, input_fd=_fileno(stdin)))
    rearm = RearmManager(registry, source, cfg)
    ctx.callback(rearm.disarm_all)
    rearm.arm_all()
    logger.info('watching %d file(s)', len(registry))

    DispatchLoop(source, rearm, sink).run(max_batches)


def main(argv: Optional[List[str]] = None) -> int:
  try:
    args = parse_argv(argv)
  except UsageError as exc:
    build_parser().print_usage(sys.stderr)
    print(f'onchange: {exc}', file=sys.stderr)
    return 1

  cfg = Config(
    retry_attempts=args.retries,
    retry_interval=args.retry_interval,
    backend=args.backend,
    verbosity=args.verbose,
  )
  _setup_logging(cfg.verbosity)

  try:
    watch(args, cfg, sys.stdin)
  except Interrupted as exc:
    logger.info('%s, exiting', exc)
    return 0
  except KeyboardInterrupt:
    return 0
  except UsageError as exc:
    build_parser().print_usage(sys.stderr)
    print(f'onchange: {exc}', file=sys.stderr)
    return 1
  except OnchangeError as exc:
    logger.debug('fatal', exc_info=True)
    print(f'onchange: {exc}', file=sys.stderr)
    return 1
  return 0


if __name__ == '__main__':
  sys.exit(main())
