import argparse
from typing import List, Optional

import argcomplete

from .errors import UsageError
from .source import BACKENDS


class _Parser(argparse.ArgumentParser):
  '''ArgumentParser whose usage errors exit with status 1.'''

  def error(self, message: str):  # type: ignore[override]
    self.print_usage()
    self.exit(1, f'{self.prog}: error: {message}\n')


def build_parser() -> argparse.ArgumentParser:
  parser = _Parser(
      prog='onchange',
      description='Run a command, or stream file names to a FIFO, whenever '
                  'any of the files listed on stdin changes.',
      usage='%(prog)s [options] command [args ...] < filenames\n'
            '       %(prog)s [options] +fifo < filenames',
  )

  # positional: command or +fifo, everything after it belongs to the command
  parser.add_argument(
      'command',
      nargs=argparse.REMAINDER,
      help='Command to run on change, or "+PATH" to create a FIFO at PATH '
           'and write one changed file name per line to it.',
  )

  # backend
  parser.add_argument(
      '--backend',
      '-b',
      choices=BACKENDS,
      default='auto',
      help='Event source to use (default: pick by platform).',
  )

  # rearm retry policy
  parser.add_argument(
      '--retries',
      type=int,
      default=20,
      metavar='N',
      help='Attempts to reopen a missing file before giving up (default: 20).',
  )
  parser.add_argument(
      '--retry-interval',
      type=float,
      default=0.1,
      metavar='SEC',
      help='Delay between reopen attempts (default: 0.1 s).',
  )

  # verbosity
  parser.add_argument(
      '--verbose',
      '-v',
      action='count',
      default=0,
      help='Increase logging verbosity; repeat for more detail.',
  )
  return parser


def parse_argv(argv: Optional[List[str]] = None) -> argparse.Namespace:
  '''
  Parse command-line arguments for *onchange*.

  Parameters
  ----------
  argv
    A custom argument list (mainly for testing).  When None the
    function uses ``sys.argv[1:]`` automatically.

  Returns
  -------
  argparse.Namespace
    • command        : argv of the command to run (exec mode) or None
    • fifo           : FIFO path (stream mode) or None
    • backend        : 'auto' | 'kqueue' | 'inotify' | 'watchdog'
    • retries        : reopen attempts for a missing file
    • retry_interval : seconds between reopen attempts
    • verbose        : Verbosity count (-v, -vv, …)

  Raises
  ------
  UsageError
    When neither a command nor a +fifo is given.
  '''
  parser = build_parser()
  argcomplete.autocomplete(parser)
  args = parser.parse_args(argv)

  if not args.command:
    raise UsageError('no command given')
  if args.retries < 1:
    raise UsageError('--retries must be at least 1')

  args.fifo = None
  if args.command[0].startswith('+'):
    args.fifo = args.command[0][1:]
    if not args.fifo or len(args.command) > 1:
      raise UsageError('stream mode takes exactly one argument, +PATH')
    args.command = None
  return args
