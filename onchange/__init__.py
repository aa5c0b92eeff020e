# onchange/__init__.py
from importlib.metadata import version, PackageNotFoundError

try:
  __version__ = version(__name__)
except PackageNotFoundError:      # development mode
  __version__ = '0.0.0.dev0'

from .config import Config                                    # re-export
from .events import Kind, NormalizedEvent, EventBatch         # re-export
from .registry import Registry, WatchedFile, FileState        # re-export
from .source import EventSource, select_source                # re-export
from .rearm import RearmManager, retry                        # re-export
from .dispatch import DispatchLoop                            # re-export
from .sinks import CommandSink, StreamSink                    # re-export

__all__ = [
  'Config',
  'Kind', 'NormalizedEvent', 'EventBatch',
  'Registry', 'WatchedFile', 'FileState',
  'EventSource', 'select_source',
  'RearmManager', 'retry',
  'DispatchLoop',
  'CommandSink', 'StreamSink',
]
