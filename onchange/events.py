# events.py
'''
Normalized event model shared by every event source.

    Kind            : flag set  WRITE | EXTEND | DELETE | RENAME | ATTRIB
    NormalizedEvent : (target WatchedFile, non-empty Kind)
    EventBatch      : events from one blocking wait + out-of-band input flag
'''

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List

if TYPE_CHECKING:
  from .registry import WatchedFile


class Kind(enum.Flag):
  WRITE = enum.auto()
  EXTEND = enum.auto()
  DELETE = enum.auto()
  RENAME = enum.auto()
  ATTRIB = enum.auto()


NONE = Kind(0)
CHANGE_WORTHY = Kind.DELETE | Kind.WRITE | Kind.EXTEND


def translate(mask: int, table: Dict[int, Kind]) -> Kind:
  '''Fold every bit of *mask* found in *table* into one Kind (maybe empty).'''
  kinds = NONE
  for bit, kind in table.items():
    if mask & bit:
      kinds |= kind
  return kinds


def kind_names(kinds: Kind) -> str:
  return '|'.join(k.name for k in Kind if k in kinds) or '-'


@dataclass
class NormalizedEvent:
  target: 'WatchedFile'
  kinds: Kind

  def __post_init__(self) -> None:
    if not self.kinds:
      raise ValueError(f'empty kind set for {self.target.path!r}')

  @property
  def change_worthy(self) -> bool:
    return bool(self.kinds & CHANGE_WORTHY)

  def __repr__(self) -> str:
    return f'NormalizedEvent({self.target.path!r}, {kind_names(self.kinds)})'


@dataclass
class EventBatch:
  '''
  Everything one ``wait`` produced.  Order is discovery order only: all
  members are treated as simultaneous.
  '''
  events: List[NormalizedEvent] = field(default_factory=list)
  input_ready: bool = False

  def __iter__(self) -> Iterator[NormalizedEvent]:
    return iter(self.events)

  def __len__(self) -> int:
    return len(self.events)

  def coalesced(self) -> List[NormalizedEvent]:
    '''Union kinds per target, keeping the first-seen order of targets.'''
    merged: Dict[int, NormalizedEvent] = {}
    for ev in self.events:
      seen = merged.get(ev.target.index)
      if seen is None:
        merged[ev.target.index] = NormalizedEvent(ev.target, ev.kinds)
      else:
        seen.kinds |= ev.kinds
    return list(merged.values())
