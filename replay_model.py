"""
Typed view of a decoded Brood War replay: header, player roster and the
ordered command stream. One dataclass per command kind.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Iterator, List, Optional, Tuple


class CommandKind(str, Enum):
    BUILD = 'Build'
    TRAIN = 'Train'
    BUILDING_MORPH = 'BuildingMorph'
    CANCEL_TRAIN = 'CancelTrain'
    UPGRADE = 'Upgrade'
    TECH = 'Tech'
    TARGETED_ORDER = 'TargetedOrder'
    HOTKEY = 'Hotkey'
    SELECT = 'Select'
    LAND = 'Land'
    LIFT_OFF = 'LiftOff'
    CHAT = 'Chat'
    OTHER = 'Other'


@dataclass(frozen=True)
class Command:
    frame: int
    player_id: int

    kind: ClassVar[CommandKind] = CommandKind.OTHER


@dataclass(frozen=True)
class BuildCommand(Command):
    unit: str
    kind: ClassVar[CommandKind] = CommandKind.BUILD


@dataclass(frozen=True)
class TrainCommand(Command):
    unit: str
    kind: ClassVar[CommandKind] = CommandKind.TRAIN


@dataclass(frozen=True)
class BuildingMorphCommand(Command):
    unit: str
    kind: ClassVar[CommandKind] = CommandKind.BUILDING_MORPH


@dataclass(frozen=True)
class CancelTrainCommand(Command):
    unit_tag: int
    kind: ClassVar[CommandKind] = CommandKind.CANCEL_TRAIN


@dataclass(frozen=True)
class UpgradeCommand(Command):
    upgrade: str
    kind: ClassVar[CommandKind] = CommandKind.UPGRADE


@dataclass(frozen=True)
class TechCommand(Command):
    tech: str
    kind: ClassVar[CommandKind] = CommandKind.TECH


@dataclass(frozen=True)
class TargetedOrderCommand(Command):
    order: str
    kind: ClassVar[CommandKind] = CommandKind.TARGETED_ORDER


@dataclass(frozen=True)
class HotkeyCommand(Command):
    hotkey_type: str
    group: int
    kind: ClassVar[CommandKind] = CommandKind.HOTKEY


@dataclass(frozen=True)
class SelectCommand(Command):
    unit_tags: Tuple[int, ...]
    kind: ClassVar[CommandKind] = CommandKind.SELECT


@dataclass(frozen=True)
class LandCommand(Command):
    unit: str
    x: int
    y: int
    kind: ClassVar[CommandKind] = CommandKind.LAND


@dataclass(frozen=True)
class LiftOffCommand(Command):
    x: int
    y: int
    kind: ClassVar[CommandKind] = CommandKind.LIFT_OFF


@dataclass(frozen=True)
class ChatCommand(Command):
    message: str
    kind: ClassVar[CommandKind] = CommandKind.CHAT


@dataclass(frozen=True)
class OtherCommand(Command):
    """Any command type the timeline does not describe (Right Click, Stop, ...)."""
    type_name: str


@dataclass(frozen=True)
class Player:
    player_id: int
    name: str
    slot_id: Optional[int] = None
    race: Optional[str] = None
    team: Optional[int] = None
    type: Optional[str] = None
    observer: bool = False
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'id': self.player_id,
            'slotId': self.slot_id,
            'name': self.name,
            'race': self.race,
            'team': self.team,
            'type': self.type,
            'observer': self.observer,
            'color': self.color,
        }


class Roster:
    """Ordered, fixed set of players, looked up by player id."""

    def __init__(self, players=()):
        self._players: Tuple[Player, ...] = tuple(players)
        self._by_id: Dict[int, Player] = {p.player_id: p for p in self._players}

    def get(self, player_id: int) -> Optional[Player]:
        return self._by_id.get(player_id)

    def __iter__(self) -> Iterator[Player]:
        return iter(self._players)

    def to_list(self) -> List[dict]:
        return [p.to_dict() for p in self._players]


@dataclass(frozen=True)
class ReplayHeader:
    version: str
    map_name: str
    roster: Roster
    frames: int = 0


@dataclass(frozen=True)
class Replay:
    header: ReplayHeader
    commands: Tuple[Command, ...] = field(default_factory=tuple)
