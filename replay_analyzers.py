"""
Timeline extraction for parsed replays.
Turns the ordered command stream into display events and builds the
response envelope returned by /analyze.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Tuple

from errors import UnknownPlayerError
from replay_model import Command, CommandKind, Replay, Roster

# Brood War "fastest" speed: 1500 frames per minute, 25 per second (truncated)
FRAMES_PER_MINUTE = 1500
FRAMES_PER_SECOND = 25


def frame_to_time(frame: int) -> str:
    """Convert frame number to m:ss format"""
    minutes = frame // FRAMES_PER_MINUTE
    seconds = (frame // FRAMES_PER_SECOND) % 60
    return f"{minutes}:{seconds:02d}"


# kind -> (event type, action text)
ACTION_TABLE: Dict[CommandKind, Tuple[str, Callable[[Command], str]]] = {
    CommandKind.BUILD: ('Build', lambda c: f"Build {c.unit}"),
    CommandKind.TRAIN: ('Train', lambda c: f"Train {c.unit}"),
    CommandKind.BUILDING_MORPH: ('BuildingMorph', lambda c: f"Morph Building to {c.unit}"),
    CommandKind.CANCEL_TRAIN: ('CancelTrain', lambda c: f"Cancel Train Unit (Tag: {c.unit_tag:x})"),
    CommandKind.UPGRADE: ('Upgrade', lambda c: f"Start Upgrade: {c.upgrade}"),
    CommandKind.TECH: ('Tech', lambda c: f"Research Tech: {c.tech}"),
    CommandKind.TARGETED_ORDER: ('Order', lambda c: f"Order: {c.order}"),
    CommandKind.HOTKEY: ('Hotkey', lambda c: f"Hotkey: {c.hotkey_type} (Group: {c.group})"),
    CommandKind.SELECT: ('Select', lambda c: f"Select {len(c.unit_tags)} units"),
    CommandKind.LAND: ('Land', lambda c: f"Land {c.unit} at ({c.x}, {c.y})"),
    CommandKind.LIFT_OFF: ('LiftOff', lambda c: f"Lift Off at ({c.x}, {c.y})"),
    CommandKind.CHAT: ('Chat', lambda c: f"Chat: {c.message}"),
}


@dataclass(frozen=True)
class ClassificationProfile:
    """Which command kinds become events, and the envelope key they go under."""
    name: str
    kinds: FrozenSet[CommandKind]
    events_key: str


FULL_EVENT_LOG = ClassificationProfile(
    name='full',
    kinds=frozenset(ACTION_TABLE),
    events_key='events',
)

BUILD_ORDER = ClassificationProfile(
    name='build-order',
    kinds=frozenset({
        CommandKind.BUILD,
        CommandKind.TRAIN,
        CommandKind.BUILDING_MORPH,
        CommandKind.CANCEL_TRAIN,
        CommandKind.UPGRADE,
        CommandKind.TECH,
    }),
    events_key='buildOrders',
)

PROFILES: Dict[str, ClassificationProfile] = {
    FULL_EVENT_LOG.name: FULL_EVENT_LOG,
    BUILD_ORDER.name: BUILD_ORDER,
}


def get_profile(name: str) -> ClassificationProfile:
    """Look up a classification profile by name."""
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown profile {name!r} (expected one of: {', '.join(sorted(PROFILES))})"
        ) from None


@dataclass(frozen=True)
class Event:
    time: str
    player: str
    action: str
    type: str

    def to_dict(self) -> dict:
        return {
            'time': self.time,
            'player': self.player,
            'action': self.action,
            'type': self.type,
        }


def resolve_player_name(roster: Roster, command: Command) -> str:
    """Resolve the issuing player's name, failing on ids missing from the roster."""
    player = roster.get(command.player_id)
    if player is None:
        raise UnknownPlayerError(command.player_id, command.frame)
    return player.name


def extract_events(commands: Iterable[Command], roster: Roster,
                   profile: ClassificationProfile = FULL_EVENT_LOG) -> List[Event]:
    """Build the event list from commands, keeping their original order.

    Commands whose kind is not in the profile are skipped. Raises
    UnknownPlayerError if a described command names a player outside the roster.
    """
    events = []
    for command in commands:
        if command.kind not in profile.kinds:
            continue
        event_type, describe = ACTION_TABLE[command.kind]
        events.append(Event(
            time=frame_to_time(command.frame),
            player=resolve_player_name(roster, command),
            action=describe(command),
            type=event_type,
        ))
    return events


@dataclass(frozen=True)
class ResponseEnvelope:
    game_version: str
    map_name: str
    players: List[dict]
    events: List[Event]
    events_key: str = FULL_EVENT_LOG.events_key

    def to_dict(self) -> dict:
        return {
            'gameVersion': self.game_version,
            'mapName': self.map_name,
            'players': self.players,
            self.events_key: [e.to_dict() for e in self.events],
        }


def build_envelope(replay: Replay, profile: ClassificationProfile = FULL_EVENT_LOG) -> ResponseEnvelope:
    """Extract the timeline and wrap it with the match metadata."""
    header = replay.header
    return ResponseEnvelope(
        game_version=header.version,
        map_name=header.map_name,
        players=header.roster.to_list(),
        events=extract_events(replay.commands, header.roster, profile),
        events_key=profile.events_key,
    )
