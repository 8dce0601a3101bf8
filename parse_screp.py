#!/usr/bin/env python3
"""
Brood War Replay Parser
Runs the screp command line tool on a .rep file and decodes its JSON output
into typed commands, then prints the replay timeline.

Usage: python parse_screp.py <replay_file.rep>
"""

import json
import os
import subprocess
import sys
from typing import Any, Callable, Dict, List, Optional

from errors import ParserUnavailableError, ReplayParseError, ReplayTimelineError
from replay_model import (
    BuildCommand,
    BuildingMorphCommand,
    CancelTrainCommand,
    ChatCommand,
    Command,
    HotkeyCommand,
    LandCommand,
    LiftOffCommand,
    OtherCommand,
    Player,
    Replay,
    ReplayHeader,
    Roster,
    SelectCommand,
    TargetedOrderCommand,
    TechCommand,
    TrainCommand,
    UpgradeCommand,
)

DEFAULT_SCREP_PATH = 'screp'
DEFAULT_PARSE_TIMEOUT = 60.0


def _name(value: Any) -> str:
    """Name of a screp enum value such as {"Name": "Barracks", "ID": 111}."""
    if isinstance(value, dict):
        name = value.get('Name')
        if name:
            return name
        if value.get('ID') is not None:
            return f"Unknown 0x{value['ID']:x}"
        return 'Unknown'
    if value is None:
        return 'Unknown'
    return str(value)


def _pos(raw: dict):
    pos = raw.get('Pos') or {}
    return int(pos.get('X', 0)), int(pos.get('Y', 0))


def _normalize_type_name(name: str) -> str:
    """'Targeted Order121' -> 'TargetedOrder'"""
    name = name.replace(' ', '')
    if name.endswith('121'):
        name = name[:-3]
    return name


def _decode_build(raw, frame, pid):
    # Building lands share the Build command layout; the order tells them apart
    order = _name(raw.get('Order'))
    if 'Land' in order:
        x, y = _pos(raw)
        return LandCommand(frame, pid, unit=_name(raw.get('Unit')), x=x, y=y)
    return BuildCommand(frame, pid, unit=_name(raw.get('Unit')))


def _decode_land(raw, frame, pid):
    x, y = _pos(raw)
    return LandCommand(frame, pid, unit=_name(raw.get('Unit')), x=x, y=y)


def _decode_lift_off(raw, frame, pid):
    x, y = _pos(raw)
    return LiftOffCommand(frame, pid, x=x, y=y)


def _decode_select(raw, frame, pid):
    return SelectCommand(frame, pid, unit_tags=tuple(int(t) for t in raw.get('UnitTags') or ()))


# Normalized screp command type name -> decoder
COMMAND_DECODERS: Dict[str, Callable[[dict, int, int], Command]] = {
    'Build': _decode_build,
    'Land': _decode_land,
    'Train': lambda raw, frame, pid: TrainCommand(frame, pid, unit=_name(raw.get('Unit'))),
    'UnitMorph': lambda raw, frame, pid: TrainCommand(frame, pid, unit=_name(raw.get('Unit'))),
    'BuildingMorph': lambda raw, frame, pid: BuildingMorphCommand(frame, pid, unit=_name(raw.get('Unit'))),
    'CancelTrain': lambda raw, frame, pid: CancelTrainCommand(frame, pid, unit_tag=int(raw.get('UnitTag', 0))),
    'Upgrade': lambda raw, frame, pid: UpgradeCommand(frame, pid, upgrade=_name(raw.get('Upgrade'))),
    'Tech': lambda raw, frame, pid: TechCommand(frame, pid, tech=_name(raw.get('Tech'))),
    'TargetedOrder': lambda raw, frame, pid: TargetedOrderCommand(frame, pid, order=_name(raw.get('Order'))),
    'Hotkey': lambda raw, frame, pid: HotkeyCommand(
        frame, pid, hotkey_type=_name(raw.get('HotkeyType')), group=int(raw.get('Group', 0))),
    'Select': _decode_select,
    'ShiftSelect': _decode_select,
    'ShiftDeselect': _decode_select,
    'LiftOff': _decode_lift_off,
    'Chat': lambda raw, frame, pid: ChatCommand(frame, pid, message=raw.get('Message') or ''),
}


def decode_command(raw: dict) -> Command:
    """Decode one entry of screp's Commands.Cmds list."""
    frame = int(raw['Frame'])
    if frame < 0:
        raise ValueError(f"negative frame {frame}")
    pid = int(raw['PlayerID'])
    type_name = _name(raw.get('Type'))
    decoder = COMMAND_DECODERS.get(_normalize_type_name(type_name))
    if decoder is None:
        return OtherCommand(frame, pid, type_name=type_name)
    return decoder(raw, frame, pid)


def decode_player(raw: dict) -> Player:
    race = raw.get('Race')
    return Player(
        player_id=int(raw['ID']),
        name=raw.get('Name') or '',
        slot_id=raw.get('SlotID'),
        race=_name(race) if race is not None else None,
        team=raw.get('Team'),
        type=_name(raw['Type']) if raw.get('Type') is not None else None,
        observer=bool(raw.get('Observer', False)),
        color=_name(raw['Color']) if raw.get('Color') is not None else None,
    )


def decode_header(raw: dict) -> ReplayHeader:
    players = [decode_player(p) for p in raw.get('Players') or []]
    return ReplayHeader(
        version=raw.get('Version') or '',
        map_name=raw.get('Map') or '',
        roster=Roster(players),
        frames=int(raw.get('Frames') or 0),
    )


def decode_replay(data: dict) -> Replay:
    """Decode the full screp JSON document.

    Raises ReplayParseError if the document does not have the expected shape.
    """
    try:
        header = decode_header(data['Header'])
        cmds = (data.get('Commands') or {}).get('Cmds') or []
        commands = tuple(decode_command(c) for c in cmds)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ReplayParseError(f"Unexpected screp output: {e!r}") from e

    for prev, cur in zip(commands, commands[1:]):
        if cur.frame < prev.frame:
            raise ReplayParseError(f"Commands out of order at frame {cur.frame}")

    return Replay(header=header, commands=commands)


class ScrepParser:
    """Replay parser backed by the screp command line tool."""

    def __init__(self, screp_path: str = DEFAULT_SCREP_PATH, timeout: Optional[float] = DEFAULT_PARSE_TIMEOUT):
        self.screp_path = screp_path
        self.timeout = timeout

    def command_line(self, replay_path: str) -> List[str]:
        return [self.screp_path, '-cmds', replay_path]

    def run(self, replay_path: str) -> dict:
        """Run screp and return its decoded JSON output."""
        try:
            process = subprocess.run(
                self.command_line(replay_path),
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ParserUnavailableError(f"screp not found at {self.screp_path!r}") from e
        except subprocess.TimeoutExpired as e:
            raise ReplayParseError(f"screp timed out after {self.timeout}s") from e

        if process.returncode != 0:
            error_msg = process.stderr.decode('utf-8', 'replace').strip() if process.stderr else 'Unknown error'
            raise ReplayParseError(f"screp exited with {process.returncode}: {error_msg}")

        try:
            return json.loads(process.stdout)
        except ValueError as e:
            raise ReplayParseError(f"screp produced invalid JSON: {e}") from e

    def __call__(self, replay_path: str) -> Replay:
        return decode_replay(self.run(replay_path))


def main():
    import argparse

    from replay_analyzers import PROFILES, build_envelope, get_profile

    arg_parser = argparse.ArgumentParser(
        description='Extract the command timeline from a Brood War replay (.rep)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python parse_screp.py game.rep
  python parse_screp.py game.rep --profile build-order
  python parse_screp.py game.rep --output timeline.json

Requires the screp tool (https://github.com/icza/screp) on PATH or via --screp.
        """
    )
    arg_parser.add_argument('replay', help='Path to .rep file')
    arg_parser.add_argument('--profile', default='full', choices=sorted(PROFILES),
                            help='Which commands to include (default: full)')
    arg_parser.add_argument('--screp', default=os.environ.get('SCREP_PATH', DEFAULT_SCREP_PATH),
                            help='Path to the screp executable (default: $SCREP_PATH or screp)')
    arg_parser.add_argument('--timeout', type=float, default=DEFAULT_PARSE_TIMEOUT,
                            help='Seconds to wait for screp (default: 60)')
    arg_parser.add_argument('--output', '-o',
                            help='Write JSON to this file instead of stdout')

    args = arg_parser.parse_args()

    if not os.path.exists(args.replay):
        print(f"Error: File not found: {args.replay}")
        sys.exit(1)

    parser = ScrepParser(args.screp, timeout=args.timeout)
    try:
        envelope = build_envelope(parser(args.replay), get_profile(args.profile))
    except ReplayTimelineError as e:
        print(f"Error: {e.message}: {e}")
        sys.exit(1)

    data = envelope.to_dict()
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        print(f"Exported {len(envelope.events):,} events to: {args.output}")
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))


if __name__ == '__main__':
    main()
