"""Tests for timeline extraction."""

import json

import pytest
from errors import UnknownPlayerError
from replay_analyzers import (
    BUILD_ORDER,
    FULL_EVENT_LOG,
    Event,
    build_envelope,
    extract_events,
    frame_to_time,
    get_profile,
)
from replay_model import (
    BuildCommand,
    BuildingMorphCommand,
    CancelTrainCommand,
    ChatCommand,
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


@pytest.fixture
def roster():
    return Roster([
        Player(player_id=0, name='Alice', race='Terran'),
        Player(player_id=1, name='Bob', race='Zerg'),
    ])


def make_replay(commands, roster):
    header = ReplayHeader(version='1.16.1', map_name='Fighting Spirit', roster=roster)
    return Replay(header=header, commands=tuple(commands))


class TestFrameToTime:
    """Tests for frame_to_time."""

    def test_zero(self):
        assert frame_to_time(0) == "0:00"

    def test_one_minute(self):
        assert frame_to_time(1500) == "1:00"

    def test_one_minute_one_second(self):
        assert frame_to_time(1525) == "1:01"

    def test_truncates_instead_of_rounding(self):
        """Test that partial seconds are dropped."""
        assert frame_to_time(37499) == "24:59"
        assert frame_to_time(24) == "0:00"
        assert frame_to_time(1524) == "1:00"

    def test_long_game(self):
        """Test minutes are not wrapped at 60."""
        assert frame_to_time(1500 * 75 + 25 * 7) == "75:07"


class TestActionText:
    """Tests for the per-kind action descriptions."""

    @pytest.mark.parametrize('command, action, event_type', [
        (BuildCommand(0, 0, unit='Barracks'), 'Build Barracks', 'Build'),
        (TrainCommand(0, 0, unit='Marine'), 'Train Marine', 'Train'),
        (BuildingMorphCommand(0, 0, unit='Lair'), 'Morph Building to Lair', 'BuildingMorph'),
        (CancelTrainCommand(0, 0, unit_tag=0x2A), 'Cancel Train Unit (Tag: 2a)', 'CancelTrain'),
        (UpgradeCommand(0, 0, upgrade='U-238 Shells'), 'Start Upgrade: U-238 Shells', 'Upgrade'),
        (TechCommand(0, 0, tech='Stim Packs'), 'Research Tech: Stim Packs', 'Tech'),
        (TargetedOrderCommand(0, 0, order='Attack Move'), 'Order: Attack Move', 'Order'),
        (HotkeyCommand(0, 0, hotkey_type='Assign', group=4), 'Hotkey: Assign (Group: 4)', 'Hotkey'),
        (SelectCommand(0, 0, unit_tags=(1, 2, 3)), 'Select 3 units', 'Select'),
        (LandCommand(0, 0, unit='Factory', x=100, y=200), 'Land Factory at (100, 200)', 'Land'),
        (LiftOffCommand(0, 0, x=30, y=40), 'Lift Off at (30, 40)', 'LiftOff'),
        (ChatCommand(0, 0, message='gl hf'), 'Chat: gl hf', 'Chat'),
    ])
    def test_action(self, roster, command, action, event_type):
        events = extract_events([command], roster)
        assert events == [Event(time='0:00', player='Alice', action=action, type=event_type)]

    def test_cancel_train_tag_is_lowercase_hex(self, roster):
        events = extract_events([CancelTrainCommand(0, 1, unit_tag=0xBEEF)], roster)
        assert events[0].action == 'Cancel Train Unit (Tag: beef)'

    def test_select_no_units(self, roster):
        events = extract_events([SelectCommand(0, 0, unit_tags=())], roster)
        assert events[0].action == 'Select 0 units'


class TestExtractEvents:
    """Tests for extract_events."""

    def test_empty(self, roster):
        assert extract_events([], roster) == []

    def test_unknown_kinds_skipped(self, roster):
        commands = [
            OtherCommand(0, 0, type_name='Right Click'),
            OtherCommand(10, 1, type_name='Stop'),
        ]
        assert extract_events(commands, roster) == []

    def test_order_preserved_around_unknown_kinds(self, roster):
        """Test that filtered commands do not reorder the rest."""
        commands = [
            BuildCommand(0, 0, unit='Supply Depot'),
            OtherCommand(5, 1, type_name='Right Click'),
            TrainCommand(25, 1, unit='Drone'),
            OtherCommand(30, 0, type_name='Keep Alive'),
            ChatCommand(1500, 0, message='gg'),
        ]
        events = extract_events(commands, roster)
        assert [e.action for e in events] == ['Build Supply Depot', 'Train Drone', 'Chat: gg']
        assert [e.player for e in events] == ['Alice', 'Bob', 'Alice']
        assert [e.time for e in events] == ['0:00', '0:01', '1:00']

    def test_same_frame_keeps_input_order(self, roster):
        commands = [
            TrainCommand(100, 1, unit='Zergling'),
            TrainCommand(100, 0, unit='SCV'),
            TrainCommand(100, 1, unit='Overlord'),
        ]
        events = extract_events(commands, roster)
        assert [e.action for e in events] == ['Train Zergling', 'Train SCV', 'Train Overlord']

    def test_unknown_player_raises(self, roster):
        with pytest.raises(UnknownPlayerError) as exc_info:
            extract_events([BuildCommand(300, 7, unit='Pylon')], roster)
        assert exc_info.value.player_id == 7
        assert exc_info.value.frame == 300

    def test_unknown_player_on_skipped_command_is_ignored(self, roster):
        """Test that filtered commands are never resolved against the roster."""
        commands = [OtherCommand(0, 9, type_name='Keep Alive')]
        assert extract_events(commands, roster) == []

    def test_build_order_profile(self, roster):
        commands = [
            BuildCommand(0, 0, unit='Barracks'),
            SelectCommand(1, 0, unit_tags=(1,)),
            HotkeyCommand(2, 0, hotkey_type='Select', group=1),
            UpgradeCommand(3, 1, upgrade='Metabolic Boost'),
            ChatCommand(4, 1, message='hi'),
            CancelTrainCommand(5, 0, unit_tag=1),
        ]
        events = extract_events(commands, roster, BUILD_ORDER)
        assert [e.type for e in events] == ['Build', 'Upgrade', 'CancelTrain']


class TestBuildEnvelope:
    """Tests for build_envelope."""

    def test_single_build(self, roster):
        replay = make_replay([BuildCommand(0, 0, unit='Barracks')], roster)
        data = build_envelope(replay).to_dict()

        assert data['gameVersion'] == '1.16.1'
        assert data['mapName'] == 'Fighting Spirit'
        assert [p['name'] for p in data['players']] == ['Alice', 'Bob']
        assert data['events'] == [
            {'time': '0:00', 'player': 'Alice', 'action': 'Build Barracks', 'type': 'Build'},
        ]

    def test_build_order_key(self, roster):
        replay = make_replay([TrainCommand(1500, 1, unit='Drone')], roster)
        data = build_envelope(replay, BUILD_ORDER).to_dict()

        assert 'events' not in data
        assert data['buildOrders'] == [
            {'time': '1:00', 'player': 'Bob', 'action': 'Train Drone', 'type': 'Train'},
        ]

    def test_idempotent(self, roster):
        """Test that extraction gives identical output every time."""
        replay = make_replay([
            BuildCommand(0, 0, unit='Barracks'),
            OtherCommand(10, 0, type_name='Right Click'),
            HotkeyCommand(20, 1, hotkey_type='Assign', group=1),
        ], roster)
        first = json.dumps(build_envelope(replay).to_dict())
        second = json.dumps(build_envelope(replay).to_dict())
        assert first == second

    def test_empty_replay(self, roster):
        data = build_envelope(make_replay([], roster)).to_dict()
        assert data['events'] == []


class TestGetProfile:
    """Tests for profile lookup."""

    def test_known(self):
        assert get_profile('full') is FULL_EVENT_LOG
        assert get_profile('build-order') is BUILD_ORDER

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_profile('everything')
