"""
Error types raised while turning an uploaded replay into a timeline.
Each error knows the HTTP status and the message shown to the client.
"""

from typing import Optional


class ReplayTimelineError(Exception):
    """Base class for failures reported at the request boundary."""

    status = 500
    message = 'Internal server error'

    def __init__(self, detail: Optional[str] = None, *, message: Optional[str] = None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)


class NoFileError(ReplayTimelineError):
    """No file field in the upload, or the file was empty."""

    status = 400
    message = 'No file is received'


class StagingError(ReplayTimelineError):
    """The upload could not be written to a temporary file."""

    message = 'Error creating temp file'


class ReplayParseError(ReplayTimelineError):
    """The replay parser rejected the staged file."""

    message = 'Error parsing replay'


class ParserUnavailableError(ReplayParseError):
    """The replay parser could not be started at all."""


class UnknownPlayerError(ReplayTimelineError):
    """A command refers to a player id that is not in the roster."""

    message = 'Unknown player in replay'

    def __init__(self, player_id: int, frame: int):
        self.player_id = player_id
        self.frame = frame
        super().__init__(f"Command at frame {frame} refers to unknown player id {player_id}")
