"""
Staging of uploaded replay bytes for the external parser.
"""

import os
import tempfile
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from errors import NoFileError, StagingError
from replay_model import Replay

ReplayParserFn = Callable[[str], Replay]


@contextmanager
def staged_replay(data: bytes, *, prefix: str = 'replay-', suffix: str = '.rep',
                  directory: Optional[str] = None) -> Iterator[str]:
    """Write data to a named temp file and yield its path.

    The file is removed when the block exits, however it exits.
    """
    try:
        tmp = tempfile.NamedTemporaryFile(prefix=prefix, suffix=suffix, dir=directory, delete=False)
    except OSError as e:
        raise StagingError(str(e), message='Error creating temp file') from e

    try:
        try:
            with tmp:
                tmp.write(data)
        except OSError as e:
            raise StagingError(str(e), message='Error writing to temp file') from e
        yield tmp.name
    finally:
        try:
            os.unlink(tmp.name)
        except FileNotFoundError:
            pass


def ingest_replay(data: Optional[bytes], parse: ReplayParserFn, *, directory: Optional[str] = None) -> Replay:
    """Stage uploaded bytes and run the parser on them.

    Raises NoFileError for a missing or empty upload, StagingError if the temp
    file cannot be written, and whatever the parser raises (ReplayParseError).
    """
    if not data:
        raise NoFileError('upload is empty')
    with staged_replay(data, directory=directory) as path:
        return parse(path)
