"""Opening output files for writing."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from cbmsim.errors import OutputFileError

logger = logging.getLogger(__name__)


@contextmanager
def open_for_write(path: Union[str, Path]) -> Iterator[BinaryIO]:
    """Open ``path`` for binary writing, creating parent directories.

    Raises:
        OutputFileError: If the file cannot be opened. This is fatal; no
            cleanup of partially written output is attempted.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        f = open(path, "wb")
    except OSError as e:
        logger.critical("couldn't open '%s' for writing: %s", path, e)
        raise OutputFileError(str(path), e.strerror or str(e)) from e
    with f:
        yield f
