# Copyright 2024 The Pigweed Authors
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.
"""Configures logging for the pw_protobuf_scale command line."""

import logging
import os
from pathlib import Path
import sys
from typing import NamedTuple

_RESET = '\033[0m'


class _LogLevel(NamedTuple):
    level: int
    ansi_codes: tuple[int, ...]
    ascii: str


# Shorten all the log levels to 3 characters for column-aligned logs.
_LOG_LEVELS = (
    _LogLevel(logging.CRITICAL, (30, 41), 'CRT'),
    _LogLevel(logging.ERROR,    (31, 1),  'ERR'),
    _LogLevel(logging.WARNING,  (33, 1),  'WRN'),
    _LogLevel(logging.INFO,     (35, 1),  'INF'),
    _LogLevel(logging.DEBUG,    (34, 1),  'DBG'),
)  # fmt: skip

_STDERR_HANDLER = logging.StreamHandler()


def colorize(text: str, *ansi_codes: int) -> str:
    """Surrounds text with ANSI escapes; a single reset ends all codes."""
    start = ''.join(f'\033[{code}m' for code in ansi_codes)
    return f'{start}{text}{_RESET}'


def color_by_default() -> bool:
    """Logs are colored if stdout and stderr are TTYs and NO_COLOR is unset."""
    return (
        sys.stdout.isatty()
        and sys.stderr.isatty()
        and 'NO_COLOR' not in os.environ
    )


def _setup_handler(
    handler: logging.Handler, formatter: logging.Formatter, level: int
) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)


def install(
    level: int = logging.INFO,
    use_color: bool | None = None,
    hide_timestamp: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """Configures the root logger for the compiler's log format.

    Args:
      level: Records below this level are dropped.
      use_color: Color level names and timestamps. Decided by
        color_by_default() if None.
      hide_timestamp: Omit the time from each line.
      log_file: Log to this file instead of stderr.
    """
    if use_color is None:
        use_color = color_by_default()

    if hide_timestamp:
        timestamp_fmt = ''
    elif use_color:
        # Black on white sets the time apart from the message.
        timestamp_fmt = colorize('%(asctime)s', 30, 47) + ' '
    else:
        timestamp_fmt = '%(asctime)s '

    formatter = logging.Formatter(
        timestamp_fmt + '%(levelname)s %(message)s', '%Y%m%d %H:%M:%S'
    )

    # Handlers filter by level, so the root logger passes everything on.
    logging.getLogger().setLevel(1)

    _setup_handler(_STDERR_HANDLER, formatter, level)

    if log_file:
        _setup_handler(logging.FileHandler(log_file), formatter, level)
        _STDERR_HANDLER.setLevel(logging.CRITICAL + 1)

    for log_level in _LOG_LEVELS:
        name = log_level.ascii
        if use_color:
            name = colorize(name, *log_level.ansi_codes)
        logging.addLevelName(log_level.level, name)
