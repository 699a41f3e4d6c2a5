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
"""Defines a class to build generated source files."""

from typing import Iterable


class OutputFile:
    """A buffer to which data is written.

    Example:

    ```
    output = OutputFile("hello.py")
    output.write_line('def main():')
    with output.indent():
        output.write_line('print("Hello, world")')
        output.write_line('return 0')

    print(output.content())
    ```

    Produces:
    ```
    def main():
        print("Hello, world")
        return 0
    ```
    """

    INDENT_WIDTH = 4

    def __init__(self, filename: str):
        self._filename: str = filename
        self._content: list[str] = []
        self._indentation: int = 0

    def write_line(self, line: str = '') -> None:
        if line:
            self._content.append(' ' * self._indentation)
            self._content.append(line)
        self._content.append('\n')

    def write_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.write_line(line)

    def write_block(self, other: 'OutputFile') -> None:
        """Appends the content of another output at the current indentation."""
        self.write_lines(other.content().splitlines())

    def indent(
        self, amount: int = INDENT_WIDTH
    ) -> 'OutputFile._IndentationContext':
        """Increases the indentation level of the output."""
        return self._IndentationContext(self, amount)

    def name(self) -> str:
        return self._filename

    def content(self) -> str:
        return ''.join(self._content)

    class _IndentationContext:
        """Context that increases the output's indentation when it is active."""

        def __init__(self, output: 'OutputFile', amount: int):
            self._output = output
            self._amount = amount

        def __enter__(self):
            # pylint: disable-next=protected-access
            self._output._indentation += self._amount

        def __exit__(self, typ, value, traceback):
            # pylint: disable-next=protected-access
            self._output._indentation -= self._amount
