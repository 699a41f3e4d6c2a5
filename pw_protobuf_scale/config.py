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
"""Configuration of the pw_protobuf_scale compiler."""

import argparse
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Sequence

import yaml

from pw_protobuf_scale import naming
from pw_protobuf_scale.errors import ConfigError

_LOG = logging.getLogger(__name__)

CONFIG_TITLE = 'pw_protobuf_scale'
CONFIG_FILE_ENVIRONMENT_VAR = 'PW_PROTOBUF_SCALE_CONFIG_FILE'

WELL_KNOWN_TYPES_PATH = '.google.protobuf'
WELL_KNOWN_TYPES_MODULE = 'pw_protobuf_scale.well_known'

# google.protobuf messages and enums implemented by WELL_KNOWN_TYPES_MODULE.
# Other types in the package are generated from their descriptors.
WELL_KNOWN_TYPES = (
    'Any',
    'BoolValue',
    'BytesValue',
    'DoubleValue',
    'Duration',
    'Empty',
    'FieldMask',
    'FloatValue',
    'Int32Value',
    'Int64Value',
    'ListValue',
    'NullValue',
    'StringValue',
    'Struct',
    'Timestamp',
    'UInt32Value',
    'UInt64Value',
    'Value',
)


@dataclasses.dataclass
class GeneratorOptions:
    """Options that control code generation.

    Path lists use PathMatcher patterns.
    """

    extern_paths: list[tuple[str, str]] = dataclasses.field(
        default_factory=list
    )
    boxed: list[str] = dataclasses.field(default_factory=list)
    disable_comments: list[str] = dataclasses.field(default_factory=list)
    skip_repr: list[str] = dataclasses.field(default_factory=list)
    strip_enum_prefix: bool = True
    default_package_filename: str = '_'
    include_file: str | None = None
    module_prefix: str = ''
    jobs: int = 1


class PathMatcher:
    """Matches fully-qualified proto paths against configured patterns.

    A pattern that starts with '.' matches that fully-qualified path and
    everything nested below it; '.' alone matches every path. A pattern
    without a leading '.' matches paths ending with it. Matching is done at
    segment boundaries, so '.foo' does not match '.foobar'.
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self._patterns = frozenset(patterns)

    def matches(self, proto_path: str) -> bool:
        if not self._patterns:
            return False

        segments = proto_path.lstrip('.').split('.')

        for end in range(len(segments), 0, -1):
            if '.' + '.'.join(segments[:end]) in self._patterns:
                return True

        if '.' in self._patterns:
            return True

        return any(
            '.'.join(segments[start:]) in self._patterns
            for start in range(len(segments))
        )

    def __bool__(self) -> bool:
        return bool(self._patterns)


def _validate_proto_path(path: str) -> None:
    if not path.startswith('.'):
        raise ConfigError(
            'Protobuf paths must be fully qualified (begin with a leading '
            f"'.'): {path}"
        )
    if path != '.' and any(not part for part in path[1:].split('.')):
        raise ConfigError(f'invalid fully-qualified Protobuf path: {path}')


class ExternPaths:
    """Maps proto paths to Python code that is not generated.

    Each entry maps a fully-qualified proto path to a Python location. A path
    naming a single type maps to 'module.Class'. A path naming a package maps
    to a module; types below it are found in that module, with subpackages
    mapped to submodules. Exact matches take precedence, then the longest
    matching prefix.
    """

    def __init__(
        self,
        paths: Iterable[tuple[str, str]],
        include_well_known_types: bool = True,
    ):
        self._paths: dict[str, str] = {}

        for proto_path, python_path in paths:
            _validate_proto_path(proto_path)
            if proto_path in self._paths:
                raise ConfigError(
                    f'duplicate extern Protobuf path: {proto_path}'
                )
            self._paths[proto_path] = python_path

        if include_well_known_types:
            self._add_well_known_types()

    def _add_well_known_types(self) -> None:
        # A user mapping of the package, or of a package above it, replaces
        # every default.
        if self._covers(WELL_KNOWN_TYPES_PATH):
            return
        for name in WELL_KNOWN_TYPES:
            self._paths.setdefault(
                f'{WELL_KNOWN_TYPES_PATH}.{name}',
                f'{WELL_KNOWN_TYPES_MODULE}.{name}',
            )

    def _covers(self, proto_path: str) -> bool:
        """True if proto_path or a package above it is mapped."""
        segments = proto_path.lstrip('.').split('.')
        return any(
            '.' + '.'.join(segments[:end]) in self._paths
            for end in range(len(segments) + 1)
        )

    def resolve(
        self, package: str, nesting: Sequence[str]
    ) -> tuple[str, str] | None:
        """Finds the Python (module, class name) of an extern type.

        Args:
          package: The proto package of the type.
          nesting: Names of the enclosing messages and the type itself.

        Returns:
          None if the type is not covered by any extern path.
        """
        package_segments = package.split('.') if package else []
        segments = package_segments + list(nesting)

        for end in range(len(segments), -1, -1):
            prefix = '.' + '.'.join(segments[:end])
            python_path = self._paths.get(prefix)
            if python_path is None:
                continue

            if end > len(package_segments):
                module, _, outer_class = python_path.rpartition('.')
                if not module:
                    raise ConfigError(
                        f'extern path {prefix} names a type, so it must map '
                        f'to a module.Class Python path, not {python_path!r}'
                    )
                inner = naming.class_name(segments[end:])
                if inner:
                    return module, f'{outer_class}_{inner}'
                return module, outer_class

            module = '.'.join(
                [python_path]
                + [naming.escape(part) for part in package_segments[end:]]
            )
            return module, naming.class_name(nesting)

        return None


class ProjectConfig:
    """Loads compiler settings from YAML config files.

    Settings live in a document with ``config_title: pw_protobuf_scale`` or
    under a top-level ``pw_protobuf_scale`` key:

    ::

       config_title: pw_protobuf_scale
       protos: [network_protocol.proto]
       include_paths: [protos]
       out_dir: gen
       extern_paths:
         .network.protocol.Entity: peers.Peer

    A file named by the PW_PROTOBUF_SCALE_CONFIG_FILE environment variable
    replaces the project file.
    """

    def __init__(
        self,
        project_file: Path | None = None,
        environment_var: str | None = CONFIG_FILE_ENVIRONMENT_VAR,
    ) -> None:
        self.reset_config()

        if project_file is not None:
            self.project_file = Path(
                os.path.expandvars(str(project_file.expanduser()))
            )
            if not self.project_file.is_file():
                raise ConfigError(f'Cannot load config file: {project_file}')
            self.load_config_file(self.project_file)

        # Check for a config file specified by an environment variable.
        if environment_var is None:
            return
        environment_config = os.environ.get(environment_var, None)
        if environment_config:
            env_file_path = Path(environment_config)
            if not env_file_path.is_file():
                raise ConfigError(f'Cannot load config file: {env_file_path}')
            self.reset_config()
            self.load_config_file(env_file_path)

    def reset_config(self) -> None:
        self._config: dict[str, Any] = {}

    def _update_config(self, cfg: dict[str, Any] | None, source: Path) -> None:
        if cfg is None:
            return
        if not isinstance(cfg, dict):
            raise ConfigError(f'Config section in {source} must be a mapping')
        for key, value in cfg.items():
            if key == 'config_title':
                continue
            self._config[key] = value

    def _load_config_from_string(  # pylint: disable=no-self-use
        self, file_contents: str
    ) -> list[dict[Any, Any]]:
        return list(yaml.safe_load_all(file_contents))

    def load_config_file(self, file_path: Path) -> None:
        """Load a config file and extract the pw_protobuf_scale section."""
        _LOG.debug('Loading config file %s', file_path)
        try:
            cfgs = self._load_config_from_string(file_path.read_text())
        except yaml.YAMLError as err:
            raise ConfigError(f'Invalid YAML in {file_path}: {err}') from err

        for cfg in cfgs:
            if not cfg:
                continue
            if not isinstance(cfg, dict):
                raise ConfigError(f'Config file {file_path} is not a mapping')
            if CONFIG_TITLE in cfg:
                self._update_config(cfg[CONFIG_TITLE], file_path)
                continue
            if cfg.get('config_title', False) == CONFIG_TITLE:
                self._update_config(cfg, file_path)
                continue
            raise ConfigError(
                f'The config file "{file_path}" is missing the expected '
                f'"config_title: {CONFIG_TITLE}" setting.'
            )

    def _list(self, key: str) -> list[str]:
        value = self._config.get(key, [])
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list) or not all(
            isinstance(item, str) for item in value
        ):
            raise ConfigError(f'Config key {key!r} must be a list of strings')
        return list(value)

    def _optional_str(self, key: str) -> str | None:
        value = self._config.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f'Config key {key!r} must be a string')
        return value

    @property
    def protos(self) -> list[Path]:
        return [Path(proto) for proto in self._list('protos')]

    @property
    def include_paths(self) -> list[Path]:
        return [Path(path) for path in self._list('include_paths')]

    @property
    def out_dir(self) -> Path | None:
        value = self._optional_str('out_dir')
        return Path(value) if value is not None else None

    @property
    def descriptor_set(self) -> Path | None:
        value = self._optional_str('descriptor_set')
        return Path(value) if value is not None else None

    @property
    def extern_paths(self) -> list[tuple[str, str]]:
        value = self._config.get('extern_paths', {})
        if not isinstance(value, dict):
            raise ConfigError(
                'Config key \'extern_paths\' must map proto paths to Python '
                'paths'
            )
        return [(str(key), str(path)) for key, path in value.items()]

    def generator_options(self) -> GeneratorOptions:
        """Builds GeneratorOptions from the loaded settings."""
        jobs = self._config.get('jobs', 1)
        if not isinstance(jobs, int) or jobs < 1:
            raise ConfigError('Config key \'jobs\' must be a positive integer')

        strip_enum_prefix = self._config.get('strip_enum_prefix', True)
        if not isinstance(strip_enum_prefix, bool):
            raise ConfigError(
                'Config key \'strip_enum_prefix\' must be true or false'
            )

        return GeneratorOptions(
            extern_paths=self.extern_paths,
            boxed=self._list('boxed'),
            disable_comments=self._list('disable_comments'),
            skip_repr=self._list('skip_repr'),
            strip_enum_prefix=strip_enum_prefix,
            default_package_filename=(
                self._optional_str('default_package_filename') or '_'
            ),
            include_file=self._optional_str('include_file'),
            module_prefix=self._optional_str('module_prefix') or '',
            jobs=jobs,
        )


def extern_path(arg: str) -> tuple[str, str]:
    """Parses a PROTO_PATH=PYTHON_PATH argument."""
    proto_path, sep, python_path = arg.partition('=')
    if not sep or not proto_path or not python_path:
        raise argparse.ArgumentTypeError(
            f'"{arg}" is not of the form PROTO_PATH=PYTHON_PATH'
        )
    return proto_path, python_path


def positive_int(arg: str) -> int:
    try:
        value = int(arg)
    except ValueError:
        value = 0
    if value < 1:
        raise argparse.ArgumentTypeError(f'"{arg}" is not a positive integer')
    return value


def add_generator_arguments(parser: argparse.ArgumentParser) -> None:
    """Registers arguments that override GeneratorOptions settings."""
    parser.add_argument(
        '--extern-path',
        dest='extern_paths',
        metavar='PROTO_PATH=PYTHON_PATH',
        action='append',
        default=[],
        type=extern_path,
        help='Use existing Python code for the types below PROTO_PATH',
    )
    parser.add_argument(
        '--boxed',
        metavar='PROTO_PATH',
        action='append',
        default=[],
        help='Reference the matching fields lazily',
    )
    parser.add_argument(
        '--disable-comments',
        metavar='PROTO_PATH',
        action='append',
        default=[],
        help='Omit proto comments from the matching entities',
    )
    parser.add_argument(
        '--skip-repr',
        metavar='PROTO_PATH',
        action='append',
        default=[],
        help='Do not generate __repr__ for the matching messages',
    )
    parser.add_argument(
        '--no-strip-enum-prefix',
        dest='strip_enum_prefix',
        action='store_false',
        default=None,
        help='Keep the enum name prefix on enum member names',
    )
    parser.add_argument(
        '--default-package-filename',
        metavar='NAME',
        help='Module name for files without a proto package',
    )
    parser.add_argument(
        '--include-file',
        metavar='PATH',
        help='Also generate a module that imports every generated module',
    )
    parser.add_argument(
        '--module-prefix',
        metavar='PREFIX',
        help='Prefix of imports between generated modules, such as "gen."',
    )
    parser.add_argument(
        '-j',
        '--jobs',
        type=positive_int,
        help='Number of threads that render code',
    )


def apply_generator_arguments(
    options: GeneratorOptions, args: argparse.Namespace
) -> GeneratorOptions:
    """Returns options with command-line arguments applied.

    Path lists are appended to; other settings replace configured values.
    """
    replacements: dict[str, Any] = {
        'extern_paths': options.extern_paths + args.extern_paths,
        'boxed': options.boxed + args.boxed,
        'disable_comments': options.disable_comments + args.disable_comments,
        'skip_repr': options.skip_repr + args.skip_repr,
    }
    for setting in (
        'strip_enum_prefix',
        'default_package_filename',
        'include_file',
        'module_prefix',
        'jobs',
    ):
        value = getattr(args, setting)
        if value is not None:
            replacements[setting] = value

    return dataclasses.replace(options, **replacements)
