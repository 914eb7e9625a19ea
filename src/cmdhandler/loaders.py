"""
Loader registry.

A loader is the runtime used to launch a plugin (an interpreter, or a
toolchain command such as ``go run``) together with the command-line
argument convention its plugins parse.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


class ArgumentStyle(str, Enum):
    """Command-line argument conventions understood by plugins."""

    PYTHON = "python"  # argparse: -key value
    GO = "go"  # flag package: --key=value


@dataclass(frozen=True)
class LoaderDescriptor:
    """
    How to launch plugins for one loader id.

    The first invocation token is the executable; any remaining tokens are
    passed before the plugin path (``go run <plugin> ...``).
    """

    id: str
    invocation_tokens: tuple[str, ...]
    argument_style: ArgumentStyle

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Loader id must not be empty")
        if not self.invocation_tokens or not self.invocation_tokens[0]:
            raise ValueError(f"Loader {self.id!r} needs at least one invocation token")

    @classmethod
    def from_command(
        cls, loader_id: str, command: str, argument_style: ArgumentStyle
    ) -> "LoaderDescriptor":
        """Build a descriptor from a whitespace-separated command string."""
        return cls(
            id=loader_id,
            invocation_tokens=tuple(command.split()),
            argument_style=argument_style,
        )

    @property
    def executable(self) -> str:
        return self.invocation_tokens[0]


class LoaderRegistry:
    """
    Fixed table of supported loaders.

    The table is populated once at construction and never changes, so a
    single instance can be shared by every request thread.

    Example:
        >>> registry = LoaderRegistry.default()
        >>> descriptor = registry.resolve("go")
        >>> descriptor.invocation_tokens
        ('go', 'run')
    """

    def __init__(self, descriptors: Iterable[LoaderDescriptor]):
        table: dict[str, LoaderDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in table:
                raise ValueError(f"Duplicate loader id: {descriptor.id}")
            table[descriptor.id] = descriptor
        self._loaders = table
        logger.debug(f"Loader registry initialized with: {', '.join(sorted(table))}")

    @classmethod
    def default(cls) -> "LoaderRegistry":
        """Registry with the stock python, python3, node and go loaders."""
        return cls(
            [
                LoaderDescriptor.from_command("python", "python", ArgumentStyle.PYTHON),
                LoaderDescriptor.from_command("python3", "python3", ArgumentStyle.PYTHON),
                LoaderDescriptor.from_command("node", "node", ArgumentStyle.GO),
                LoaderDescriptor.from_command("go", "go run", ArgumentStyle.GO),
            ]
        )

    def resolve(self, loader_id: Optional[str]) -> Optional[LoaderDescriptor]:
        """
        Look up a loader by id.

        Returns:
            The descriptor, or None when the loader is not supported
        """
        if not loader_id:
            return None
        return self._loaders.get(loader_id)

    def __contains__(self, loader_id: object) -> bool:
        return loader_id in self._loaders

    def __iter__(self) -> Iterator[LoaderDescriptor]:
        return iter(self._loaders[key] for key in sorted(self._loaders))

    def __len__(self) -> int:
        return len(self._loaders)

    @property
    def ids(self) -> list[str]:
        return sorted(self._loaders)
