"""
Build the process invocation for a plugin.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

from cmdhandler.loaders import LoaderDescriptor

# Plain file names only: no separators, no leading dot, no parent references
PLUGIN_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class PluginInvocation:
    """Executable plus argument vector for one plugin run."""

    executable: str
    arguments: tuple[str, ...]

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.arguments]


def is_safe_plugin_name(plugin: str) -> bool:
    """Return True if ``plugin`` is a bare file name that stays inside its loader dir."""
    return bool(plugin) and ".." not in plugin and bool(PLUGIN_NAME_PATTERN.match(plugin))


def plugin_path(plugin_root: Union[str, Path], loader_id: str, plugin: str) -> str:
    """Location of a plugin: ``{plugin_root}/{loader_id}/{plugin}``."""
    return str(Path(plugin_root) / loader_id / plugin)


def build_invocation(
    descriptor: LoaderDescriptor,
    plugin_file: str,
    translated_args: Sequence[str],
) -> PluginInvocation:
    """
    Assemble the invocation for a plugin.

    The plugin file is not checked for existence; a missing plugin shows up
    as a failed run.

    Args:
        descriptor: Loader to launch the plugin with
        plugin_file: Full path of the plugin
        translated_args: Plugin arguments in the loader's syntax

    Returns:
        PluginInvocation ready to execute
    """
    return PluginInvocation(
        executable=descriptor.invocation_tokens[0],
        arguments=(
            *descriptor.invocation_tokens[1:],
            plugin_file,
            *translated_args,
        ),
    )
