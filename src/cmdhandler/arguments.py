"""
Translate request parameters into plugin command-line arguments.

Values are emitted as separate argv entries and never pass through a shell,
so they are not quoted.
"""

from typing import Mapping

from cmdhandler.loaders import ArgumentStyle

ROUTING_KEYS = frozenset({"plugin", "loader"})


def translate(style: ArgumentStyle, parameters: Mapping[str, str]) -> list[str]:
    """
    Convert parameters into the argument syntax of a loader.

    Keys are emitted in sorted order so the same mapping always yields the
    same argument list. Empty values are kept.

    Args:
        style: Argument convention of the target loader
        parameters: Plugin parameters (routing keys are skipped if present)

    Returns:
        Ordered list of argv tokens

    Example:
        >>> translate(ArgumentStyle.PYTHON, {"env": "prod"})
        ['-env', 'prod']
        >>> translate(ArgumentStyle.GO, {"env": "prod"})
        ['--env=prod']
    """
    args: list[str] = []
    for key in sorted(parameters):
        if key in ROUTING_KEYS:
            continue
        value = parameters[key]
        if style is ArgumentStyle.PYTHON:
            args.extend([f"-{key}", value])
        elif style is ArgumentStyle.GO:
            args.append(f"--{key}={value}")
        else:
            raise ValueError(f"Unsupported argument style: {style}")
    return args
