"""
Startup configuration for the ember command-line driver.

Everything is read once from the environment when the driver starts.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

USE_PATH_ENV = "EMBER_USE_PATH"
MODULE_PATH_ENV = "EMBER_MODULE_PATH"
LINE_EDITOR_ENV = "EMBER_LINE_EDITOR"
DEBUG_ENV = "EMBER_DEBUG"

LINE_EDITORS = ("auto", "readline", "plain")


def _path_list(value: Optional[str]) -> List[str]:
    # The empty entry (current directory) always comes first.
    paths = [""]
    if value:
        paths.append(value)
    return paths


@dataclass
class EmberConfig:
    use_paths: List[str] = field(default_factory=lambda: [""])
    module_paths: List[str] = field(default_factory=lambda: [""])
    line_editor: str = "auto"
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'EmberConfig':
        env = os.environ if environ is None else environ
        line_editor = env.get(LINE_EDITOR_ENV, "auto").strip().lower() or "auto"
        if line_editor not in LINE_EDITORS:
            logger.warning("ignoring %s=%r; expected one of %s", LINE_EDITOR_ENV, line_editor, ", ".join(LINE_EDITORS))
            line_editor = "auto"
        return cls(
            use_paths=_path_list(env.get(USE_PATH_ENV)),
            module_paths=_path_list(env.get(MODULE_PATH_ENV)),
            line_editor=line_editor,
            debug=env.get(DEBUG_ENV, "") not in ("", "0"),
        )


def configure_logging(debug: bool = False):
    """Send log records to stderr so they never mix with evaluation output."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(name)s] %(levelname)s: %(message)s",
    )
