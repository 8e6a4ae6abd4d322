"""
ScriptMenu Bootstrap.

First-run provisioning of the scripts directory.
Requires Python 3.11+.
"""

from importlib.resources import files
from pathlib import Path

from utils.logger import get_logger

logger = get_logger("scripting.bootstrap")

EXAMPLES_DIRECTORY = "Examples"
EXAMPLE_SCRIPTS = (
    "Hello_World.py",
    "Print_Scripting_Info.py",
    "Move_Machine.py",
)


def ensure_scripts_directory(directory: Path, seed_examples: bool = True) -> bool:
    """
    Create the scripts directory if it does not exist yet.

    A newly created directory gets the bundled example scripts in an
    ``Examples`` subdirectory. An example that cannot be copied is logged
    and skipped.

    Args:
        directory: Scripts directory
        seed_examples: Whether to copy the examples into a new directory

    Returns:
        True if the directory was created
    """
    directory = Path(directory)
    if directory.exists():
        return False

    directory.mkdir(parents=True)
    logger.info("scripts_directory_created", path=str(directory))
    if not seed_examples:
        return True

    examples_dir = directory / EXAMPLES_DIRECTORY
    examples_dir.mkdir()
    bundled = files("scripting").joinpath("examples")
    for name in EXAMPLE_SCRIPTS:
        try:
            (examples_dir / name).write_text(
                bundled.joinpath(name).read_text(encoding="utf-8"),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("example_copy_failed", name=name, error=str(e))

    return True
