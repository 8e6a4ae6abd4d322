"""
ScriptMenu Desktop Integration.

Opens directories in the operating system's file browser.
Requires Python 3.11+.
"""

import os
import subprocess
import sys
from pathlib import Path


def open_in_file_browser(path: Path) -> None:
    """
    Show a directory in the platform file browser.

    Raises:
        FileNotFoundError: The directory or the platform opener is missing
        subprocess.CalledProcessError: The opener exited with an error
    """
    path = Path(path)
    if not path.is_dir():
        raise FileNotFoundError(f"Not a directory: {path}")

    if sys.platform == "win32":
        os.startfile(path)  # type: ignore[attr-defined]
        return

    opener = "open" if sys.platform == "darwin" else "xdg-open"
    subprocess.run([opener, str(path)], check=True, capture_output=True)
