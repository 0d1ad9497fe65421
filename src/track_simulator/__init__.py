"""
Parabolic track simulator package.

We keep this __init__ lightweight on purpose so that
`import track_simulator` and `track-sim --help` work
without importing the optional UI stack.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("parabolic-track-simulator")
except PackageNotFoundError:  # during editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
