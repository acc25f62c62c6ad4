"""Configuration and system-info helpers (top-level module)."""

import platform
import re
import sys
from functools import partial
from importlib.metadata import PackageNotFoundError, requires, version
from pathlib import Path
from typing import IO, Callable, Optional

import psutil

from .utils.colormap import PRESETS_2D
from .utils.presets import PRESETS

try:
    import tomllib as _toml
except ImportError:  # Python < 3.11
    _toml = None

# leading distribution name of a PEP 508 requirement
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def sys_info(fid: Optional[IO] = None, developer: bool = False):
    """Print the system information for debugging.

    Parameters
    ----------
    fid : file-like, default=None
        The file to write to, passed to :func:`print`.
        Can be None to use :data:`sys.stdout`.
    developer : bool, default=False
        If True, display information about optional dependencies.
    """
    ljust = 26
    out = partial(print, end="", file=fid)
    package = __package__.split(".")[0]

    gib = float(2 ** 30)
    machine = (
        ("Platform", platform.platform()),
        ("Python", sys.version.replace("\n", " ")),
        ("Executable", sys.executable),
        ("CPU", platform.processor()),
        ("Physical cores", str(psutil.cpu_count(False))),
        ("Logical cores", str(psutil.cpu_count(True))),
        ("RAM", f"{psutil.virtual_memory().total / gib:0.1f} GB"),
        ("SWAP", f"{psutil.swap_memory().total / gib:0.1f} GB"),
    )
    for label, value in machine:
        out(f"{label}:".ljust(ljust) + value + "\n")

    # palettes available to ColorMap.from_preset / ColorMap2D.from_preset
    out("\nColormap presets\n")
    out("1D palettes:".ljust(ljust) + str(len(PRESETS)) + "\n")
    out("2D tables:".ljust(ljust) + ", ".join(sorted(PRESETS_2D)) + "\n")

    # dependencies
    out("\nDependencies info\n")
    try:
        pkg_version = version(package)
    except PackageNotFoundError:
        pkg_version = "Not installed."
    out(f"{package}:".ljust(ljust) + pkg_version + "\n")

    dependencies = [
        elt.split(";")[0].rstrip() for elt in _declared_requirements(package) if "extra" not in elt
    ]
    _list_dependencies_info(out, ljust, dependencies)

    # extras
    if developer:
        for key in ("test",):
            dependencies = [
                elt.split(";")[0].rstrip() for elt in _declared_requirements(package, key)
            ]
            if len(dependencies) == 0:
                continue
            out(f"\nOptional '{key}' info\n")
            _list_dependencies_info(out, ljust, dependencies)


def _declared_requirements(package: str, extra: Optional[str] = None) -> list[str]:
    """Return requirement strings from installed metadata or ``pyproject.toml``.

    Parameters
    ----------
    package : str
        Distribution name.
    extra : str, optional
        Optional-dependency group to read instead of the core dependencies.
    """
    try:
        raw_requires = requires(package) or []
    except PackageNotFoundError:
        raw_requires = []
    if raw_requires:
        if extra is None:
            return raw_requires
        return [
            elt for elt in raw_requires
            if f"extra == '{extra}'" in elt or f'extra == "{extra}"' in elt
        ]

    # running from the source tree: fall back to pyproject.toml
    pyproject_path = Path(__file__).resolve().parents[1] / "pyproject.toml"
    if _toml is None or not pyproject_path.exists():
        return []
    with pyproject_path.open("rb") as fh:
        project = _toml.load(fh).get("project", {})
    if extra is None:
        return project.get("dependencies", []) or []
    return (project.get("optional-dependencies", {}) or {}).get(extra, []) or []


def _requirement_name(requirement: str) -> str:
    """Return the distribution name of a requirement string such as ``Pillow>=10.1``."""
    match = _REQUIREMENT_NAME.match(requirement)
    return match.group(1) if match else requirement.strip()


def _list_dependencies_info(out: Callable, ljust: int, dependencies: list[str]):
    """Print one ``name: version`` line per requirement.

    Parameters
    ----------
    out : Callable
        Output function.
    ljust : int
        Width of the name column.
    dependencies : list of str
        Requirement strings; version specifiers and extras are ignored.
    """
    for requirement in dependencies:
        dep = _requirement_name(requirement)
        try:
            version_ = version(dep)
        except PackageNotFoundError:
            out(f"{dep}:".ljust(ljust) + "Not found.\n")
            continue
        if dep == "matplotlib":
            import matplotlib

            version_ += f" (backend: {matplotlib.get_backend()})"
        out(f"{dep}:".ljust(ljust) + version_ + "\n")
