"""
Version information for the invoice extraction tools.

The base version is combined with the git commit count and hash when the
package runs from a git checkout.
"""

import subprocess
import sys
from pathlib import Path
from typing import List, Optional


# Base version - this is the only place you need to update the version number
BASE_VERSION = "1.0.0"


def _git(args: List[str]) -> Optional[str]:
    """Output of a git command run at the repository root, or None."""
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=Path(__file__).parent.parent,
            capture_output=True,
            text=True,
            timeout=5
        )
    except (subprocess.TimeoutExpired, subprocess.SubprocessError, FileNotFoundError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def get_git_commit_hash(short: bool = True) -> Optional[str]:
    return _git(["rev-parse", "--short", "HEAD"] if short else ["rev-parse", "HEAD"])


def get_git_commit_count() -> int:
    count = _git(["rev-list", "--count", "HEAD"])
    try:
        return int(count) if count else 0
    except ValueError:
        return 0


def get_version(include_commit: bool = True) -> str:
    """
    Version string in format MAJOR.MINOR.PATCH, where PATCH is the base
    patch plus the commit count.
    """
    major, minor, base_patch = BASE_VERSION.split('.')
    if not include_commit:
        return BASE_VERSION
    return f"{major}.{minor}.{int(base_patch) + get_git_commit_count()}"


def get_version_info() -> dict:
    commit_hash = get_git_commit_hash(short=True)
    return {
        "version": get_version(),
        "base_version": BASE_VERSION,
        "commit": commit_hash,
        "python_version": sys.version.split()[0],
        "git_available": commit_hash is not None,
    }


__version__ = get_version()
