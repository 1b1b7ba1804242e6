import dataclasses
import importlib.metadata
from os.path import abspath, dirname, exists, join, normpath
import subprocess
from typing import Optional

PACKAGEPATH = abspath(dirname(__file__))
PROJPATH = dirname(PACKAGEPATH)

DIST_SPEC = "etcutils"

# Base version, which will be augmented with Git information
BASE_VERSION = "2.0.0"

# This string will be replaced by `git-archive`
# with the abbreviated commit hash
git_archive_rev = "$Format:%h$"


@dataclasses.dataclass(frozen=True)
class GitDescribe:
    tag: str
    commits: int
    rev: str


def git_describe() -> Optional[GitDescribe]:
    """Describe the local Git checkout, or None if it has no usable tag"""
    try:
        subprocess.run(
            ["git", "update-index", "-q", "--refresh"],
            check=True,
            cwd=PROJPATH,
            capture_output=True,
        )
        result = subprocess.run(
            ["git", "describe", "--long", "--dirty", "--tag"],
            check=True,
            cwd=PROJPATH,
            capture_output=True,
            encoding="utf-8",
        )
    except (OSError, subprocess.CalledProcessError):
        return None

    parts = result.stdout.rstrip().split("-", 2)
    if len(parts) != 3:
        return None
    return GitDescribe(
        tag=parts[0].lstrip("v"),
        commits=int(parts[1]),
        rev=parts[2],
    )


def get_version() -> str:
    # Git repo
    # If a local git repository is present, use `git describe` to provide a rich version
    gitdir = normpath(join(PROJPATH, ".git"))
    if exists(gitdir):
        desc = git_describe()
        if desc is not None and desc.tag == BASE_VERSION:
            # No local version if we're on a tag
            if desc.commits == 0 and not desc.rev.endswith("dirty"):
                return BASE_VERSION

            return f"{BASE_VERSION}+{desc.commits}-{desc.rev}"

    # Git archive
    # If this was produced via `git archive`, we'll use the version it provides
    if not git_archive_rev.startswith("$"):
        return f"{BASE_VERSION}+g{git_archive_rev}"

    # Otherwise, we're either installed (e.g. via pip), or running from
    # an 'sdist' source distribution, and have a local PKG_INFO file.
    try:
        return importlib.metadata.version(DIST_SPEC)
    except importlib.metadata.PackageNotFoundError:
        # Running from a source tree that was never installed
        return BASE_VERSION


__version__ = get_version()

if __name__ == "__main__":
    print(__version__)
