"""Copy helper extensions shipped in the source checkout."""

from __future__ import annotations

import logging
import os
import shutil
import typing as t
from pathlib import Path

logger = logging.getLogger(__name__)

TEST_RESOLVER_EXTENSION: t.Final[str] = "vscode-test-resolver"
NOTEBOOK_TESTS_EXTENSION: t.Final[str] = "vscode-notebook-tests"

ExtensionCopier = t.Callable[[Path, Path, str], None]


def copy_extension(
    repo_root: os.PathLike[str] | str,
    extensions_dir: os.PathLike[str] | str,
    extension_id: str,
) -> None:
    """Copy ``<repo_root>/extensions/<extension_id>`` into *extensions_dir*.

    An extension that is already present at the destination is left alone so
    that repeated launches sharing an extensions directory stay cheap.
    """
    dest = Path(extensions_dir) / extension_id
    if dest.exists():
        logger.debug("Extension %s already present in %s", extension_id, dest)
        return

    source = Path(repo_root) / "extensions" / extension_id
    if not source.is_dir():
        msg = f"Extension {extension_id} not found at {source}"
        raise FileNotFoundError(msg)

    shutil.copytree(source, dest)
    logger.debug("Copied extension %s to %s", extension_id, dest)


__all__ = [
    "NOTEBOOK_TESTS_EXTENSION",
    "TEST_RESOLVER_EXTENSION",
    "ExtensionCopier",
    "copy_extension",
]
