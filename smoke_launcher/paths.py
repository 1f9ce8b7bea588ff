"""Resolve the application executable and its compiled output directory.

Two layouts are supported. In *dev* mode the application runs from a source
checkout: the runtime lives under ``.build/electron`` and compiled sources
under ``out``. In *build* mode ``code_path`` points at a packaged product
whose structure depends on the operating system.
"""

from __future__ import annotations

import json
import os
import typing as t
from pathlib import Path

from .errors import ProductDescriptorError
from .platform import Platform, resolve_platform

PRODUCT_FILE: t.Final[str] = "product.json"
MACOS_EXECUTABLE: t.Final[str] = "Electron"

_Layout = t.Callable[[Path], Path]


def read_product(path: os.PathLike[str] | str) -> dict[str, t.Any]:
    """Load the product descriptor at *path*."""
    product_path = Path(path)
    try:
        data = json.loads(product_path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Cannot read product descriptor {product_path}: {exc}"
        raise ProductDescriptorError(msg) from exc
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in product descriptor {product_path}: {exc}"
        raise ProductDescriptorError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Product descriptor {product_path} must be a JSON object"
        raise ProductDescriptorError(msg)
    return data


def _product_value(product_path: Path, key: str) -> str:
    """Return the non-empty string *key* from the descriptor at *product_path*."""
    value = read_product(product_path).get(key)
    if not isinstance(value, str) or not value:
        msg = f"Product descriptor {product_path} has no {key!r} entry"
        raise ProductDescriptorError(msg)
    return value


def _dev_macos(repo_root: Path) -> Path:
    name = _product_value(repo_root / PRODUCT_FILE, "nameLong")
    return (
        repo_root
        / ".build"
        / "electron"
        / f"{name}.app"
        / "Contents"
        / "MacOS"
        / MACOS_EXECUTABLE
    )


def _dev_linux(repo_root: Path) -> Path:
    name = _product_value(repo_root / PRODUCT_FILE, "applicationName")
    return repo_root / ".build" / "electron" / name


def _dev_windows(repo_root: Path) -> Path:
    name = _product_value(repo_root / PRODUCT_FILE, "nameShort")
    return repo_root / ".build" / "electron" / f"{name}.exe"


def _packaged_product(root: Path) -> Path:
    return root / "resources" / "app" / PRODUCT_FILE


def _build_macos(root: Path) -> Path:
    return root / "Contents" / "MacOS" / MACOS_EXECUTABLE


def _build_linux(root: Path) -> Path:
    return root / _product_value(_packaged_product(root), "applicationName")


def _build_windows(root: Path) -> Path:
    name = _product_value(_packaged_product(root), "nameShort")
    return root / f"{name}.exe"


_DEV_EXECUTABLES: t.Final[dict[Platform, _Layout]] = {
    Platform.MACOS: _dev_macos,
    Platform.LINUX: _dev_linux,
    Platform.WINDOWS: _dev_windows,
}

_BUILD_EXECUTABLES: t.Final[dict[Platform, _Layout]] = {
    Platform.MACOS: _build_macos,
    Platform.LINUX: _build_linux,
    Platform.WINDOWS: _build_windows,
}

_BUILD_OUT_DIRS: t.Final[dict[Platform, tuple[str, ...]]] = {
    Platform.MACOS: ("Contents", "Resources", "app", "out"),
    Platform.LINUX: ("resources", "app", "out"),
    Platform.WINDOWS: ("resources", "app", "out"),
}


def dev_executable_path(
    repo_root: os.PathLike[str] | str, platform: Platform | str | None = None
) -> Path:
    """Return the runtime binary inside a source checkout."""
    return _DEV_EXECUTABLES[resolve_platform(platform)](Path(repo_root))


def build_executable_path(
    root: os.PathLike[str] | str, platform: Platform | str | None = None
) -> Path:
    """Return the launchable binary of the packaged product at *root*."""
    return _BUILD_EXECUTABLES[resolve_platform(platform)](Path(root))


def dev_out_path(repo_root: os.PathLike[str] | str) -> Path:
    """Return the compiled output directory of a source checkout."""
    return Path(repo_root) / "out"


def build_out_path(
    root: os.PathLike[str] | str, platform: Platform | str | None = None
) -> Path:
    """Return the compiled output directory of the packaged product at *root*."""
    return Path(root).joinpath(*_BUILD_OUT_DIRS[resolve_platform(platform)])


def executable_path(
    code_path: os.PathLike[str] | str | None,
    repo_root: os.PathLike[str] | str,
    platform: Platform | str | None = None,
) -> Path:
    """Return the executable for build mode, or dev mode when *code_path* is unset."""
    if code_path is None:
        return dev_executable_path(repo_root, platform)
    return build_executable_path(code_path, platform)


def out_path(
    code_path: os.PathLike[str] | str | None,
    repo_root: os.PathLike[str] | str,
    platform: Platform | str | None = None,
) -> Path:
    """Return the output directory for build mode, or dev mode when unset."""
    if code_path is None:
        return dev_out_path(repo_root)
    return build_out_path(code_path, platform)


__all__ = [
    "PRODUCT_FILE",
    "build_executable_path",
    "build_out_path",
    "dev_executable_path",
    "dev_out_path",
    "executable_path",
    "out_path",
    "read_product",
]
