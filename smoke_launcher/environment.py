"""Build the argument vector and environment for the application under test.

The flag names below are the contract with the launched application; they
must not be renamed.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import os
import subprocess
import typing as t
from pathlib import Path

from .extensions import (
    NOTEBOOK_TESTS_EXTENSION,
    TEST_RESOLVER_EXTENSION,
    ExtensionCopier,
    copy_extension,
)
from .platform import Platform

logger = logging.getLogger(__name__)

BASE_FLAGS: t.Final[tuple[str, ...]] = (
    "--skip-release-notes",
    "--skip-welcome",
    "--disable-telemetry",
    "--no-cached-data",
    "--disable-updates",
    "--disable-keytar",
    "--disable-crash-reporter",
    "--disable-workspace-trust",
)
# Linux VMs commonly fail to render with GPU acceleration enabled.
LINUX_FLAGS: t.Final[tuple[str, ...]] = ("--disable-gpu",)
DRIVER_FLAG: t.Final[str] = "--driver"
DRIVER_VERBOSE_FLAG: t.Final[str] = "--driver-verbose"
TEST_RESOLVER_API_FLAG: t.Final[str] = (
    f"--enable-proposed-api=vscode.{TEST_RESOLVER_EXTENSION}"
)
NOTEBOOK_TESTS_API_FLAG: t.Final[str] = (
    f"--enable-proposed-api=vscode.{NOTEBOOK_TESTS_EXTENSION}"
)

REMOTE_AUTHORITY: t.Final[str] = "vscode-remote://test+test"
WORKSPACE_FILE_SUFFIX: t.Final[str] = ".code-workspace"
REMOTE_DATA_FOLDER_ENV: t.Final[str] = "TESTRESOLVER_DATA_FOLDER"
REMOTE_LOGS_FOLDER_ENV: t.Final[str] = "TESTRESOLVER_LOGS_FOLDER"


class StdioMode(enum.Enum):
    """How the child's standard streams are wired."""

    CAPTURE = "capture"
    INHERIT = "inherit"


@dc.dataclass(frozen=True, slots=True)
class LaunchOptions:
    """Caller-supplied description of a single launch.

    ``code_path`` points at a packaged build; leave it unset to run from the
    source checkout.
    """

    user_data_dir: Path
    extensions_dir: Path
    workspace_path: Path
    code_path: Path | None = None
    verbose: bool = False
    remote: bool = False
    extra_args: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Normalise path-like and sequence inputs."""
        object.__setattr__(self, "user_data_dir", Path(self.user_data_dir))
        object.__setattr__(self, "extensions_dir", Path(self.extensions_dir))
        object.__setattr__(self, "workspace_path", Path(self.workspace_path))
        if self.code_path is not None:
            object.__setattr__(self, "code_path", Path(self.code_path))
        if self.extra_args is not None:
            object.__setattr__(self, "extra_args", tuple(self.extra_args))

    @property
    def remote_data_dir(self) -> Path:
        """Return the server-side data directory used in remote mode."""
        return Path(f"{os.fspath(self.user_data_dir)}-server")


@dc.dataclass(frozen=True, slots=True)
class SpawnConfig:
    """Everything needed to start the application process."""

    executable: Path
    args: tuple[str, ...]
    env: t.Mapping[str, str]
    stdio: StdioMode = StdioMode.CAPTURE

    @property
    def argv(self) -> list[str]:
        """Return the full command line including the executable."""
        return [os.fspath(self.executable), *self.args]

    def popen_kwargs(self) -> dict[str, t.Any]:
        """Return keyword arguments for :class:`subprocess.Popen`."""
        if self.stdio is StdioMode.INHERIT:
            streams: dict[str, t.Any] = {"stdout": None, "stderr": None}
        else:
            streams = {"stdout": subprocess.PIPE, "stderr": subprocess.PIPE}
        return {"stdin": subprocess.DEVNULL, "env": dict(self.env), **streams}


def logs_path(repo_root: os.PathLike[str] | str, *, remote: bool) -> Path:
    """Return the directory the application writes its logs to."""
    name = "smoke-tests-remote" if remote else "smoke-tests"
    return Path(repo_root) / ".build" / "logs" / name


def file_uri_path(path: os.PathLike[str] | str, platform: Platform) -> str:
    """Return *path* as the path component of a ``file:`` URI.

    Separators become forward slashes on Windows; drive letters keep their
    case. No percent-encoding is applied.
    """
    raw = os.fspath(path)
    if platform is Platform.WINDOWS:
        raw = raw.replace("\\", "/")
    if not raw.startswith("/"):
        raw = f"/{raw}"
    return raw


def remote_workspace_arg(
    workspace_path: os.PathLike[str] | str, platform: Platform
) -> str:
    """Return the ``--file-uri``/``--folder-uri`` argument for remote mode."""
    raw = os.fspath(workspace_path)
    kind = "file" if raw.endswith(WORKSPACE_FILE_SUFFIX) else "folder"
    return f"--{kind}-uri={REMOTE_AUTHORITY}/{file_uri_path(raw, platform)}"


def build_args(
    options: LaunchOptions,
    endpoint: str,
    *,
    platform: Platform,
    repo_root: os.PathLike[str] | str,
    logs_dir: os.PathLike[str] | str,
) -> list[str]:
    """Return the argument vector (without the executable) for *options*.

    Caller-provided ``extra_args`` always come last so they can supplement or
    override generated flags.
    """
    args = [
        os.fspath(options.workspace_path),
        *BASE_FLAGS,
        f"--extensions-dir={os.fspath(options.extensions_dir)}",
        f"--user-data-dir={os.fspath(options.user_data_dir)}",
        f"--logsPath={os.fspath(logs_dir)}",
        DRIVER_FLAG,
        endpoint,
    ]

    if platform is Platform.LINUX:
        args.extend(LINUX_FLAGS)

    if options.remote:
        args[0] = remote_workspace_arg(options.workspace_path, platform)
        args.append(TEST_RESOLVER_API_FLAG)

    args.append(NOTEBOOK_TESTS_API_FLAG)

    if options.code_path is None:
        # The dev launcher expects the source root as its first argument.
        args.insert(0, os.fspath(repo_root))

    if options.verbose:
        args.append(DRIVER_VERBOSE_FLAG)

    if options.extra_args:
        args.extend(options.extra_args)

    return args


def prepare_remote_environment(
    options: LaunchOptions,
    *,
    repo_root: os.PathLike[str] | str,
    logs_dir: os.PathLike[str] | str,
    copier: ExtensionCopier = copy_extension,
) -> dict[str, str]:
    """Create the remote server directories and return the child env overrides.

    Against a packaged build the resolver extension is copied into the shared
    extensions directory and the notebook test extension into the server-side
    one. Returns an empty mapping outside remote mode.
    """
    if not options.remote:
        return {}

    root = Path(repo_root)
    if options.code_path is not None:
        copier(root, options.extensions_dir, TEST_RESOLVER_EXTENSION)

    remote_data_dir = options.remote_data_dir
    remote_data_dir.mkdir(parents=True, exist_ok=True)

    if options.code_path is not None:
        remote_extensions_dir = remote_data_dir / "extensions"
        remote_extensions_dir.mkdir(parents=True, exist_ok=True)
        copier(root, remote_extensions_dir, NOTEBOOK_TESTS_EXTENSION)

    logger.debug("Prepared remote server data directory %s", remote_data_dir)
    return {
        REMOTE_DATA_FOLDER_ENV: os.fspath(remote_data_dir),
        REMOTE_LOGS_FOLDER_ENV: os.fspath(Path(logs_dir) / "server"),
    }


def build_spawn_config(  # noqa: PLR0913
    options: LaunchOptions,
    endpoint: str,
    *,
    platform: Platform,
    repo_root: os.PathLike[str] | str,
    executable: os.PathLike[str] | str,
    logs_dir: os.PathLike[str] | str,
    env_overrides: t.Mapping[str, str] | None = None,
    base_env: t.Mapping[str, str] | None = None,
) -> SpawnConfig:
    """Return the :class:`SpawnConfig` for *options*.

    The environment is a copy of *base_env* (default: ``os.environ``) with
    *env_overrides* applied; the host's live environment is never modified.
    """
    env = dict(os.environ if base_env is None else base_env) | dict(
        env_overrides or {}
    )
    args = build_args(
        options,
        endpoint,
        platform=platform,
        repo_root=repo_root,
        logs_dir=logs_dir,
    )
    return SpawnConfig(
        executable=Path(executable),
        args=tuple(args),
        env=env,
        stdio=StdioMode.INHERIT if options.verbose else StdioMode.CAPTURE,
    )


__all__ = [
    "BASE_FLAGS",
    "DRIVER_FLAG",
    "DRIVER_VERBOSE_FLAG",
    "NOTEBOOK_TESTS_API_FLAG",
    "REMOTE_DATA_FOLDER_ENV",
    "REMOTE_LOGS_FOLDER_ENV",
    "TEST_RESOLVER_API_FLAG",
    "LaunchOptions",
    "SpawnConfig",
    "StdioMode",
    "build_args",
    "build_spawn_config",
    "file_uri_path",
    "logs_path",
    "prepare_remote_environment",
    "remote_workspace_arg",
]
