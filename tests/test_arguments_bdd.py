"""Behavioural tests for the generated application command line."""

from __future__ import annotations

from pathlib import Path

from pytest_bdd import given, parsers, scenario, then, when

from smoke_launcher.environment import LaunchOptions, build_args
from smoke_launcher.platform import resolve_platform

FEATURES_DIR = Path(__file__).resolve().parent.parent / "features"
REPO = Path("/src/repo")


class ArgumentsContext:
    """Launch options under construction and the last built arguments."""

    def __init__(self, workspace: str) -> None:
        self.workspace = workspace
        self.remote = False
        self.extra_args: tuple[str, ...] = ()
        self.args: list[str] = []

    def options(self) -> LaunchOptions:
        return LaunchOptions(
            user_data_dir=Path("/tmp/data"),
            extensions_dir=Path("/tmp/exts"),
            workspace_path=Path(self.workspace),
            code_path=Path("/opt/app"),
            remote=self.remote,
            extra_args=self.extra_args,
        )


@given(
    parsers.cfparse('launch options for workspace "{workspace}"'),
    target_fixture="ctx",
)
def launch_options(workspace: str) -> ArgumentsContext:
    """Start from local launch options for *workspace*."""
    return ArgumentsContext(workspace)


@given("remote mode is enabled")
def enable_remote(ctx: ArgumentsContext) -> None:
    """Open the workspace through the test resolver."""
    ctx.remote = True


@given(parsers.cfparse('the extra argument "{arg}"'))
def extra_argument(ctx: ArgumentsContext, arg: str) -> None:
    """Append a caller-supplied argument."""
    ctx.extra_args += (arg,)


@when(parsers.cfparse('the arguments are built for "{platform}"'))
def build_for(ctx: ArgumentsContext, platform: str) -> None:
    """Build the argument vector for *platform*."""
    ctx.args = build_args(
        ctx.options(),
        "/tmp/endpoint",
        platform=resolve_platform(platform),
        repo_root=REPO,
        logs_dir=REPO / ".build" / "logs" / "smoke-tests",
    )


@then(parsers.cfparse('the workspace argument is "{expected}"'))
def workspace_argument(ctx: ArgumentsContext, expected: str) -> None:
    """Packaged builds take the workspace as their first argument."""
    assert ctx.args[0] == expected


@then(parsers.cfparse('the arguments include "{flag}"'))
def includes_flag(ctx: ArgumentsContext, flag: str) -> None:
    """*flag* was generated."""
    assert flag in ctx.args


@then(parsers.cfparse('the arguments do not include "{flag}"'))
def excludes_flag(ctx: ArgumentsContext, flag: str) -> None:
    """*flag* was not generated."""
    assert flag not in ctx.args


@then(parsers.cfparse('the last argument is "{arg}"'))
def last_argument(ctx: ArgumentsContext, arg: str) -> None:
    """Caller arguments come last."""
    assert ctx.args[-1] == arg


@scenario(
    str(FEATURES_DIR / "arguments.feature"),
    "remote workspace file opens by file URI",
)
def test_remote_workspace_file() -> None:
    """Remote workspace file opens by file URI."""


@scenario(
    str(FEATURES_DIR / "arguments.feature"),
    "remote folder opens by folder URI",
)
def test_remote_folder() -> None:
    """Remote folder opens by folder URI."""


@scenario(
    str(FEATURES_DIR / "arguments.feature"),
    "GPU acceleration is disabled on Linux only",
)
def test_gpu_flag_linux_only() -> None:
    """GPU acceleration is disabled on Linux only."""


@scenario(
    str(FEATURES_DIR / "arguments.feature"),
    "extra arguments come after generated flags",
)
def test_extra_arguments_last() -> None:
    """Extra arguments come after generated flags."""
