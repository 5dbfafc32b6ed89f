import os
import re
import shutil
from functools import wraps

import nox
from nox import session as nox_session
from nox.project import load_toml
from nox.sessions import Session

TYPE_CHECKING = False
if TYPE_CHECKING:
    from typing import Any, Callable, Dict, Optional, Sequence


MANIFEST_FILENAME = "pyproject.toml"
ROOT_DIR: str = os.path.dirname(os.path.abspath(__file__))
PROJECT_MANIFEST = load_toml(MANIFEST_FILENAME)
PROJECT_NAME: str = PROJECT_MANIFEST["project"]["name"]
PROJECT_NAME_NORMALIZED: str = PROJECT_NAME.replace("-", "_")
PROJECT_CODES_DIR: str = os.path.join("src", PROJECT_NAME_NORMALIZED)
DIST_DIR: str = os.path.join(ROOT_DIR, "dist")
TEST_DIR: str = os.path.join(ROOT_DIR, "tests")
EXAMPLES_DIR: str = os.path.join(ROOT_DIR, "examples")

DEFAULT_SESSION_KWARGS = {
    "reuse_venv": True,
    "venv_backend": "uv",
}


def uv_install_group_dependencies(session: Session, dependency_group: str):
    dependencies = nox.project.dependency_groups(PROJECT_MANIFEST, dependency_group)
    session.install(*dependencies)
    session.log(f"Installed dependencies: {dependencies} for {dependency_group}")


def session(
    f: "Optional[Callable[..., Any]]" = None,
    /,
    dependency_group: "Optional[str]" = None,
    default_posargs: "Sequence[str]" = (),
    **kwargs: "Dict[str, Any]",
) -> "Callable[..., Any]":
    """Register a nox session that installs `dependency_group` and the project first."""
    if f is None:
        return lambda f: session(
            f,
            dependency_group=dependency_group,
            default_posargs=default_posargs,
            **kwargs,
        )

    @wraps(f)
    def wrapper(session: Session, *args, **kwargs):
        if dependency_group is not None:
            uv_install_group_dependencies(session, dependency_group)
        session.install("-e", ".")
        posargs = list(session.posargs or default_posargs)
        return f(session, posargs, *args, **kwargs)

    return nox_session(
        wrapper,
        **{**DEFAULT_SESSION_KWARGS, "name": f.__name__.replace("_", "-"), **kwargs},
    )


# `nox -s test` runs the whole suite, `nox -s test -- tests/test_policy.py -vv` a part of it
@session(dependency_group="dev", default_posargs=[TEST_DIR, "-vv", "-n", "auto"])
def test(session: Session, posargs):
    session.run("python", "-m", "pytest", *posargs)


@session(dependency_group="dev")
def format(session: Session, posargs):
    session.run("ruff", "format", PROJECT_CODES_DIR, TEST_DIR, EXAMPLES_DIR)


@session(dependency_group="dev", default_posargs=["check", ".", "--fix"])
def check(session: Session, posargs):
    session.run("ruff", *posargs)


@session(dependency_group="dev")
def build(session: Session, posargs):
    shutil.rmtree(DIST_DIR, ignore_errors=True)
    session.run("uv", "build", external=True)


@session(dependency_group="dev", default_posargs=[PROJECT_CODES_DIR])
def no_print(session: Session, posargs):
    output = session.run(
        "grep", "-rn", r"\bprint(", *posargs, silent=True, success_codes=[0, 1], external=True
    )
    if output:
        session.error(f"Found print statements in the code:\n{output}")


@session
def version_sync(session: Session, posargs):
    """Sync version between pyproject.toml and __init__.py."""
    version = PROJECT_MANIFEST["project"]["version"]
    init_file = os.path.join(PROJECT_CODES_DIR, "__init__.py")
    with open(init_file, "r") as f:
        init_content = f.read()
    init_content = re.sub(
        r'__version__ = "[^"]+"', f'__version__ = "{version}"', init_content
    )
    with open(init_file, "w") as f:
        f.write(init_content)
    session.log(f"Synced version to {version} in {init_file}")
