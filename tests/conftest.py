"""Shared fixtures: fake installers and a registry wired with them."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

import pytest

from opencv_ci.errors import InstallerFailed
from opencv_ci.installers import SCRIPTS, InstallerRegistry
from opencv_ci.lib.diskspace import ReclaimResult


@dataclass
class FakeInstaller:
    name: str
    calls: List[Tuple[str, Dict[str, str]]]
    exit_status: int = 0

    def install(self, env: Mapping[str, str]) -> None:
        self.calls.append((self.name, dict(env)))
        if self.exit_status != 0:
            raise InstallerFailed(self.name, self.exit_status)


@dataclass
class FakeReclaimer:
    ok: bool = True
    raises: bool = False
    calls: int = 0
    seen_paths: List[str] = field(default_factory=list)

    def __call__(self, config) -> ReclaimResult:
        self.calls += 1
        self.seen_paths = list(config.reclaim_paths)
        if self.raises:
            raise OSError("rm: cannot remove '/opt/ghc': Permission denied")
        if self.ok:
            return ReclaimResult(attempted=list(config.reclaim_paths), ok=True)
        return ReclaimResult(attempted=list(config.reclaim_paths), ok=False, error="exit status 1")


@pytest.fixture()
def install_calls():
    """List of (installer name, env) tuples, in invocation order."""
    return []


@pytest.fixture()
def fake_registry(install_calls):
    registry = InstallerRegistry()
    for (family, variant), script in SCRIPTS.items():
        registry.register(family, variant, FakeInstaller(name=script, calls=install_calls))
    return registry


@pytest.fixture()
def reclaimer():
    return FakeReclaimer()


@pytest.fixture()
def make_installer(install_calls):
    def _make(name: str, exit_status: int = 0) -> FakeInstaller:
        return FakeInstaller(name=name, calls=install_calls, exit_status=exit_status)

    return _make
