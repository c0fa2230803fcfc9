"""Operator identity -> target repository lookup."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from demo_controls.orchestrator.errors import MissingIdentity, UnknownIdentity


@dataclass(frozen=True, slots=True)
class RepoTarget:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def parse(cls, value: str) -> RepoTarget:
        owner, _, repo = value.strip().strip("/").partition("/")
        if not owner.strip() or not repo.strip() or "/" in repo:
            raise ValueError(f"Repository must be in the form 'owner/repo': {value!r}")
        return cls(owner=owner.strip(), repo=repo.strip())


class IdentityResolver:
    """Static table of operator names and the repository each one demos against.

    The table is validated once at construction; lookups never touch the network.
    """

    def __init__(self, table: Mapping[str, str]) -> None:
        targets: dict[str, RepoTarget] = {}
        for name, repository in table.items():
            if not name.strip():
                raise ValueError("Identity names must be non-empty")
            targets[name] = RepoTarget.parse(repository)
        if not targets:
            raise ValueError("At least one identity is required")
        self._targets = targets

    def names(self) -> list[str]:
        return list(self._targets)

    def resolve(self, name: str | None) -> RepoTarget:
        if name is None or not name.strip():
            raise MissingIdentity()
        target = self._targets.get(name)
        if target is None:
            raise UnknownIdentity(name, self.names())
        return target
