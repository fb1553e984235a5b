"""
Step registry — the ordered list of provisioning steps.

Registration order is execution order: it encodes dependencies such
as "refresh the package index before installing packages". Once the
executor starts a run the registry is frozen.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from devbox.core.errors import DuplicateNameError, RegistryLockedError
from devbox.core.models.step import Step

logger = logging.getLogger(__name__)


class StepRegistry:
    """Ordered, name-unique collection of steps."""

    def __init__(self, steps: Iterable[Step] = ()):
        self._steps: list[Step] = []
        self._names: set[str] = set()
        self._frozen = False
        for step in steps:
            self.register(step)

    def register(self, step: Step) -> Step:
        """Append a step.

        Raises:
            DuplicateNameError: a step with the same name is registered.
            RegistryLockedError: the registry is already executing.
        """
        if self._frozen:
            raise RegistryLockedError(f"Cannot register '{step.name}': registry is frozen")
        if step.name in self._names:
            raise DuplicateNameError(step.name)
        self._steps.append(step)
        self._names.add(step.name)
        logger.debug("Registered step: %s", step.name)
        return step

    def all(self) -> Sequence[Step]:
        """Registered steps in order (read-only view)."""
        return tuple(self._steps)

    def get(self, name: str) -> Step | None:
        for step in self._steps:
            if step.name == name:
                return step
        return None

    def names(self) -> list[str]:
        return [s.name for s in self._steps]

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def without(self, names: Iterable[str]) -> StepRegistry:
        """A new registry with the named steps removed; order is kept."""
        excluded = set(names)
        unknown = excluded - self._names
        if unknown:
            logger.warning("Ignoring unknown steps to skip: %s", ", ".join(sorted(unknown)))
        return StepRegistry(s for s in self._steps if s.name not in excluded)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(tuple(self._steps))

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __repr__(self) -> str:
        return f"<StepRegistry steps={len(self._steps)} frozen={self._frozen}>"
