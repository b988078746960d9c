"""Administrative enablement of probes by name."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prober.config import Settings


def _split_names(value: str) -> set[str]:
    return {name.strip() for name in value.split(",") if name.strip()}


class ProbeSelection:
    """Decides whether a probe may keep running.

    If ``only`` is non-empty, just those probes are enabled. Otherwise every
    probe is enabled except the ones in ``disabled``.
    """

    def __init__(
        self,
        disabled: Iterable[str] = (),
        only: Iterable[str] = (),
    ) -> None:
        self.disabled = set(disabled)
        self.only = set(only)

    @classmethod
    def from_settings(cls, config: Settings) -> ProbeSelection:
        return cls(
            disabled=_split_names(config.disabled_probes),
            only=_split_names(config.only_probes),
        )

    def enabled(self, name: str) -> bool:
        if self.only:
            return name in self.only
        return name not in self.disabled

    def disable(self, name: str) -> None:
        self.disabled.add(name)

    def __call__(self, name: str) -> bool:
        return self.enabled(name)
