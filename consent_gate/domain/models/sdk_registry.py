"""SDK registry: ordered, id-keyed collection of vendor policies.

The registry is built once at process start and never mutated. Iteration is
sorted by declared init order (stable for equal orders) so multi-vendor
startup is deterministic; lookup by id is a dict hit.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from consent_gate.domain.models.consent import ConsentType
from consent_gate.domain.models.sdk_config import SdkConfig, SdkId


class SdkRegistry:
    """Immutable registry of SdkConfig records.

    Duplicate ids keep the first declaration; later ones are recorded in
    ``duplicate_ids`` so the loader can report them.

    Attributes:
        version: Policy document version the registry was built from.
        duplicate_ids: Ids that were declared more than once.
    """

    def __init__(self, configs: Iterable[SdkConfig], version: str = "") -> None:
        """Build the registry.

        Args:
            configs: Policy records in declaration order.
            version: Version string of the policy source.
        """
        by_id: dict[SdkId, SdkConfig] = {}
        duplicates: list[SdkId] = []
        for config in configs:
            if config.id in by_id:
                duplicates.append(config.id)
                continue
            by_id[config.id] = config

        self.version = version
        self.duplicate_ids: tuple[SdkId, ...] = tuple(duplicates)
        self._by_id = by_id
        self._ordered: tuple[SdkConfig, ...] = tuple(
            sorted(by_id.values(), key=lambda c: c.init_order)
        )

    def all(self) -> list[SdkConfig]:
        """All configs sorted by init order."""
        return list(self._ordered)

    def get(self, sdk_id: SdkId) -> SdkConfig | None:
        """Look up a single vendor policy by id."""
        return self._by_id.get(sdk_id)

    def required_consent_for(self, sdk_id: SdkId) -> frozenset[ConsentType]:
        """Required categories for a vendor, empty when it is not declared."""
        config = self._by_id.get(sdk_id)
        if config is None:
            return frozenset()
        return config.required_consent

    def __contains__(self, sdk_id: object) -> bool:
        return sdk_id in self._by_id

    def __iter__(self) -> Iterator[SdkConfig]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)
