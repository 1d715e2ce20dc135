"""Ordered feature registry.

Features are kept in insertion order; dispatch picks the first match,
so registering two features with the same kind and discriminator
means the later one is never reached. The registry is built during
setup and frozen before events are served, after which it is only
read and may be shared across concurrent route calls.
"""

from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple

import structlog

from .exceptions import RegistryFrozenError
from .features import Feature
from .interactions import COMMAND_KINDS, InteractionKind

logger = structlog.get_logger("switchboard.registry")


class FeatureRegistry:
    """Insertion-ordered collection of features.

    Supports two registration modes: add_feature() for a single
    feature and add_features() for a batch. Neither validates beyond
    what the feature dataclasses enforce.
    """

    def __init__(self, features: Optional[Iterable[Feature]] = None):
        self._features: List[Feature] = []
        self._frozen = False
        if features is not None:
            self.add_features(features)

    def add_feature(self, feature: Feature) -> None:
        """Append a feature.

        Raises:
            RegistryFrozenError: If the registry was frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(
                kind=feature.kind.name, discriminator=feature.discriminator
            )
        self._features.append(feature)
        logger.debug(
            "feature_added",
            kind=feature.kind.name,
            discriminator=feature.discriminator,
            position=len(self._features) - 1,
        )

    def add_features(self, features: Iterable[Feature]) -> None:
        """Append several features, preserving their order."""
        for feature in features:
            self.add_feature(feature)

    def freeze(self) -> None:
        """Stop accepting features. Idempotent."""
        if not self._frozen:
            self._frozen = True
            logger.info("registry_frozen", features=len(self._features))

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def features(self) -> Tuple[Feature, ...]:
        """Snapshot of all features in insertion order."""
        return tuple(self._features)

    def command_specs(self) -> List[Mapping[str, Any]]:
        """Command definitions of every publishable feature, in order."""
        return [f.command_spec for f in self._features if f.kind in COMMAND_KINDS]

    def match(self, kind: InteractionKind, discriminator: str) -> Optional[Feature]:
        """Return the first feature with this kind and discriminator."""
        for feature in self._features:
            if feature.kind == kind and feature.discriminator == discriminator:
                return feature
        return None

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(tuple(self._features))
