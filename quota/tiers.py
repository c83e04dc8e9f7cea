"""Central tier configuration: single source of truth for quotas and gating."""

from typing import Dict, FrozenSet, Iterable, Optional

from contracts import TierRecord, UserTier

# Sections available to everyone
BASIC_SECTIONS: FrozenSet[str] = frozenset({
    "header",
    "features",
    "installation",
    "environment",
    "license",
})

# Extra sections for registered users
REGISTERED_SECTIONS: FrozenSet[str] = BASIC_SECTIONS | {
    "tech-stack",
    "scripts",
    "docker",
    "deployment",
    "testing",
}

# Everything for elevated users
ELEVATED_SECTIONS: FrozenSet[str] = REGISTERED_SECTIONS | {
    "api-docs",
    "contributing",
}

FREE_BACKENDS: FrozenSet[str] = frozenset({"groq", "gemini", "ollama"})
# litellm may route to any hosted model, paid ones included
ALL_BACKENDS: FrozenSet[str] = FREE_BACKENDS | {"openai", "anthropic", "deepseek", "litellm"}

DEFAULT_TIERS = (
    TierRecord(UserTier.ANONYMOUS, 2, BASIC_SECTIONS, FREE_BACKENDS),
    TierRecord(UserTier.REGISTERED, 5, REGISTERED_SECTIONS, FREE_BACKENDS),
    TierRecord(UserTier.ELEVATED, None, ELEVATED_SECTIONS, ALL_BACKENDS),
)


def _ceiling(record: TierRecord) -> float:
    return float("inf") if record.daily_quota is None else record.daily_quota


class TierPolicy:
    """Pure lookup from tier to quota, allowed sections and allowed backends."""

    def __init__(self, records: Iterable[TierRecord] = DEFAULT_TIERS):
        """Build the policy, validating that privilege never decreases with rank.

        Raises:
            ValueError: If a tier is missing or a higher tier is less privileged
        """
        self._records: Dict[UserTier, TierRecord] = {record.tier: record for record in records}
        missing = [tier.value for tier in UserTier if tier not in self._records]
        if missing:
            raise ValueError(f"Tier policy missing tiers: {missing}")

        ordered = [self._records[tier] for tier in sorted(UserTier, key=lambda t: t.rank)]
        for lower, higher in zip(ordered, ordered[1:]):
            if _ceiling(higher) < _ceiling(lower):
                raise ValueError(
                    f"Daily quota of {higher.tier.value} is below {lower.tier.value}"
                )
            if not lower.allowed_sections <= higher.allowed_sections:
                raise ValueError(
                    f"{higher.tier.value} must include every section of {lower.tier.value}"
                )

    def get(self, tier: UserTier) -> TierRecord:
        return self._records[UserTier(tier)]

    def daily_quota(self, tier: UserTier) -> Optional[int]:
        return self.get(tier).daily_quota

    def allowed_backends(self, tier: UserTier) -> FrozenSet[str]:
        return self.get(tier).allowed_backends

    def is_allowed(self, section_id: str, tier: UserTier) -> bool:
        return section_id in self.get(tier).allowed_sections

    def required_tier(self, section_id: str) -> Optional[UserTier]:
        """Lowest tier that may request ``section_id``; None if no tier can."""
        for tier in sorted(UserTier, key=lambda t: t.rank):
            if section_id in self._records[tier].allowed_sections:
                return tier
        return None
