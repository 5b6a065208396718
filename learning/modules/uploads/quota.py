"""Plan-tiered upload limits.

Used space is the sum of every object in the bucket whose key starts with
``"{owner}-"``; limits come from a static table keyed by (tier, resource kind).
"""
import asyncio
import enum
import logging
from dataclasses import dataclass

from learning.platform.ports.object_storage import ObjectStoragePort

log = logging.getLogger(__name__)

MB = 1024 * 1024
GB = 1024 * MB


class Tier(str, enum.Enum):
    BASIC = "BASIC"
    ADVANCED = "ADVANCED"
    PRO = "PRO"

    @classmethod
    def parse(cls, value: "str | Tier | None") -> "Tier | None":
        if isinstance(value, Tier):
            return value
        if not value:
            return None
        name = str(value).strip().upper()
        name = _TIER_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            return None


# plan names issued by older identity tokens
_TIER_ALIASES = {"FREE": "BASIC", "PREMIUM": "ADVANCED"}


class ResourceKind(str, enum.Enum):
    CLASS = "class"
    MATERIAL = "material"


@dataclass(frozen=True)
class UploadLimits:
    per_file: int
    total: int


_LIMITS: dict[tuple[Tier, ResourceKind], UploadLimits] = {
    (Tier.BASIC, ResourceKind.MATERIAL): UploadLimits(5 * MB, 5 * GB),
    (Tier.ADVANCED, ResourceKind.MATERIAL): UploadLimits(10 * MB, 12 * GB),
    (Tier.PRO, ResourceKind.MATERIAL): UploadLimits(20 * MB, 25 * GB),
    (Tier.BASIC, ResourceKind.CLASS): UploadLimits(350 * MB, 900 * MB),
    (Tier.ADVANCED, ResourceKind.CLASS): UploadLimits(2 * GB, 38 * GB),
    (Tier.PRO, ResourceKind.CLASS): UploadLimits(5 * GB, 75 * GB),
}


def upload_limits(tier: Tier, kind: ResourceKind) -> UploadLimits:
    return _LIMITS[(tier, kind)]


@dataclass(frozen=True)
class QuotaDecision:
    accepted: bool
    reason: str | None = None

    @classmethod
    def accept(cls) -> "QuotaDecision":
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> "QuotaDecision":
        return cls(False, reason)


def owner_prefix(owner: str) -> str:
    return f"{owner}-"


class QuotaPolicy:
    def __init__(self, storage: ObjectStoragePort):
        self.storage = storage

    async def used_space(self, owner: str) -> int:
        """Bytes currently stored under the owner's prefix.

        A listing failure counts as zero used space so that an unreachable
        bucket never blocks uploads.
        """
        prefix = owner_prefix(owner)
        try:
            objects = await asyncio.to_thread(self.storage.list_objects, prefix)
        except Exception:
            log.warning("Could not list bucket %s for %s; assuming no used space", self.storage.bucket, owner, exc_info=True)
            return 0
        return sum(obj.size for obj in objects if obj.key.startswith(prefix))

    async def evaluate(self, owner: str, tier: "Tier | str | None", size: int, kind: ResourceKind) -> QuotaDecision:
        parsed = Tier.parse(tier)
        if parsed is None:
            return QuotaDecision.reject(f"Unknown subscription plan: {tier}")
        limits = upload_limits(parsed, kind)
        if size > limits.per_file:
            return QuotaDecision.reject(f"Your file exceeds the maximum file size ({limits.per_file / MB:g} MB)")
        used = await self.used_space(owner)
        if used + size > limits.total:
            return QuotaDecision.reject(f"You have exceeded your storage limit ({limits.total / GB:g} GB)")
        return QuotaDecision.accept()
