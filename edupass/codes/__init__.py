"""Access codes: batches, redemption and the per-student ledger."""

from .models import (
    AccessScope,
    Code,
    CodeBatch,
    CoursesGrant,
    EntitlementGrant,
    MaterialsGrant,
    RedemptionEntry,
    SplitMaterialsGrant,
)
from .redemption import RedemptionService
from .service import CodeBatchService


__all__ = [
    "AccessScope",
    "Code",
    "CodeBatch",
    "CodeBatchService",
    "CoursesGrant",
    "EntitlementGrant",
    "MaterialsGrant",
    "RedemptionEntry",
    "RedemptionService",
    "SplitMaterialsGrant",
]
