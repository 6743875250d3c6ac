"""Entitlement resolution from redeemed codes."""

from .models import AccessTarget, CourseScope, TargetKind
from .resolver import EntitlementResolver


__all__ = ["AccessTarget", "CourseScope", "EntitlementResolver", "TargetKind"]
