"""Entitlement resolution.

Nothing about access is stored per student except the redemption ledger.
Every decision joins the ledger against the current state of each batch:

1. A ledger entry counts only while its batch exists, is live
   (``expiration > now``) and its code is marked used.
2. The target is resolved to an ``AccessScope`` (material, plus the course
   for course and video targets). Any missing link denies access.
3. Each grant of a counting batch answers ``covers(scope)``; the first
   match grants access.

Positive decisions may be cached in Redis for at most the remaining
lifetime of the granting batch. The cached value is that batch's
expiration, and a hit is honoured only while it is later than ``now``.
Negative decisions are never cached.
"""

from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

import redis.asyncio as redis

from edupass.catalog.models import ensure_utc_aware, utc_now
from edupass.codes.models import AccessScope, CodeBatch
from edupass.config import Settings, get_settings
from edupass.core.logging import get_logger
from edupass.core.redis import access_cache_key

from .models import AccessTarget, CourseScope, TargetKind


if TYPE_CHECKING:
    from edupass.catalog.service import MaterialService
    from edupass.codes.redemption import RedemptionService
    from edupass.codes.service import CodeBatchService
    from edupass.courses.service import CourseService, VideoService
    from edupass.questions.service import QuestionGroupService


logger = get_logger(__name__)


class EntitlementResolver:
    """Decides what a student may access from their redeemed codes."""

    def __init__(
        self,
        redemptions: "RedemptionService",
        batches: "CodeBatchService",
        materials: "MaterialService",
        question_groups: "QuestionGroupService",
        courses: "CourseService",
        videos: "VideoService",
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.redemptions = redemptions
        self.batches = batches
        self.materials = materials
        self.question_groups = question_groups
        self.courses = courses
        self.videos = videos
        self.redis = redis_client
        self.settings = settings or get_settings()
        self.clock = clock

    # ==========================================================================
    # Scope resolution
    # ==========================================================================

    async def _course_scope_of(self, course_id: UUID) -> AccessScope | None:
        course = await self.courses.get(course_id)
        if course is None:
            return None
        material = await self.materials.get(course.material_id)
        if material is None:
            return None
        return AccessScope(material_id=material.id, course_id=course.id)

    async def resolve_scope(self, target: AccessTarget) -> AccessScope | None:
        """Material (and course) a target belongs to; ``None`` on a broken chain."""
        if target.kind == TargetKind.MATERIAL:
            material = await self.materials.get(target.id)
            return AccessScope(material_id=material.id) if material else None

        if target.kind == TargetKind.COURSE:
            return await self._course_scope_of(target.id)

        if target.kind == TargetKind.QUESTION_GROUP:
            material_id = await self.question_groups.resolve_material_id(target.id)
            return AccessScope(material_id=material_id) if material_id else None

        if target.kind == TargetKind.VIDEO:
            video = await self.videos.get(target.id)
            if video is None:
                return None
            return await self._course_scope_of(video.course_id)

        return None

    # ==========================================================================
    # Ledger evaluation
    # ==========================================================================

    async def counting_batches(
        self, student_id: UUID, now: datetime
    ) -> AsyncIterator[CodeBatch]:
        """Batches that currently grant something to ``student_id``.

        Each batch is loaded once per call and yielded at most once, in
        ledger order.
        """
        seen: dict[UUID, CodeBatch | None] = {}
        yielded: set[UUID] = set()
        for entry in await self.redemptions.list_entries(student_id):
            if entry.group_id not in seen:
                seen[entry.group_id] = await self.batches.get_batch(entry.group_id)
            batch = seen[entry.group_id]
            if batch is None or batch.id in yielded or not batch.is_live(now):
                continue
            code = await self.batches.get_code(batch.id, entry.code)
            if code is None or not code.is_used:
                continue
            if code.redeemed_by is not None and code.redeemed_by != student_id:
                continue
            yielded.add(batch.id)
            yield batch

    async def has_access(
        self, student_id: UUID, target: AccessTarget, now: datetime | None = None
    ) -> bool:
        """Whether ``student_id`` may access ``target`` at ``now``.

        Fails closed: an unresolvable target, a deleted batch, an expired
        batch or an unused code never grants access.
        """
        now = now or self.clock()
        cache_key = access_cache_key(student_id, target.kind.value, target.id)
        if await self._cache_hit(cache_key, now):
            return True

        scope = await self.resolve_scope(target)
        if scope is None:
            logger.info(
                "entitlement_denied",
                student_id=str(student_id),
                target_kind=target.kind.value,
                target_id=str(target.id),
                reason="unresolved_target",
            )
            return False

        async for batch in self.counting_batches(student_id, now):
            if batch.covers(scope):
                await self._cache_grant(cache_key, batch, now)
                return True

        logger.info(
            "entitlement_denied",
            student_id=str(student_id),
            target_kind=target.kind.value,
            target_id=str(target.id),
            reason="no_grant",
        )
        return False

    async def accessible_material_ids(
        self, student_id: UUID, now: datetime | None = None
    ) -> set[UUID]:
        """Materials covered by a material-level grant or holding a granted course."""
        now = now or self.clock()
        material_ids: set[UUID] = set()
        course_ids: set[UUID] = set()
        async for batch in self.counting_batches(student_id, now):
            material_ids |= batch.material_ids()
            course_ids |= batch.course_ids()
        for course_id in course_ids:
            course = await self.courses.get(course_id)
            if course is not None:
                material_ids.add(course.material_id)
        return material_ids

    async def course_scope(
        self, student_id: UUID, material_id: UUID, now: datetime | None = None
    ) -> CourseScope:
        now = now or self.clock()
        material_scope = AccessScope(material_id=material_id)
        course_ids: set[UUID] = set()
        async for batch in self.counting_batches(student_id, now):
            if any(g.is_material_level and g.covers(material_scope) for g in batch.grants):
                return CourseScope(all_courses=True)
            course_ids |= batch.course_ids()
        return CourseScope(course_ids=frozenset(course_ids))

    # ==========================================================================
    # Cache
    # ==========================================================================

    async def _cache_hit(self, key: str, now: datetime) -> bool:
        """A cached grant counts only while the batch it came from is live."""
        if self.redis is None:
            return False
        try:
            cached = await self.redis.get(key)
        except redis.RedisError as e:
            logger.warning("access_cache_read_failed", error=str(e))
            return False
        if not cached:
            return False
        try:
            expiration = ensure_utc_aware(datetime.fromisoformat(cached))
        except (TypeError, ValueError):
            return False
        return expiration is not None and expiration > now

    async def _cache_grant(self, key: str, batch: CodeBatch, now: datetime) -> None:
        if self.redis is None:
            return
        remaining = int((batch.expiration - now).total_seconds())
        ttl = min(self.settings.entitlement_cache_ttl_seconds, remaining)
        if ttl < 1:
            return
        try:
            await self.redis.set(key, batch.expiration.isoformat(), ex=ttl)
        except redis.RedisError as e:
            logger.warning("access_cache_write_failed", error=str(e))
