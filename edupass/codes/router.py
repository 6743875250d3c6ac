"""Code batch administration and code redemption endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from edupass.auth.dependencies import AdminUser, StudentUser
from edupass.core.pagination import Page, PageParamsDep, paginate
from edupass.core.schemas import MessageResponse

from .dependencies import CodeBatchServiceDep, RedemptionServiceDep
from .schemas import (
    CodeBatchCreate,
    CodeBatchDetailResponse,
    CodeBatchResponse,
    CodeResponse,
    RedeemCodeRequest,
    RedeemCodeResponse,
    RedemptionInfoResponse,
)


admin_router = APIRouter(prefix="/v1/admin/codesGroup", tags=["admin-codes"])
student_router = APIRouter(prefix="/v1/student", tags=["student-codes"])


# ==============================================================================
# Admin: code batches
# ==============================================================================


@admin_router.post(
    "",
    response_model=CodeBatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create codes group",
)
async def create_codes_group(
    data: CodeBatchCreate,
    service: CodeBatchServiceDep,
    admin: AdminUser,
) -> CodeBatchResponse:
    """Create a batch from explicit codes or generate ``count`` codes."""
    batch = await service.create_batch(
        expiration=data.expiration,
        grants=data.to_grants(),
        codes=data.codes,
        count=data.count,
        name=data.name,
        created_by=admin.id,
    )
    return CodeBatchResponse.from_batch(batch, service.clock(), used_count=0)


@admin_router.get(
    "",
    response_model=Page[CodeBatchResponse],
    summary="List codes groups",
)
async def list_codes_groups(
    service: CodeBatchServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
) -> Page[CodeBatchResponse]:
    now = service.clock()
    batches = await service.list_batches()
    return paginate(
        [CodeBatchResponse.from_batch(batch, now, used) for batch, used in batches],
        params.page,
        params.limit,
    )


@admin_router.get(
    "/{group_id}",
    response_model=CodeBatchDetailResponse,
    summary="Get codes group with its codes",
)
async def get_codes_group(
    group_id: UUID,
    service: CodeBatchServiceDep,
    _admin: AdminUser,
) -> CodeBatchDetailResponse:
    batch = await service.require_batch(group_id)
    codes = await service.list_codes(group_id)
    return CodeBatchDetailResponse(
        batch=CodeBatchResponse.from_batch(
            batch, service.clock(), used_count=sum(1 for c in codes if c.is_used)
        ),
        codes=[CodeResponse.from_code(code) for code in codes],
    )


@admin_router.get(
    "/{group_id}/codes",
    response_model=Page[CodeResponse],
    summary="List codes of a group",
)
async def list_group_codes(
    group_id: UUID,
    service: CodeBatchServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
) -> Page[CodeResponse]:
    await service.require_batch(group_id)
    codes = await service.list_codes(group_id)
    return paginate([CodeResponse.from_code(code) for code in codes], params.page, params.limit)


@admin_router.delete(
    "/{group_id}",
    response_model=MessageResponse,
    summary="Delete codes group",
)
async def delete_codes_group(
    group_id: UUID,
    service: CodeBatchServiceDep,
    _admin: AdminUser,
) -> MessageResponse:
    """Delete a batch and its codes.

    Students who redeemed one of its codes lose the access it granted.
    """
    removed = await service.delete_batch(group_id)
    return MessageResponse(message=f"Codes group deleted ({removed} codes)")


# ==============================================================================
# Student: redemption
# ==============================================================================


@student_router.post(
    "/redeemCode",
    response_model=RedeemCodeResponse,
    summary="Redeem an access code",
)
async def redeem_code(
    data: RedeemCodeRequest,
    service: RedemptionServiceDep,
    student: StudentUser,
) -> RedeemCodeResponse:
    entry, batch = await service.redeem(student.id, data.code)
    return RedeemCodeResponse(
        message="Code redeemed successfully",
        codes_group=entry.group_id,
        expiration=batch.expiration,
    )


@student_router.get(
    "/redeemCodes",
    response_model=list[RedemptionInfoResponse],
    summary="List redeemed codes",
)
async def list_redeemed_codes(
    service: RedemptionServiceDep,
    student: StudentUser,
) -> list[RedemptionInfoResponse]:
    """The student's redeemed codes with the current state of each batch."""
    now = service.clock()
    return [
        RedemptionInfoResponse.from_entry(entry, batch, now)
        for entry, batch in await service.describe_entries(student.id)
    ]
