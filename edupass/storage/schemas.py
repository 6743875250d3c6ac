"""Response schemas for deletions followed by remote cleanup."""

from typing import TYPE_CHECKING

from edupass.core.schemas import ApiModel


if TYPE_CHECKING:
    from edupass.storage.bunny import RemoteDeletionResult


class RemoteDeletionItem(ApiModel):
    type: str
    id: str
    status: str
    error: str | None = None


class DeletionReport(ApiModel):
    """The record is gone; ``bunny_deletions`` tells how cleanup went."""

    message: str
    database_deleted: bool = True
    bunny_deletions: list[RemoteDeletionItem] = []
    cleanup_complete: bool = True

    @classmethod
    def from_results(
        cls, message: str, results: "list[RemoteDeletionResult]"
    ) -> "DeletionReport":
        return cls(
            message=message,
            bunny_deletions=[RemoteDeletionItem(**r.to_dict()) for r in results],
            cleanup_complete=all(r.status.value != "failed" for r in results),
        )
