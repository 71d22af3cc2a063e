"""Supplier repositories: the scalar row and its two association tables."""

from sqlalchemy import select

from supplier_directory.domain.supplier import SegmentLink, Supplier, SupplierIdentifier
from supplier_directory.repositories.base import BaseRepository


class SupplierRepository(BaseRepository[Supplier]):
    model = Supplier


class SupplierIdentifierRepository(BaseRepository[SupplierIdentifier]):
    model = SupplierIdentifier

    async def list_for_supplier(self, supplier_id: int) -> list[str]:
        result = await self._session.execute(
            select(SupplierIdentifier.identifier)
            .where(SupplierIdentifier.supplier_id == supplier_id)
            .order_by(SupplierIdentifier.id)
        )
        return list(result.scalars().all())

    async def replace_for_supplier(self, supplier_id: int, identifiers: list[str]) -> None:
        """Delete every identifier of the supplier, then insert *identifiers*."""
        await self.delete_where(supplier_id=supplier_id)
        await self.bulk_create(
            [{"supplier_id": supplier_id, "identifier": value} for value in identifiers]
        )


class SegmentLinkRepository(BaseRepository[SegmentLink]):
    model = SegmentLink

    async def list_for_supplier(self, supplier_id: int) -> list[int]:
        result = await self._session.execute(
            select(SegmentLink.segment_id)
            .where(SegmentLink.supplier_id == supplier_id)
            .order_by(SegmentLink.id)
        )
        return list(result.scalars().all())

    async def replace_for_supplier(self, supplier_id: int, segment_ids: list[int]) -> None:
        """Delete every link of the supplier, then insert one per id in *segment_ids*."""
        await self.delete_where(supplier_id=supplier_id)
        await self.bulk_create(
            [{"supplier_id": supplier_id, "segment_id": segment_id} for segment_id in segment_ids]
        )
