from sqlalchemy import select

from supplier_directory.domain.reconcile_intent import ReconcileIntent
from supplier_directory.repositories.base import BaseRepository


class ReconcileIntentRepository(BaseRepository[ReconcileIntent]):
    model = ReconcileIntent

    async def list_pending(self) -> list[ReconcileIntent]:
        result = await self._session.execute(
            select(ReconcileIntent).order_by(ReconcileIntent.created_at, ReconcileIntent.id)
        )
        return list(result.scalars().all())
