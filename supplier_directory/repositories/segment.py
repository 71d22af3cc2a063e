from supplier_directory.domain.segment import Segment
from supplier_directory.repositories.base import BaseRepository


class SegmentRepository(BaseRepository[Segment]):
    model = Segment
