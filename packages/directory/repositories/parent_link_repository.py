from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.directory.models.database.parent_link import ParentStudentLinkEntity
from packages.directory.models.domain.parent_link import ParentStudentLink


class ParentLinkRepository(BaseRepository[ParentStudentLinkEntity, ParentStudentLink]):
    def __init__(self):
        super().__init__(ParentStudentLinkEntity, ParentStudentLink)

    @trace_span
    async def delete_for_tenant(self, tenant_id: str) -> int:
        """Remove every link where the tenant is the parent or the student."""
        removed = await self.delete_where(parent_id=tenant_id)
        removed += await self.delete_where(student_id=tenant_id)
        return removed
