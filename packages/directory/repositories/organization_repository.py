from common.repositories.base import BaseRepository
from packages.directory.models.database.organization import OrganizationEntity
from packages.directory.models.domain.organization import Organization


class OrganizationRepository(BaseRepository[OrganizationEntity, Organization]):
    def __init__(self):
        super().__init__(OrganizationEntity, Organization)
