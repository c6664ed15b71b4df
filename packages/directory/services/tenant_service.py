"""
Service for directory membership: signup, member creation and deletion.

Every create operation follows the same path: the new record's billing owner
is taken from the creator, the quota is reserved under the owner's lock, the
login account is created, then the directory records are written.
"""

import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from common.core.config import settings
from common.core.exceptions import (
    AppException,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.providers.factory import get_identity_provider
from packages.auth.providers.interface import IdentityProviderInterface
from packages.auth.providers.models import NewAccount
from packages.billing.models.domain.resources import ResourceBase, ResourceKey
from packages.billing.services.billing_owner import resolve_billing_owner_id
from packages.billing.services.quota_service import QuotaService
from packages.directory.models.domain.bulk_import import (
    BulkImportError,
    BulkImportOptions,
    BulkImportResult,
    BulkUserRow,
    CreatedUser,
)
from packages.directory.models.domain.enums import (
    EMPLOYER_STAFF_ROLES,
    ORGANIZATION_OWNER_ROLES,
    SCHOOL_STAFF_ROLES,
    SignupRole,
    TenantRole,
)
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.services.organization_tree import load_organization_tree
from packages.directory.utils.user_helpers import (
    generate_email,
    generate_password,
    is_valid_email,
    normalize_phone_number,
    validate_password,
)

logger = get_logger(__name__)

NOT_AUTHORIZED = "You are not authorized for this action."

# Tenant kinds each admin role may create directly
_STAFF_ROLES_BY_ADMIN: Dict[TenantRole, frozenset] = {
    TenantRole.SCHOOL_ADMIN: SCHOOL_STAFF_ROLES,
    TenantRole.EMPLOYER_ADMIN: EMPLOYER_STAFF_ROLES,
}

_DEFAULT_STAFF_ROLE: Dict[TenantRole, TenantRole] = {
    TenantRole.SCHOOL_ADMIN: TenantRole.TEACHER,
    TenantRole.EMPLOYER_ADMIN: TenantRole.SUPERVISOR,
}


def _new_id() -> str:
    return uuid.uuid4().hex


class NewMember:
    """Everything needed to create one member account."""

    def __init__(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: TenantRole,
        organization_id: Optional[str] = None,
        phone_number: Optional[str] = None,
    ):
        self.email = email.strip().lower()
        self.password = password
        self.first_name = first_name.strip()
        self.last_name = last_name.strip()
        self.role = role
        self.organization_id = organization_id
        self.phone_number = normalize_phone_number(phone_number)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TenantService:
    """Service for directory membership."""

    def __init__(
        self,
        store: Optional[DirectoryStoreInterface] = None,
        identity: Optional[IdentityProviderInterface] = None,
        quota_service: Optional[QuotaService] = None,
    ):
        self.store = store or get_directory_store()
        self.identity = identity or get_identity_provider()
        self.quota_service = quota_service or QuotaService(self.store)

    # ========================================================================
    # Profile
    # ========================================================================

    @trace_span
    async def get_profile(self, uid: str) -> Tenant:
        tenant = await self.store.get_tenant(uid)
        if tenant is None:
            raise NotFoundError("User profile not found.")
        return tenant

    @trace_span
    async def signup(
        self,
        uid: str,
        email: Optional[str],
        role: Optional[str],
        first_name: str = "",
        last_name: str = "",
        institute_name: Optional[str] = None,
        institute_type: Optional[str] = None,
    ) -> Tuple[Tenant, bool]:
        """
        Create the caller's own profile as a root payer.

        Idempotent: an existing profile is returned untouched. Unknown roles
        sign up as parents. School, district and employer payers also get
        their own organization.

        Returns:
            (tenant, created)
        """
        existing = await self.store.get_tenant(uid)
        if existing:
            return existing, False
        if not email:
            raise ValidationError("Email is required")

        try:
            tenant_role = SignupRole(role).tenant_role
        except ValueError:
            tenant_role = TenantRole.PARENT

        billing_owner_id = resolve_billing_owner_id(None, uid)

        async with self.store.billing_owner_lock(billing_owner_id):
            organization_id = None
            if tenant_role in ORGANIZATION_OWNER_ROLES:
                organization = await self.store.save_organization(
                    Organization(
                        id=_new_id(),
                        name=institute_name or f"{first_name} {last_name}".strip(),
                        type=institute_type,
                        owner_id=uid,
                        billing_owner_id=billing_owner_id,
                    )
                )
                organization_id = organization.id

            tenant = await self.store.save_tenant(
                Tenant(
                    id=uid,
                    email=email.lower(),
                    first_name=first_name,
                    last_name=last_name,
                    role=tenant_role,
                    organization_id=organization_id,
                    billing_owner_id=billing_owner_id,
                )
            )

        logger.info(
            f"Signed up {tenant_role.value} {uid}",
            extra={"uid": uid, "role": tenant_role.value},
        )
        return tenant, True

    # ========================================================================
    # Member creation
    # ========================================================================

    def _validate_member(self, draft: NewMember) -> None:
        if not draft.first_name or not draft.last_name:
            raise ValidationError("First name and last name are required")
        if not is_valid_email(draft.email):
            raise ValidationError("Invalid email format", {"email": draft.email})
        valid, error = validate_password(draft.password)
        if not valid:
            raise ValidationError(error)

    async def _create_account(
        self, creator: Tenant, draft: NewMember, billing_owner_id: Optional[str] = None
    ) -> Tenant:
        """
        Create the login account and tenant record for one member.

        Must run inside a reservation. The login account is removed again if
        the tenant record cannot be written.
        """
        if await self.store.find_tenant_by_email(draft.email):
            raise ValidationError("Email already exists", {"email": draft.email})

        account = await self.identity.create_user(
            NewAccount(
                email=draft.email,
                password=draft.password,
                display_name=draft.display_name,
                phone_number=draft.phone_number,
            )
        )
        try:
            return await self.store.save_tenant(
                Tenant(
                    id=account.uid,
                    email=draft.email,
                    first_name=draft.first_name,
                    last_name=draft.last_name,
                    role=draft.role,
                    organization_id=draft.organization_id,
                    creator_id=creator.id,
                    billing_owner_id=resolve_billing_owner_id(
                        billing_owner_id or creator.billing_owner_id, account.uid
                    ),
                    phone_number=draft.phone_number,
                )
            )
        except Exception:
            logger.error(
                f"Failed to store tenant {account.uid}; removing login account",
                extra={"uid": account.uid},
            )
            await self.identity.delete_user(account.uid)
            raise

    async def _remove_login_accounts(self, uids: List[str]) -> None:
        """Delete login accounts whose directory records were not kept."""
        for uid in uids:
            try:
                await self.identity.delete_user(uid)
            except Exception as e:
                logger.error(
                    f"Failed to remove login account {uid}: {e}", extra={"uid": uid}
                )

    async def _create_member(
        self,
        creator: Tenant,
        draft: NewMember,
        resource_key: ResourceKey,
        after_create: Optional[Callable[[Tenant], Awaitable[None]]] = None,
    ) -> Tenant:
        self._validate_member(draft)

        created: List[str] = []

        async def create() -> Tenant:
            tenant = await self._create_account(creator, draft)
            created.append(tenant.id)
            if after_create is not None:
                await after_create(tenant)
            return tenant

        try:
            tenant = await self.quota_service.reserve(
                creator.billing_owner_id, resource_key, 1, creator, create
            )
        except Exception:
            await self._remove_login_accounts(created)
            raise
        logger.info(
            f"{creator.id} created {tenant.role.value} {tenant.id}",
            extra={
                "creator_id": creator.id,
                "uid": tenant.id,
                "billing_owner_id": tenant.billing_owner_id,
            },
        )
        return tenant

    @trace_span
    async def create_child(
        self,
        parent: Tenant,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
    ) -> Tenant:
        """Create a student account linked to the calling parent."""
        if parent.role != TenantRole.PARENT:
            raise ForbiddenError(NOT_AUTHORIZED)

        async def link(student: Tenant) -> None:
            await self.store.save_parent_link(
                ParentStudentLink(
                    id=_new_id(),
                    parent_id=parent.id,
                    student_id=student.id,
                    billing_owner_id=parent.billing_owner_id,
                )
            )

        draft = NewMember(
            email, password, first_name, last_name, TenantRole.STUDENT, phone_number=phone_number
        )
        return await self._create_member(
            parent, draft, ResourceKey(base=ResourceBase.CHILD), after_create=link
        )

    def _staff_role_for(self, admin: Tenant, role: Optional[str]) -> TenantRole:
        allowed = _STAFF_ROLES_BY_ADMIN.get(admin.role)
        if allowed is None:
            raise ForbiddenError(NOT_AUTHORIZED)
        try:
            staff_role = TenantRole(role) if role else _DEFAULT_STAFF_ROLE[admin.role]
        except ValueError:
            staff_role = None
        if staff_role not in allowed:
            raise ValidationError(
                f"Invalid staff role: {role}",
                {"allowedRoles": sorted(r.value for r in allowed)},
            )
        return staff_role

    @trace_span
    async def create_staff(
        self,
        admin: Tenant,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Tenant:
        """
        Create a staff member in the admin's organization.

        School admins create teachers, counselors and social workers;
        employer admins create supervisors and HR.
        """
        staff_role = self._staff_role_for(admin, role)
        if not admin.organization_id:
            raise ForbiddenError("No organization associated with this admin.")

        draft = NewMember(
            email, password, first_name, last_name, staff_role, admin.organization_id, phone_number
        )
        return await self._create_member(admin, draft, ResourceKey(base=ResourceBase.STAFF))

    @trace_span
    async def create_student(
        self,
        staff: Tenant,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
    ) -> Tenant:
        """Create a student counted against the calling staff member's quota."""
        if not staff.role.is_school_staff:
            raise ForbiddenError(NOT_AUTHORIZED)

        draft = NewMember(
            email,
            password,
            first_name,
            last_name,
            TenantRole.STUDENT,
            staff.organization_id,
            phone_number,
        )
        return await self._create_member(
            staff, draft, ResourceKey(base=ResourceBase.STUDENT, sub_key=staff.id)
        )

    @trace_span
    async def create_employee(
        self,
        staff: Tenant,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
    ) -> Tenant:
        """Create an employee counted against the calling supervisor's (or HR's) quota."""
        if not staff.role.is_employer_staff:
            raise ForbiddenError(NOT_AUTHORIZED)

        draft = NewMember(
            email,
            password,
            first_name,
            last_name,
            TenantRole.EMPLOYEE,
            staff.organization_id,
            phone_number,
        )
        return await self._create_member(
            staff, draft, ResourceKey(base=ResourceBase.EMPLOYEE, sub_key=staff.id)
        )

    @trace_span
    async def create_institute(
        self,
        district_admin: Tenant,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        institute_name: str,
        institute_type: Optional[str] = None,
    ) -> Tuple[Organization, Tenant]:
        """
        Create a school under the district plus its school admin.

        The school joins the district's organization tree and is billed to
        the tree's root billing owner.
        """
        if district_admin.role != TenantRole.DISTRICT_ADMIN:
            raise ForbiddenError("Not authorized")
        if not district_admin.organization_id:
            raise ForbiddenError("No organization associated with this admin.")
        if not institute_name or not institute_name.strip():
            raise ValidationError("Institute name is required")

        draft = NewMember(
            email, password, first_name, last_name, TenantRole.SCHOOL_ADMIN
        )
        self._validate_member(draft)
        district_org_id = district_admin.organization_id

        created: List[str] = []

        async def create() -> Tuple[Organization, Tenant]:
            tree = await load_organization_tree(self.store, district_org_id)
            billing_owner_id = resolve_billing_owner_id(
                tree.resolve_root_billing_owner(district_org_id), None
            )

            organization = Organization(
                id=_new_id(),
                name=institute_name.strip(),
                type=institute_type,
                parent_organization_id=district_org_id,
                billing_owner_id=billing_owner_id,
            )
            draft.organization_id = organization.id
            school_admin = await self._create_account(district_admin, draft, billing_owner_id)
            created.append(school_admin.id)
            await self.store.save_organization(organization)
            return organization, school_admin

        try:
            organization, school_admin = await self.quota_service.reserve(
                district_admin.billing_owner_id,
                ResourceKey(base=ResourceBase.SCHOOL),
                1,
                district_admin,
                create,
            )
        except Exception:
            await self._remove_login_accounts(created)
            raise
        logger.info(
            f"District {district_admin.id} created institute {organization.id}",
            extra={
                "creator_id": district_admin.id,
                "organization_id": organization.id,
                "uid": school_admin.id,
            },
        )
        return organization, school_admin

    # ========================================================================
    # Bulk import
    # ========================================================================

    @trace_span
    async def bulk_import_students(
        self, staff: Tenant, rows: List[BulkUserRow], options: BulkImportOptions
    ) -> BulkImportResult:
        """Import students for the calling staff member in one reservation."""
        if not staff.role.is_school_staff:
            raise ForbiddenError(NOT_AUTHORIZED)
        return await self._bulk_import(
            staff,
            rows,
            options,
            lambda row: TenantRole.STUDENT,
            ResourceKey(base=ResourceBase.STUDENT, sub_key=staff.id),
        )

    @trace_span
    async def bulk_import_staff(
        self, admin: Tenant, rows: List[BulkUserRow], options: BulkImportOptions
    ) -> BulkImportResult:
        """Import staff members for a school or employer admin in one reservation."""
        default_role = self._staff_role_for(admin, options.default_role)
        if not admin.organization_id:
            raise ForbiddenError("No organization associated with this admin.")
        return await self._bulk_import(
            admin,
            rows,
            options,
            lambda row: self._staff_role_for(admin, row.role) if row.role else default_role,
            ResourceKey(base=ResourceBase.STAFF),
        )

    async def _bulk_import(
        self,
        creator: Tenant,
        rows: List[BulkUserRow],
        options: BulkImportOptions,
        role_for: Callable[[BulkUserRow], TenantRole],
        resource_key: ResourceKey,
    ) -> BulkImportResult:
        """
        Validate rows, reserve capacity for all creatable rows at once, create them.

        A batch that does not fit is rejected as a whole before anything is
        created. Once admitted, rows are created one by one; a failing row is
        reported and does not undo the rows before it.
        """
        if not rows:
            raise ValidationError("No users provided")
        if len(rows) > settings.bulk_import_max_rows:
            raise ValidationError(
                f"Too many rows: at most {settings.bulk_import_max_rows} per import"
            )
        if options.generate_emails and not options.email_domain:
            raise ValidationError("emailDomain is required when generating emails")

        result = BulkImportResult(total=len(rows))
        pending: List[Tuple[int, NewMember, bool]] = []
        taken: Set[str] = set()

        for index, row in enumerate(rows, start=1):
            if not row.first_name.strip() or not row.last_name.strip():
                result.errors.append(
                    BulkImportError(row=index, email=row.email, error="First name and last name are required")
                )
                continue

            email = (row.email or "").strip().lower()
            if not email:
                if not options.generate_emails:
                    result.errors.append(
                        BulkImportError(row=index, error="Email is required")
                    )
                    continue
                email = await self._unused_email(row, options.email_domain, taken)
            elif not is_valid_email(email):
                result.errors.append(
                    BulkImportError(row=index, email=email, error="Invalid email format")
                )
                continue
            elif email in taken or await self.store.find_tenant_by_email(email):
                if options.skip_duplicates:
                    result.skipped += 1
                else:
                    result.errors.append(
                        BulkImportError(row=index, email=email, error="Email already exists")
                    )
                continue

            password = row.password
            generated = options.generate_passwords or not password
            if generated:
                password = generate_password()
            valid, error = validate_password(password)
            if not valid:
                result.errors.append(BulkImportError(row=index, email=email, error=error))
                continue

            try:
                role = role_for(row)
            except AppException as e:
                result.errors.append(BulkImportError(row=index, email=email, error=e.message))
                continue

            taken.add(email)
            pending.append(
                (
                    index,
                    NewMember(
                        email,
                        password,
                        row.first_name,
                        row.last_name,
                        role,
                        creator.organization_id,
                        row.phone_number,
                    ),
                    generated,
                )
            )

        if not pending:
            return result

        created: List[str] = []

        async def create_batch() -> None:
            for index, draft, generated in pending:
                try:
                    async with self.store.savepoint():
                        tenant = await self._create_account(creator, draft)
                except AppException as e:
                    result.errors.append(BulkImportError(row=index, email=draft.email, error=e.message))
                    continue
                except Exception as e:
                    logger.error(
                        f"Bulk import row {index} failed: {e}",
                        extra={"creator_id": creator.id, "row": index},
                    )
                    result.errors.append(BulkImportError(row=index, email=draft.email, error=str(e)))
                    continue
                created.append(tenant.id)
                result.created += 1
                result.created_users.append(
                    CreatedUser(
                        uid=tenant.id,
                        first_name=tenant.first_name,
                        last_name=tenant.last_name,
                        email=tenant.email,
                        password=draft.password if generated else None,
                    )
                )

        try:
            await self.quota_service.reserve(
                creator.billing_owner_id, resource_key, len(pending), creator, create_batch
            )
        except Exception:
            await self._remove_login_accounts(created)
            raise
        result.errors.sort(key=lambda e: e.row)

        logger.info(
            f"Bulk import by {creator.id}: {result.created} created, {result.skipped} skipped, {len(result.errors)} failed",
            extra={
                "creator_id": creator.id,
                "billing_owner_id": creator.billing_owner_id,
                "created": result.created,
                "skipped": result.skipped,
                "failed": len(result.errors),
            },
        )
        return result

    async def _unused_email(self, row: BulkUserRow, domain: str, taken: Set[str]) -> str:
        suffix = 0
        while True:
            email = generate_email(row.first_name, row.last_name, domain, suffix)
            if email not in taken and not await self.store.find_tenant_by_email(email):
                return email
            suffix += 1

    # ========================================================================
    # Deletion
    # ========================================================================

    @trace_span
    async def delete_member(self, caller: Tenant, member_id: str) -> int:
        """
        Delete a member the caller created, and everything below it.

        Tenants the member created are removed depth-first along with their
        parent links and login accounts. A school admin's institute goes too
        once nobody else belongs to it.

        Returns:
            Number of tenants deleted

        Raises:
            NotFoundError: Unknown member
            ForbiddenError: The caller is not the member's direct creator
        """
        member = await self.store.get_tenant(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.creator_id != caller.id:
            raise ForbiddenError("Only the creator of this account can delete it")

        async with self.store.billing_owner_lock(member.billing_owner_id):
            doomed = await self._collect_subtree(member)
            for tenant in reversed(doomed):
                await self.store.delete_parent_links_for(tenant.id)
                await self.store.delete_tenant(tenant.id)

            if member.role == TenantRole.SCHOOL_ADMIN and member.organization_id:
                await self._delete_institute_if_empty(member.organization_id)

        for tenant in doomed:
            await self.identity.delete_user(tenant.id)

        logger.info(
            f"{caller.id} deleted {member.role.value} {member.id} ({len(doomed)} accounts)",
            extra={"caller_id": caller.id, "uid": member.id, "deleted": len(doomed)},
        )
        return len(doomed)

    async def _collect_subtree(self, root: Tenant) -> List[Tenant]:
        """root followed by every tenant it created, transitively (pre-order)."""
        ordered: List[Tenant] = []
        seen: Set[str] = set()
        stack = [root]
        while stack:
            tenant = stack.pop()
            if tenant.id in seen:
                continue
            seen.add(tenant.id)
            ordered.append(tenant)
            stack.extend(await self.store.list_tenants(creator_id=tenant.id))
        return ordered

    async def _delete_institute_if_empty(self, organization_id: str) -> None:
        organization = await self.store.get_organization(organization_id)
        # Only institutes created under a district; never a payer's own organization
        if organization is None or organization.owner_id or not organization.parent_organization_id:
            return
        if await self.store.list_tenants(organization_id=organization_id):
            return
        await self.store.delete_organization(organization_id)
        logger.info(f"Deleted institute {organization_id}")

    # ========================================================================
    # Listings
    # ========================================================================

    @trace_span
    async def list_my_staff(self, admin: Tenant) -> List[Tenant]:
        allowed = _STAFF_ROLES_BY_ADMIN.get(admin.role)
        if allowed is None:
            raise ForbiddenError(NOT_AUTHORIZED)
        if admin.role == TenantRole.SCHOOL_ADMIN:
            if not admin.organization_id:
                raise ForbiddenError("No organization associated with this admin.")
            candidates = await self.store.list_tenants(organization_id=admin.organization_id)
        else:
            candidates = await self.store.list_tenants(creator_id=admin.id)
        return [t for t in candidates if t.role in allowed]

    @trace_span
    async def list_my_students(self, staff: Tenant) -> List[Tenant]:
        if not staff.role.is_school_staff:
            raise ForbiddenError(NOT_AUTHORIZED)
        return await self.store.list_tenants(creator_id=staff.id, role=TenantRole.STUDENT)

    @trace_span
    async def list_my_employees(self, staff: Tenant) -> List[Tenant]:
        if not staff.role.is_employer_staff:
            raise ForbiddenError(NOT_AUTHORIZED)
        return await self.store.list_tenants(creator_id=staff.id, role=TenantRole.EMPLOYEE)

    @trace_span
    async def list_my_children(self, parent: Tenant) -> List[Tenant]:
        if parent.role != TenantRole.PARENT:
            raise ForbiddenError(NOT_AUTHORIZED)
        links = await self.store.list_parent_links(parent_id=parent.id)
        return await self.store.get_tenants([link.student_id for link in links])

    @trace_span
    async def list_my_institutes(self, district_admin: Tenant) -> List[Organization]:
        if district_admin.role != TenantRole.DISTRICT_ADMIN:
            raise ForbiddenError("Not authorized")
        if not district_admin.organization_id:
            return []
        return await self.store.list_organizations(
            parent_organization_id=district_admin.organization_id
        )
