"""
Unit tests for directory membership.

Signup, quota-guarded member creation, bulk import and cascading deletion.
"""

from unittest.mock import AsyncMock

import pytest

from common.core.exceptions import (
    ForbiddenError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from packages.billing.models.domain.enums import BillingRole
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.usage_service import UsageService
from packages.directory.models.domain.bulk_import import BulkImportOptions, BulkUserRow
from packages.directory.models.domain.enums import TenantRole
from packages.directory.services.tenant_service import TenantService
from tests.factories.directory_factory import DirectoryFactory

PASSWORD = "secret123"


async def _school_with_teacher(store, students: int = 0, limits=None):
    school = await DirectoryFactory.create_tenant(
        store, "school-1", TenantRole.SCHOOL_ADMIN, organization_id="org-1"
    )
    await DirectoryFactory.create_organization(store, "org-1", school.id, owner_id=school.id)
    teacher = await DirectoryFactory.create_tenant(
        store,
        "teacher-1",
        TenantRole.TEACHER,
        billing_owner_id=school.id,
        creator_id=school.id,
        organization_id="org-1",
    )
    for i in range(students):
        await DirectoryFactory.create_tenant(
            store,
            f"existing-{i}",
            TenantRole.STUDENT,
            billing_owner_id=school.id,
            creator_id=teacher.id,
            organization_id="org-1",
        )
    await DirectoryFactory.create_subscription(
        store,
        school.id,
        BillingRole.SCHOOL_ADMIN,
        "starter",
        limits=limits or {"staff": 5, "studentsPerStaff": 10},
    )
    return school, teacher


def _rows(count: int, prefix: str = "new"):
    return [
        BulkUserRow(first_name=f"Student{i}", last_name="Test", email=f"{prefix}-{i}@example.com")
        for i in range(count)
    ]


@pytest.mark.asyncio
class TestSignup:
    async def test_parent_signup(self, store, mock_identity):
        service = TenantService(store, mock_identity)

        tenant, created = await service.signup(
            "parent-1", "Parent@Example.com", "parent", "Pat", "Doe"
        )

        assert created is True
        assert tenant.role == TenantRole.PARENT
        assert tenant.email == "parent@example.com"
        assert tenant.billing_owner_id == "parent-1"
        assert tenant.organization_id is None

    async def test_signup_is_idempotent(self, memory_store, mock_identity):
        service = TenantService(memory_store, mock_identity)
        first, _ = await service.signup("parent-1", "p@example.com", "parent", "Pat", "Doe")

        again, created = await service.signup("parent-1", "other@example.com", "school")

        assert created is False
        assert again.email == first.email
        assert again.role == TenantRole.PARENT

    async def test_school_signup_owns_organization(self, store, mock_identity):
        service = TenantService(store, mock_identity)

        tenant, _ = await service.signup(
            "school-1", "s@example.com", "school", "Sam", "Lee", institute_name="Lincoln High"
        )

        assert tenant.role == TenantRole.SCHOOL_ADMIN
        organization = await store.get_organization(tenant.organization_id)
        assert organization.name == "Lincoln High"
        assert organization.owner_id == "school-1"
        assert organization.billing_owner_id == "school-1"

    async def test_unknown_role_signs_up_as_parent(self, memory_store, mock_identity):
        tenant, _ = await TenantService(memory_store, mock_identity).signup(
            "u-1", "u@example.com", "wizard"
        )

        assert tenant.role == TenantRole.PARENT

    async def test_email_required(self, memory_store, mock_identity):
        with pytest.raises(ValidationError):
            await TenantService(memory_store, mock_identity).signup("u-1", None, "parent")


@pytest.mark.asyncio
class TestCreateChild:
    async def _parent(self, store, package_id="basic"):
        parent = await DirectoryFactory.create_tenant(store, "parent-1", TenantRole.PARENT)
        await DirectoryFactory.create_subscription(store, parent.id, BillingRole.PARENT, package_id)
        return parent

    async def test_creates_linked_student(self, store, mock_identity):
        parent = await self._parent(store)
        service = TenantService(store, mock_identity)

        child = await service.create_child(parent, "kid@example.com", PASSWORD, "Kid", "Doe")

        assert child.role == TenantRole.STUDENT
        assert child.creator_id == parent.id
        assert child.billing_owner_id == parent.id
        children = await service.list_my_children(parent)
        assert [c.id for c in children] == [child.id]
        assert (await UsageService(store).get_usage(parent.id)).children == 1

    async def test_limit_reached(self, memory_store, mock_identity):
        parent = await self._parent(memory_store)
        service = TenantService(memory_store, mock_identity)
        await service.create_child(parent, "a@example.com", PASSWORD, "A", "Doe")
        await service.create_child(parent, "b@example.com", PASSWORD, "B", "Doe")

        with pytest.raises(LimitExceededError) as exc_info:
            await service.create_child(parent, "c@example.com", PASSWORD, "C", "Doe")

        assert (exc_info.value.current, exc_info.value.limit) == (2, 2)
        assert mock_identity.create_user.await_count == 2

    async def test_only_parents(self, memory_store, mock_identity):
        teacher = await DirectoryFactory.create_tenant(memory_store, "t-1", TenantRole.TEACHER)

        with pytest.raises(ForbiddenError):
            await TenantService(memory_store, mock_identity).create_child(
                teacher, "kid@example.com", PASSWORD, "Kid", "Doe"
            )

    @pytest.mark.parametrize(
        "email,password,first_name",
        [("not-an-email", PASSWORD, "Kid"), ("kid@example.com", "123", "Kid"), ("kid@example.com", PASSWORD, " ")],
    )
    async def test_invalid_input(self, memory_store, mock_identity, email, password, first_name):
        parent = await self._parent(memory_store)

        with pytest.raises(ValidationError):
            await TenantService(memory_store, mock_identity).create_child(
                parent, email, password, first_name, "Doe"
            )

        mock_identity.create_user.assert_not_called()

    async def test_duplicate_email(self, memory_store, mock_identity):
        parent = await self._parent(memory_store, "standard")
        service = TenantService(memory_store, mock_identity)
        await service.create_child(parent, "kid@example.com", PASSWORD, "Kid", "Doe")

        with pytest.raises(ValidationError):
            await service.create_child(parent, "KID@example.com", PASSWORD, "Kid", "Two")

    async def test_login_account_removed_when_profile_write_fails(self, memory_store, mock_identity, monkeypatch):
        parent = await self._parent(memory_store)

        async def broken_save(tenant):
            raise RuntimeError("disk full")

        monkeypatch.setattr(memory_store, "save_tenant", broken_save)

        with pytest.raises(RuntimeError):
            await TenantService(memory_store, mock_identity).create_child(
                parent, "kid@example.com", PASSWORD, "Kid", "Doe"
            )

        mock_identity.delete_user.assert_awaited_once_with("uid-1")


    async def test_login_account_removed_when_link_write_fails(self, store, mock_identity, monkeypatch):
        parent = await self._parent(store)

        async def broken_link(link):
            raise RuntimeError("link table unavailable")

        monkeypatch.setattr(store, "save_parent_link", broken_link)

        with pytest.raises(RuntimeError):
            await TenantService(store, mock_identity).create_child(
                parent, "kid@example.com", PASSWORD, "Kid", "Doe"
            )

        mock_identity.delete_user.assert_awaited_once_with("uid-1")


@pytest.mark.asyncio
class TestCreateStaffAndStudents:
    async def test_school_admin_creates_teacher(self, store, mock_identity):
        school, _ = await _school_with_teacher(store)

        staff = await TenantService(store, mock_identity).create_staff(
            school, "t2@example.com", PASSWORD, "Tia", "Two", role="counselor"
        )

        assert staff.role == TenantRole.COUNSELOR
        assert staff.organization_id == "org-1"
        assert staff.billing_owner_id == school.id

    async def test_staff_role_must_match_admin(self, memory_store, mock_identity):
        school, _ = await _school_with_teacher(memory_store)

        with pytest.raises(ValidationError) as exc_info:
            await TenantService(memory_store, mock_identity).create_staff(
                school, "t2@example.com", PASSWORD, "Tia", "Two", role="hr"
            )

        assert exc_info.value.details["allowedRoles"] == ["counselor", "social-worker", "teacher"]

    async def test_staff_limit(self, memory_store, mock_identity):
        school, _ = await _school_with_teacher(memory_store, limits={"staff": 1, "studentsPerStaff": 10})

        with pytest.raises(LimitExceededError):
            await TenantService(memory_store, mock_identity).create_staff(
                school, "t2@example.com", PASSWORD, "Tia", "Two"
            )

    async def test_teacher_creates_student(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store, students=9)
        service = TenantService(memory_store, mock_identity)

        student = await service.create_student(teacher, "s@example.com", PASSWORD, "Stu", "Dent")

        assert student.creator_id == teacher.id
        assert student.organization_id == "org-1"
        with pytest.raises(LimitExceededError):
            await service.create_student(teacher, "s2@example.com", PASSWORD, "Stu", "Two")

    async def test_employer_chain(self, memory_store, mock_identity):
        employer = await DirectoryFactory.create_tenant(
            memory_store, "employer-1", TenantRole.EMPLOYER_ADMIN, organization_id="emp-org"
        )
        await DirectoryFactory.create_subscription(
            memory_store, employer.id, BillingRole.EMPLOYER_ADMIN, "small"
        )
        service = TenantService(memory_store, mock_identity)

        supervisor = await service.create_staff(employer, "sup@example.com", PASSWORD, "Sue", "Per")
        employee = await service.create_employee(
            supervisor, "emp@example.com", PASSWORD, "Em", "Ployee"
        )

        assert supervisor.role == TenantRole.SUPERVISOR
        assert employee.role == TenantRole.EMPLOYEE
        assert employee.billing_owner_id == employer.id
        assert [e.id for e in await service.list_my_employees(supervisor)] == [employee.id]
        assert [s.id for s in await service.list_my_staff(employer)] == [supervisor.id]


@pytest.mark.asyncio
class TestBulkImport:
    async def test_batch_over_capacity_is_rejected_whole(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store, students=8)

        with pytest.raises(LimitExceededError) as exc_info:
            await TenantService(memory_store, mock_identity).bulk_import_students(
                teacher, _rows(5), BulkImportOptions()
            )

        assert (exc_info.value.current, exc_info.value.requested) == (8, 5)
        mock_identity.create_user.assert_not_called()

    async def test_batch_within_capacity(self, store, mock_identity):
        _, teacher = await _school_with_teacher(store, students=8)

        result = await TenantService(store, mock_identity).bulk_import_students(
            teacher, _rows(2), BulkImportOptions()
        )

        assert (result.total, result.created, result.skipped) == (2, 2, 0)
        assert result.errors == []
        assert (await UsageService(store).get_usage("school-1")).students_per_staff == {
            "teacher-1": 10
        }

    async def test_row_errors_and_duplicates(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store, students=1)
        rows = [
            BulkUserRow(first_name="Ok", last_name="One", email="ok@example.com"),
            BulkUserRow(first_name="", last_name="Nameless", email="x@example.com"),
            BulkUserRow(first_name="Bad", last_name="Email", email="nope"),
            BulkUserRow(first_name="Dup", last_name="Row", email="ok@example.com"),
            BulkUserRow(first_name="Old", last_name="Student", email="existing-0@example.com"),
        ]

        result = await TenantService(memory_store, mock_identity).bulk_import_students(
            teacher, rows, BulkImportOptions()
        )

        assert result.created == 1
        assert result.skipped == 2
        assert [e.row for e in result.errors] == [2, 3]

    async def test_duplicates_reported_when_not_skipped(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store, students=1)
        rows = [BulkUserRow(first_name="Old", last_name="Student", email="existing-0@example.com")]

        result = await TenantService(memory_store, mock_identity).bulk_import_students(
            teacher, rows, BulkImportOptions(skip_duplicates=False)
        )

        assert result.errors[0].error == "Email already exists"
        mock_identity.create_user.assert_not_called()

    async def test_generated_credentials(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store)
        rows = [
            BulkUserRow(first_name="Jane", last_name="Doe"),
            BulkUserRow(first_name="Jane", last_name="Doe"),
        ]

        result = await TenantService(memory_store, mock_identity).bulk_import_students(
            teacher,
            rows,
            BulkImportOptions(generate_emails=True, email_domain="school.edu", generate_passwords=True),
        )

        assert [u.email for u in result.created_users] == [
            "jane.doe@school.edu",
            "jane.doe.2@school.edu",
        ]
        assert all(u.password for u in result.created_users)

    async def test_generated_emails_need_domain(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store)

        with pytest.raises(ValidationError):
            await TenantService(memory_store, mock_identity).bulk_import_students(
                teacher, [BulkUserRow(first_name="A", last_name="B")], BulkImportOptions(generate_emails=True)
            )

    async def test_failed_row_does_not_undo_earlier_rows(self, store, mock_identity):
        _, teacher = await _school_with_teacher(store)
        calls = {"n": 0}
        create_user = mock_identity.create_user.side_effect

        async def flaky_create_user(account):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("identity provider unavailable")
            return await create_user(account)

        mock_identity.create_user.side_effect = flaky_create_user

        result = await TenantService(store, mock_identity).bulk_import_students(
            teacher, _rows(3), BulkImportOptions()
        )

        assert result.created == 2
        assert [e.row for e in result.errors] == [2]

    async def test_failed_write_does_not_undo_earlier_rows(self, store, mock_identity, monkeypatch):
        _, teacher = await _school_with_teacher(store)
        await DirectoryFactory.create_tenant(
            store, "other-parent", TenantRole.PARENT, email="new-1@example.com"
        )
        # Another owner took row 2's email after the duplicate check ran
        monkeypatch.setattr(store, "find_tenant_by_email", AsyncMock(return_value=None))

        result = await TenantService(store, mock_identity).bulk_import_students(
            teacher, _rows(3), BulkImportOptions()
        )

        assert result.created == 2
        assert [e.row for e in result.errors] == [2]
        students = await store.list_tenants(creator_id=teacher.id, role=TenantRole.STUDENT)
        assert sorted(s.email for s in students) == ["new-0@example.com", "new-2@example.com"]
        mock_identity.delete_user.assert_awaited_once_with("uid-2")

    async def test_login_accounts_removed_when_batch_fails(self, memory_store, mock_identity, monkeypatch):
        _, teacher = await _school_with_teacher(memory_store)
        quota_service = QuotaService(memory_store)
        reserve = quota_service.reserve

        async def reserve_then_fail(*args, **kwargs):
            await reserve(*args, **kwargs)
            raise RuntimeError("commit failed")

        monkeypatch.setattr(quota_service, "reserve", reserve_then_fail)

        with pytest.raises(RuntimeError):
            await TenantService(memory_store, mock_identity, quota_service).bulk_import_students(
                teacher, _rows(2), BulkImportOptions()
            )

        deleted = [c.args[0] for c in mock_identity.delete_user.await_args_list]
        assert deleted == ["uid-1", "uid-2"]

    async def test_bulk_staff_import(self, memory_store, mock_identity):
        school, _ = await _school_with_teacher(memory_store)
        rows = [
            BulkUserRow(first_name="A", last_name="Staff", email="a@example.com", role="counselor"),
            BulkUserRow(first_name="B", last_name="Staff", email="b@example.com", role="hr"),
        ]

        result = await TenantService(memory_store, mock_identity).bulk_import_staff(
            school, rows, BulkImportOptions()
        )

        assert result.created == 1
        assert result.errors[0].row == 2

    async def test_empty_import(self, memory_store, mock_identity):
        _, teacher = await _school_with_teacher(memory_store)

        with pytest.raises(ValidationError):
            await TenantService(memory_store, mock_identity).bulk_import_students(
                teacher, [], BulkImportOptions()
            )


@pytest.mark.asyncio
class TestInstitutes:
    async def _district(self, store):
        district = await DirectoryFactory.create_tenant(
            store, "district-1", TenantRole.DISTRICT_ADMIN, organization_id="d-org"
        )
        await DirectoryFactory.create_organization(store, "d-org", district.id, owner_id=district.id)
        await DirectoryFactory.create_subscription(
            store, district.id, BillingRole.DISTRICT_ADMIN, "small"
        )
        return district

    async def test_create_institute(self, store, mock_identity):
        district = await self._district(store)
        service = TenantService(store, mock_identity)

        organization, school_admin = await service.create_institute(
            district, "admin@lincoln.edu", PASSWORD, "Ada", "Min", "Lincoln High", "high-school"
        )

        assert organization.parent_organization_id == "d-org"
        assert organization.billing_owner_id == district.id
        assert school_admin.role == TenantRole.SCHOOL_ADMIN
        assert school_admin.organization_id == organization.id
        assert school_admin.billing_owner_id == district.id
        assert school_admin.is_managed
        assert [o.id for o in await service.list_my_institutes(district)] == [organization.id]
        assert (await UsageService(store).get_usage(district.id)).schools == 1

    async def test_schools_limit(self, memory_store, mock_identity):
        district = await self._district(memory_store)
        for i in range(5):
            await DirectoryFactory.create_organization(
                memory_store, f"school-{i}", district.id, parent_organization_id="d-org"
            )

        with pytest.raises(LimitExceededError):
            await TenantService(memory_store, mock_identity).create_institute(
                district, "admin@x.edu", PASSWORD, "Ada", "Min", "One Too Many"
            )

    async def test_login_account_removed_when_institute_write_fails(self, store, mock_identity, monkeypatch):
        district = await self._district(store)

        async def broken_save(organization):
            raise RuntimeError("organizations table unavailable")

        monkeypatch.setattr(store, "save_organization", broken_save)

        with pytest.raises(RuntimeError):
            await TenantService(store, mock_identity).create_institute(
                district, "admin@lincoln.edu", PASSWORD, "Ada", "Min", "Lincoln High"
            )

        mock_identity.delete_user.assert_awaited_once_with("uid-1")

    async def test_only_district_admins(self, memory_store, mock_identity):
        parent = await DirectoryFactory.create_tenant(memory_store, "parent-1", TenantRole.PARENT)

        with pytest.raises(ForbiddenError):
            await TenantService(memory_store, mock_identity).create_institute(
                parent, "admin@x.edu", PASSWORD, "Ada", "Min", "School"
            )

    async def test_managed_school_admin_limited_per_school(self, memory_store, mock_identity):
        district = await self._district(memory_store)
        service = TenantService(memory_store, mock_identity)
        _, school_admin = await service.create_institute(
            district, "admin@lincoln.edu", PASSWORD, "Ada", "Min", "Lincoln High"
        )
        for i in range(10):
            await service.create_staff(school_admin, f"t{i}@lincoln.edu", PASSWORD, "Tea", f"Cher{i}")

        with pytest.raises(LimitExceededError) as exc_info:
            await service.create_staff(school_admin, "t10@lincoln.edu", PASSWORD, "Tea", "Cher10")

        assert exc_info.value.message == "Staff per school limit reached"


@pytest.mark.asyncio
class TestDeleteMember:
    async def test_cascade(self, store, mock_identity):
        school, teacher = await _school_with_teacher(store, students=3)
        service = TenantService(store, mock_identity)

        deleted = await service.delete_member(school, teacher.id)

        assert deleted == 4
        assert await store.get_tenant(teacher.id) is None
        assert await store.list_tenants(creator_id=teacher.id) == []
        assert mock_identity.delete_user.await_count == 4
        assert (await UsageService(store).get_usage(school.id)).students_total == 0

    async def test_only_creator_may_delete(self, memory_store, mock_identity):
        school, teacher = await _school_with_teacher(memory_store, students=1)

        with pytest.raises(ForbiddenError):
            await TenantService(memory_store, mock_identity).delete_member(teacher, teacher.id)

    async def test_unknown_member(self, memory_store, mock_identity):
        school, _ = await _school_with_teacher(memory_store)

        with pytest.raises(NotFoundError):
            await TenantService(memory_store, mock_identity).delete_member(school, "ghost")

    async def test_child_delete_removes_parent_link(self, memory_store, mock_identity):
        parent = await DirectoryFactory.create_tenant(memory_store, "parent-1", TenantRole.PARENT)
        await DirectoryFactory.create_subscription(memory_store, parent.id, BillingRole.PARENT, "basic")
        service = TenantService(memory_store, mock_identity)
        child = await service.create_child(parent, "kid@example.com", PASSWORD, "Kid", "Doe")

        await service.delete_member(parent, child.id)

        assert await memory_store.list_parent_links(parent_id=parent.id) == []

    async def test_school_admin_delete_removes_empty_institute(self, memory_store, mock_identity):
        district = await DirectoryFactory.create_tenant(
            memory_store, "district-1", TenantRole.DISTRICT_ADMIN, organization_id="d-org"
        )
        await DirectoryFactory.create_organization(memory_store, "d-org", district.id, owner_id=district.id)
        await DirectoryFactory.create_subscription(memory_store, district.id, BillingRole.DISTRICT_ADMIN, "small")
        service = TenantService(memory_store, mock_identity)
        organization, school_admin = await service.create_institute(
            district, "admin@lincoln.edu", PASSWORD, "Ada", "Min", "Lincoln High"
        )

        await service.delete_member(district, school_admin.id)

        assert await memory_store.get_organization(organization.id) is None
        assert await memory_store.get_organization("d-org") is not None
