import pytest

from common.core.exceptions import InvalidArgumentError
from packages.billing.models.domain.resources import LimitKey, ResourceBase, ResourceKey


class TestResourceKeyParse:
    @pytest.mark.parametrize(
        "raw,base,sub_key",
        [
            ("child", ResourceBase.CHILD, None),
            ("school", ResourceBase.SCHOOL, None),
            ("staff", ResourceBase.STAFF, None),
            ("student:teacher-1", ResourceBase.STUDENT, "teacher-1"),
            ("employee:hr-1", ResourceBase.EMPLOYEE, "hr-1"),
            ("student", ResourceBase.STUDENT, None),
        ],
    )
    def test_valid_keys(self, raw, base, sub_key):
        key = ResourceKey.parse(raw)

        assert key.base == base
        assert key.sub_key == sub_key

    def test_scoped_key_takes_default_sub_key(self):
        key = ResourceKey.parse("student", default_sub_key="teacher-1")

        assert key.sub_key == "teacher-1"
        assert key.wire == "student:teacher-1"

    def test_explicit_sub_key_wins_over_default(self):
        key = ResourceKey.parse("employee:hr-2", default_sub_key="hr-1")

        assert key.sub_key == "hr-2"

    def test_flat_key_ignores_default_sub_key(self):
        key = ResourceKey.parse("child", default_sub_key="parent-1")

        assert key.sub_key is None
        assert key.wire == "child"

    @pytest.mark.parametrize("raw", ["", "classroom", "student:", "child:parent-1"])
    def test_invalid_keys(self, raw):
        with pytest.raises(InvalidArgumentError):
            ResourceKey.parse(raw)

    def test_limit_keys(self):
        assert ResourceKey.parse("child").limit_key == LimitKey.CHILDREN
        assert ResourceKey.parse("school").limit_key == LimitKey.SCHOOLS
        assert ResourceKey.parse("student:t").limit_key == LimitKey.STUDENTS_PER_STAFF
        assert ResourceKey.parse("employee:h").limit_key == LimitKey.EMPLOYEES_PER_STAFF


class TestLimitKey:
    def test_scoped_keys(self):
        assert LimitKey.STUDENTS_PER_STAFF.is_scoped
        assert LimitKey.STAFF_PER_SCHOOL.is_scoped
        assert LimitKey.EMPLOYEES_PER_STAFF.is_scoped
        assert not LimitKey.CHILDREN.is_scoped
        assert not LimitKey.STAFF.is_scoped
