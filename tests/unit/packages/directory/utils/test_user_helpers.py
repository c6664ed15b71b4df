import pytest

from packages.directory.utils.user_helpers import (
    generate_email,
    generate_password,
    is_valid_email,
    normalize_phone_number,
    validate_password,
)


class TestGeneratePassword:
    def test_character_classes(self):
        password = generate_password()

        assert len(password) == 12
        assert any(c.isupper() for c in password)
        assert any(c.islower() for c in password)
        assert any(c.isdigit() for c in password)
        assert any(c in "!@#$%^&*" for c in password)

    def test_too_short(self):
        with pytest.raises(ValueError):
            generate_password(3)


class TestGenerateEmail:
    @pytest.mark.parametrize(
        "first,last,suffix,expected",
        [
            ("Jane", "Doe", None, "jane.doe@school.edu"),
            ("Jane", "Doe", 0, "jane.doe@school.edu"),
            ("Jane", "Doe", 1, "jane.doe.2@school.edu"),
            ("Mary-Ann", "O'Neil", None, "maryann.oneil@school.edu"),
            ("", "", None, "user@school.edu"),
            ("Cher", None, None, "cher@school.edu"),
        ],
    )
    def test_generate_email(self, first, last, suffix, expected):
        assert generate_email(first, last, "school.edu", suffix) == expected


class TestNormalizePhoneNumber:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+1 (555) 123-4567", "+15551234567"),
            ("05551234567", "+5551234567"),
            ("555-1234", None),
            ("", None),
            (None, None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected


class TestValidation:
    def test_emails(self):
        assert is_valid_email("a@b.co")
        assert not is_valid_email("a@b")
        assert not is_valid_email(None)

    def test_passwords(self):
        assert validate_password("secret") == (True, None)
        assert validate_password("short") == (False, "Password must be at least 6 characters")
        assert validate_password(None) == (False, "Password is required")
