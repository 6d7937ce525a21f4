import pytest

from app.shared.validators import (
    validate_email,
    validate_license_plate,
    validate_phone,
    validate_sync_id,
    validate_vehicle_year,
    validate_vin,
)


def test_phone_keeps_leading_plus():
    assert validate_phone("+55 (11) 98765-4321") == "+5511987654321"
    assert validate_phone("11 3456-7890") == "1134567890"
    with pytest.raises(ValueError):
        validate_phone("123")


def test_email_is_lowercased():
    assert validate_email(" Oficina@EuroDent.com ") == "oficina@eurodent.com"
    with pytest.raises(ValueError):
        validate_email("oficina@")


def test_sync_id_must_be_uuid():
    assert validate_sync_id("3F2504E0-4F89-11D3-9A0C-0305E82C3301") == "3f2504e0-4f89-11d3-9a0c-0305e82c3301"
    assert validate_sync_id(None) is None
    with pytest.raises(ValueError):
        validate_sync_id("-7")


def test_vehicle_fields():
    assert validate_license_plate("abc-1d23") == "ABC1D23"
    assert validate_vin("9bwzzz377vt004251") == "9BWZZZ377VT004251"
    with pytest.raises(ValueError):
        validate_vin("9BWZZZ377VT00425O")
    with pytest.raises(ValueError):
        validate_vehicle_year(1850)
