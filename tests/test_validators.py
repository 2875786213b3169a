from finance_manager.validators import (
    validate_ids, validate_batch, validate_named_data, validate_named_patch,
    validate_entry_data, validate_entry_patch, validate_user_data, validate_user_patch,
    validate_matching_counts, parse_id_list, sanitize_payload, MAX_ID
)


def test_validate_ids_rejects_zero_and_negative():
    is_valid, errors = validate_ids(category_id=0, subcategory_id=-3, entry_id=5)
    assert not is_valid
    assert errors == [
        "category_id cannot be less than or equal to 0",
        "subcategory_id cannot be less than or equal to 0",
    ]
    assert validate_ids(label_id=1) == (True, [])


def test_validate_batch_requires_items():
    assert validate_batch([]) == (False, ["At least one item is required"])
    assert validate_batch([{}])[0]


def test_named_data_requires_name_and_colour():
    is_valid, errors = validate_named_data({"name": "  ", "colour_id": 0}, "category")
    assert not is_valid
    assert "category name is required" in errors
    assert "category colour_id must be greater than 0" in errors

    assert validate_named_data({"name": "Groceries", "colour_id": 3}, "category") == (True, [])


def test_named_patch_allows_nulls_and_zero_colour():
    assert validate_named_patch({"name": None, "colour_id": 0}, "label") == (True, [])

    is_valid, errors = validate_named_patch({"colour_id": -1, "category_id": 0}, "subcategory")
    assert not is_valid
    assert len(errors) == 2


def test_entry_data_requires_amount_and_iso_time():
    is_valid, errors = validate_entry_data({"amount": None, "time_of_transaction": "yesterday"})
    assert not is_valid
    assert "amount is required" in errors
    assert "time_of_transaction must be an ISO 8601 date or timestamp" in errors

    assert validate_entry_data({"amount": 12.5, "time_of_transaction": "2024-03-01T12:00:00"})[0]
    assert validate_entry_data({"amount": -3, "time_of_transaction": "2024-03-01"})[0]


def test_entry_data_rejects_non_finite_amount():
    is_valid, errors = validate_entry_data({"amount": float("nan"), "time_of_transaction": "2024-03-01"})
    assert not is_valid
    assert errors == ["amount must be a finite number"]


def test_entry_patch():
    assert validate_entry_patch({"amount": None, "time_of_transaction": None}) == (True, [])
    assert not validate_entry_patch({"subcategory_id": 0})[0]
    assert not validate_entry_patch({"time_of_transaction": "not a date"})[0]


def test_user_data_and_patch():
    assert not validate_user_data({"username": "alice"})[0]
    assert not validate_user_data({"username": "alice", "password": "x" * 73})[0]
    assert validate_user_data({"username": "alice", "password": "secret"}) == (True, [])

    assert validate_user_patch({"username": None, "password": None}) == (True, [])
    assert not validate_user_patch({"username": " "})[0]
    assert not validate_user_patch({"password": ""})[0]


def test_sanitize_payload_keeps_password_whitespace():
    sanitized = sanitize_payload({"username": "  alice ", "password": " pw ", "colour_id": 3})
    assert sanitized == {"username": "alice", "password": " pw ", "colour_id": 3}


def test_ids_beyond_sqlite_integer_range_are_rejected():
    assert validate_ids(category_id=MAX_ID) == (True, [])

    is_valid, errors = validate_ids(category_id=2 ** 70)
    assert not is_valid
    assert errors == [f"category_id cannot be greater than {MAX_ID}"]


def test_payload_ids_beyond_sqlite_integer_range_are_rejected():
    assert not validate_named_data({"name": "Rent", "colour_id": 2 ** 70}, "category")[0]
    assert not validate_named_patch({"colour_id": 2 ** 70}, "label")[0]
    assert not validate_named_patch({"category_id": 2 ** 64}, "subcategory")[0]
    assert not validate_entry_patch({"subcategory_id": 2 ** 63})[0]


def test_blank_passwords_are_rejected():
    assert validate_user_data({"username": "carol", "password": "   "}) == (False, ["password is required"])
    assert validate_user_patch({"password": " \t "}) == (False, ["password cannot be empty"])
    assert validate_user_data({"username": "carol", "password": " padded "})[0]


def test_parse_id_list():
    assert parse_id_list("7", "category_id") == ([7], [])
    assert parse_id_list("3, 7,12", "category_id") == ([3, 7, 12], [])

    ids, errors = parse_id_list("3,abc", "label_id")
    assert ids is None
    assert errors == ["label_id must be an integer or a comma-separated list of integers"]

    assert parse_id_list("3,,4", "label_id")[0] is None
    assert parse_id_list("5,0", "entry_id") == (None, ["entry_id cannot be less than or equal to 0"])
    assert parse_id_list(str(2 ** 70), "entry_id")[0] is None


def test_validate_matching_counts():
    assert validate_matching_counts(category_ids=2, payloads=2) == (True, [])
    assert validate_matching_counts(category_ids=2, payloads=3) == (
        False, ["the number of category_ids and payloads must be equal"]
    )
