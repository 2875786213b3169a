import sqlite3

BASE = "/secure-finance-manager"


def add_category(client, auth, name="Groceries", colour_id=3, description=None):
    response = client.post(
        f"{BASE}/categories", json={"name": name, "description": description, "colour_id": colour_id}, auth=auth
    )
    assert response.status_code == 201
    return response.json()


def add_subcategory(client, auth, category_id, name="Supermarket", colour_id=4):
    response = client.post(
        f"{BASE}/categories/{category_id}/subcategories", json={"name": name, "colour_id": colour_id}, auth=auth
    )
    assert response.status_code == 201
    return response.json()


def test_create_and_get_category(client, app, alice):
    category = add_category(client, alice, description="Weekly shopping")
    assert category["name"] == "Groceries"
    assert category["colour_id"] == 3
    assert category["user_id"] == app.state.user_cache.get_user_id("alice")

    response = client.get(f"{BASE}/categories/{category['id']}", auth=alice)
    assert response.status_code == 200
    assert response.json() == category

    assert client.get(f"{BASE}/categories", auth=alice).json() == [category]


def test_category_fields_are_encrypted_at_rest(client, app_config, alice):
    add_category(client, alice, description="Weekly shopping")

    with sqlite3.connect(app_config.DB_FILE) as db:
        name, description = db.execute("SELECT category_name, category_description FROM categories").fetchone()
    assert name != "Groceries"
    assert "Groceries" not in name
    assert "Weekly" not in description


def test_create_category_batch(client, alice):
    response = client.post(f"{BASE}/categories", json=[
        {"name": "Rent", "colour_id": 1},
        {"name": "Travel", "colour_id": 2},
    ], auth=alice)
    assert response.status_code == 201
    assert [category["name"] for category in response.json()] == ["Rent", "Travel"]


def test_batch_is_rejected_as_a_whole(client, alice):
    response = client.post(f"{BASE}/categories", json=[
        {"name": "Rent", "colour_id": 1},
        {"name": "", "colour_id": 2},
    ], auth=alice)
    assert response.status_code == 400
    assert client.get(f"{BASE}/categories", auth=alice).json() == []


def test_create_category_validation(client, alice):
    response = client.post(f"{BASE}/categories", json={"name": "Rent", "colour_id": 0}, auth=alice)
    assert response.status_code == 400

    response = client.post(f"{BASE}/categories", json={"name": "Rent", "colour_id": 99}, auth=alice)
    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["colour with id 99 does not exist"]

    response = client.post(f"{BASE}/categories", json={"colour_id": 1}, auth=alice)
    assert response.status_code == 400


def test_categories_are_tenant_scoped(client, alice, bob):
    category = add_category(client, alice)

    assert client.get(f"{BASE}/categories", auth=bob).json() == []
    assert client.get(f"{BASE}/categories/{category['id']}", auth=bob).status_code == 404
    assert client.patch(f"{BASE}/categories/{category['id']}", json={"name": "Mine"}, auth=bob).status_code == 404
    assert client.delete(f"{BASE}/categories/{category['id']}", auth=bob).status_code == 404
    assert client.get(f"{BASE}/categories/{category['id']}", auth=alice).json()["name"] == "Groceries"


def test_patch_category_merges(client, alice):
    category = add_category(client, alice, description="Weekly shopping")

    response = client.patch(
        f"{BASE}/categories/{category['id']}", json={"name": "Food", "description": None, "colour_id": 0}, auth=alice
    )
    assert response.status_code == 200
    assert response.json() == dict(category, name="Food")

    response = client.patch(f"{BASE}/categories/{category['id']}", json={"colour_id": 5}, auth=alice)
    assert response.json()["colour_id"] == 5
    assert client.get(f"{BASE}/categories/{category['id']}", auth=alice).json()["colour_id"] == 5


def test_patch_category_validation(client, alice):
    category = add_category(client, alice)

    assert client.patch(f"{BASE}/categories/{category['id']}", json={"colour_id": -1}, auth=alice).status_code == 400
    assert client.patch(f"{BASE}/categories/{category['id']}", json={"colour_id": 42}, auth=alice).status_code == 400
    assert client.patch(f"{BASE}/categories/0", json={"name": "x"}, auth=alice).status_code == 400
    assert client.patch(f"{BASE}/categories/999", json={"name": "x"}, auth=alice).status_code == 404


def test_delete_category_cascades(client, alice):
    category = add_category(client, alice)
    subcategory = add_subcategory(client, alice, category["id"])

    response = client.delete(f"{BASE}/categories/{category['id']}", auth=alice)
    assert response.status_code == 200
    assert client.get(f"{BASE}/categories/{category['id']}", auth=alice).status_code == 404
    assert client.get(f"{BASE}/subcategories/{subcategory['id']}/entries", auth=alice).status_code == 404
    assert client.delete(f"{BASE}/categories/{category['id']}", auth=alice).status_code == 404


def test_subcategory_crud(client, alice):
    category = add_category(client, alice)
    subcategory = add_subcategory(client, alice, category["id"])
    assert subcategory["category_id"] == category["id"]

    url = f"{BASE}/categories/{category['id']}/subcategories"
    assert client.get(url, auth=alice).json() == [subcategory]
    assert client.get(f"{url}/{subcategory['id']}", auth=alice).json() == subcategory

    response = client.patch(f"{url}/{subcategory['id']}", json={"description": "Big shop"}, auth=alice)
    assert response.json() == dict(subcategory, description="Big shop")

    assert client.delete(f"{url}/{subcategory['id']}", auth=alice).status_code == 200
    assert client.get(f"{url}/{subcategory['id']}", auth=alice).status_code == 404


def test_subcategory_requires_owned_category(client, alice, bob):
    category = add_category(client, alice)

    response = client.post(
        f"{BASE}/categories/{category['id']}/subcategories", json={"name": "Sneaky", "colour_id": 1}, auth=bob
    )
    assert response.status_code == 404
    assert client.get(f"{BASE}/categories/{category['id']}/subcategories", auth=bob).status_code == 404


def test_subcategory_wrong_parent_is_not_found(client, alice):
    first = add_category(client, alice, name="First")
    second = add_category(client, alice, name="Second")
    subcategory = add_subcategory(client, alice, first["id"])

    url = f"{BASE}/categories/{second['id']}/subcategories/{subcategory['id']}"
    assert client.get(url, auth=alice).status_code == 404


def test_move_subcategory(client, alice, bob):
    first = add_category(client, alice, name="First")
    second = add_category(client, alice, name="Second")
    foreign = add_category(client, bob, name="Foreign")
    subcategory = add_subcategory(client, alice, first["id"])

    url = f"{BASE}/categories/{first['id']}/subcategories/{subcategory['id']}"
    assert client.patch(url, json={"category_id": foreign["id"]}, auth=alice).status_code == 404

    response = client.patch(url, json={"category_id": second["id"]}, auth=alice)
    assert response.status_code == 200
    assert response.json()["category_id"] == second["id"]

    assert client.get(url, auth=alice).status_code == 404
    moved = client.get(f"{BASE}/categories/{second['id']}/subcategories/{subcategory['id']}", auth=alice)
    assert moved.json()["name"] == "Supermarket"


def test_ids_beyond_integer_range_are_rejected(client, alice):
    huge = 2 ** 70

    response = client.get(f"{BASE}/categories/{huge}", auth=alice)
    assert response.status_code == 400

    response = client.post(f"{BASE}/categories", json={"name": "x", "colour_id": huge}, auth=alice)
    assert response.status_code == 400

    category = add_category(client, alice)
    url = f"{BASE}/categories/{category['id']}"
    assert client.patch(url, json={"colour_id": huge}, auth=alice).status_code == 400
    assert client.delete(f"{BASE}/categories/{huge}", auth=alice).status_code == 400
    assert client.get(f"{BASE}/colours/{huge}").status_code == 400

    subcategory = add_subcategory(client, alice, category["id"])
    response = client.patch(f"{url}/subcategories/{subcategory['id']}", json={"category_id": huge}, auth=alice)
    assert response.status_code == 400


def test_patch_several_categories(client, alice):
    rent = add_category(client, alice, name="Rent", colour_id=1)
    travel = add_category(client, alice, name="Travel", colour_id=2)

    response = client.patch(
        f"{BASE}/categories/{rent['id']},{travel['id']}",
        json=[{"name": "Housing"}, {"colour_id": 6}],
        auth=alice
    )
    assert response.status_code == 200
    assert response.json() == [dict(rent, name="Housing"), dict(travel, colour_id=6)]


def test_patch_several_categories_requires_matching_counts(client, alice):
    rent = add_category(client, alice, name="Rent")
    travel = add_category(client, alice, name="Travel")
    url = f"{BASE}/categories/{rent['id']},{travel['id']}"

    response = client.patch(url, json=[{"name": "Housing"}], auth=alice)
    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["the number of category_ids and payloads must be equal"]

    assert client.patch(url, json={"name": "Housing"}, auth=alice).status_code == 400
    assert client.patch(f"{BASE}/categories/{rent['id']},x", json=[{}, {}], auth=alice).status_code == 400
    assert client.get(f"{BASE}/categories/{rent['id']}", auth=alice).json()["name"] == "Rent"


def test_delete_several_categories(client, alice, bob):
    rent = add_category(client, alice, name="Rent")
    travel = add_category(client, alice, name="Travel")
    food = add_category(client, alice, name="Food")
    foreign = add_category(client, bob, name="Foreign")

    response = client.delete(f"{BASE}/categories/{rent['id']},{travel['id']}", auth=alice)
    assert response.status_code == 200
    assert response.json()["detail"] == f"Category IDs {rent['id']}, {travel['id']} have been deleted."
    assert client.get(f"{BASE}/categories", auth=alice).json() == [food]

    assert client.delete(f"{BASE}/categories/{food['id']},{foreign['id']}", auth=alice).status_code == 404
    assert client.get(f"{BASE}/categories/{foreign['id']}", auth=bob).status_code == 200


def test_subcategories_are_tenant_scoped(client, alice, bob):
    category = add_category(client, alice)
    subcategory = add_subcategory(client, alice, category["id"])
    url = f"{BASE}/categories/{category['id']}/subcategories/{subcategory['id']}"

    assert client.get(url, auth=bob).status_code == 404
    assert client.patch(url, json={"name": "Mine"}, auth=bob).status_code == 404
    assert client.delete(url, auth=bob).status_code == 404
    assert client.get(url, auth=alice).json() == subcategory


def test_patch_subcategory_with_unknown_colour(client, alice):
    category = add_category(client, alice)
    subcategory = add_subcategory(client, alice, category["id"])
    url = f"{BASE}/categories/{category['id']}/subcategories/{subcategory['id']}"

    response = client.patch(url, json={"colour_id": 42}, auth=alice)
    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["colour with id 42 does not exist"]
    assert client.patch(url, json={"colour_id": -1}, auth=alice).status_code == 400
    assert client.get(url, auth=alice).json()["colour_id"] == subcategory["colour_id"]


def test_add_subcategories_to_several_categories(client, alice):
    first = add_category(client, alice, name="First")
    second = add_category(client, alice, name="Second")

    response = client.post(
        f"{BASE}/categories/{first['id']},{second['id']}/subcategories",
        json=[{"name": "A", "colour_id": 1}, {"name": "B", "colour_id": 2}],
        auth=alice
    )
    assert response.status_code == 201
    assert [sub["category_id"] for sub in response.json()] == [first["id"], second["id"]]

    response = client.post(
        f"{BASE}/categories/{first['id']},{second['id']}/subcategories",
        json=[{"name": "C", "colour_id": 1}],
        auth=alice
    )
    assert response.status_code == 400


def test_patch_and_delete_several_subcategories(client, alice):
    category = add_category(client, alice)
    first = add_subcategory(client, alice, category["id"], name="First")
    second = add_subcategory(client, alice, category["id"], name="Second")
    url = f"{BASE}/categories/{category['id']}/subcategories/{first['id']},{second['id']}"

    response = client.patch(url, json=[{"name": "One"}, {"name": "Two"}], auth=alice)
    assert response.status_code == 200
    assert [sub["name"] for sub in response.json()] == ["One", "Two"]

    mismatched = f"{BASE}/categories/{category['id']},{category['id']},{category['id']}/subcategories/{first['id']},{second['id']}"
    assert client.delete(mismatched, auth=alice).status_code == 400

    assert client.delete(url, auth=alice).status_code == 200
    assert client.get(f"{BASE}/categories/{category['id']}/subcategories", auth=alice).json() == []
