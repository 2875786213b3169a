import threading

from finance_manager.identity import UserCache, UNKNOWN_USER_ID


def test_unknown_username_returns_sentinel():
    cache = UserCache()
    assert cache.get_user_id("nobody") == UNKNOWN_USER_ID


def test_add_and_remove_user():
    cache = UserCache()
    cache.add_user("alice", 7)
    assert cache.get_user_id("alice") == 7
    assert "alice" in cache

    cache.remove_user("alice")
    assert cache.get_user_id("alice") == UNKNOWN_USER_ID
    assert "alice" not in cache


def test_remove_missing_user_is_noop():
    cache = UserCache()
    cache.remove_user("ghost")
    assert len(cache) == 0


def test_rename_moves_id_to_new_name():
    cache = UserCache()
    cache.add_user("alice", 3)

    cache.rename_user("alice", "alicia")

    assert cache.get_user_id("alice") == UNKNOWN_USER_ID
    assert cache.get_user_id("alicia") == 3


def test_rename_of_unknown_user_adds_nothing():
    cache = UserCache()
    cache.rename_user("ghost", "spirit")
    assert cache.get_user_id("spirit") == UNKNOWN_USER_ID


def test_load_replaces_mapping():
    cache = UserCache()
    cache.add_user("stale", 99)

    cache.load([("alice", 1), ("bob", 2)])

    assert len(cache) == 2
    assert cache.get_user_id("bob") == 2
    assert cache.get_user_id("stale") == UNKNOWN_USER_ID


def test_get_instance_is_process_wide():
    assert UserCache.get_instance() is UserCache.get_instance()


def test_concurrent_writers_keep_every_user():
    cache = UserCache()

    def add_range(start):
        for user_id in range(start, start + 200):
            cache.add_user(f"user{user_id}", user_id)

    threads = [threading.Thread(target=add_range, args=(n * 200,)) for n in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 1000
    assert cache.get_user_id("user999") == 999
