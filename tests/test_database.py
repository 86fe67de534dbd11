import threading

import pytest

from database import Database, DuplicateError, NotFoundError, coerce_number
from schemas import Role


@pytest.fixture
def store():
    db = Database()
    db.seed_catalog()
    return db


def test_seed_catalog_is_idempotent(store):
    store.seed_catalog()
    assert len(store.list_products()) == 4
    assert len(store.list_categories()) == 3


def test_reads_return_copies(store):
    product = store.get_product("p1")
    product.price = 1
    assert store.get_product("p1").price == 59990


def test_update_cannot_change_id(store):
    updated = store.update_product("p1", {"id": "p9", "name": "Otro"})
    assert updated.id == "p1"
    assert store.get_product("p1").name == "Otro"


def test_update_missing_raises(store):
    with pytest.raises(NotFoundError):
        store.update_product("nope", {"name": "x"})


def test_delete_missing_product_reports_false(store):
    assert store.delete_product("nope") is False


def test_duplicate_email_is_rejected(store):
    store.add_user(email="ana@innova.com", password_hash="h")
    with pytest.raises(DuplicateError):
        store.add_user(email="ana@innova.com", password_hash="h2")
    assert store.count_users() == 1


def test_concurrent_registrations_keep_emails_unique(store):
    results = []

    def attempt():
        try:
            results.append(store.add_user(email="race@innova.com", password_hash="h").id)
        except DuplicateError:
            results.append(None)

    threads = [threading.Thread(target=attempt) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len([r for r in results if r is not None]) == 1
    assert store.count_users() == 1


def test_concurrent_product_creation_yields_unique_ids(store):
    ids = []
    lock = threading.Lock()

    def create():
        product = store.add_product({"name": "x"})
        with lock:
            ids.append(product.id)

    threads = [threading.Thread(target=create) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(ids)) == 20


def test_user_ids_are_monotonic(store):
    first = store.add_user(email="a@innova.com", password_hash="h", role=Role.ADMIN)
    second = store.add_user(email="b@innova.com", password_hash="h")
    assert second.id == first.id + 1
    assert store.has_admin()


def test_create_order_with_no_lines_raises(store):
    with pytest.raises(ValueError):
        store.create_order(1, None)
    with pytest.raises(ValueError):
        store.create_order(1, [])


@pytest.mark.parametrize(
    "value, expected",
    [(5, 5), ("3.5", 3.5), (None, 0), ("abc", 0), (float("nan"), 0), (float("inf"), 0), (True, 0), ([1], 0)],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected
