import pytest

from models.cart import CartItem
from services import cart_service
from services.errors import NotFoundError, ValidationError


def test_add_merges_into_existing_line(db, customer, make_product):
    product = make_product()
    cart_service.add_item(db, customer.id, product.id, 1)
    line = cart_service.add_item(db, customer.id, product.id, 2)

    assert line.quantity == 3
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 1


def test_add_defaults_to_one(db, customer, make_product):
    product = make_product()
    line = cart_service.add_item(db, customer.id, product.id)
    assert line.quantity == 1


def test_add_unknown_product(db, customer):
    with pytest.raises(NotFoundError):
        cart_service.add_item(db, customer.id, 12345)


def test_carts_are_per_user(db, make_user, make_product):
    alice, bob = make_user(), make_user()
    product = make_product()
    cart_service.add_item(db, alice.id, product.id, 2)
    cart_service.add_item(db, bob.id, product.id, 1)

    assert [i.quantity for i in cart_service.list_items(db, alice.id)] == [2]
    assert [i.quantity for i in cart_service.list_items(db, bob.id)] == [1]


@pytest.mark.parametrize("quantity", [0, -3])
def test_set_quantity_below_one_is_rejected(db, customer, make_product, quantity):
    product = make_product()
    line = cart_service.add_item(db, customer.id, product.id, 2)

    with pytest.raises(ValidationError):
        cart_service.set_quantity(db, line.id, quantity, customer.id)

    db.refresh(line)
    assert line.quantity == 2


def test_set_quantity(db, customer, make_product):
    product = make_product()
    line = cart_service.add_item(db, customer.id, product.id)
    assert cart_service.set_quantity(db, line.id, 5, customer.id).quantity == 5


def test_set_quantity_on_someone_elses_line(db, make_user, make_product):
    owner, other = make_user(), make_user()
    line = cart_service.add_item(db, owner.id, make_product().id)

    with pytest.raises(NotFoundError):
        cart_service.set_quantity(db, line.id, 4, other.id)


def test_remove_is_idempotent(db, customer, make_product):
    line = cart_service.add_item(db, customer.id, make_product().id)
    line_id = line.id

    cart_service.remove_item(db, line_id, customer.id)
    cart_service.remove_item(db, line_id, customer.id)

    assert cart_service.list_items(db, customer.id) == []


def test_clear_and_total(db, customer, make_product):
    a = make_product(price=10.0)
    b = make_product(price=8.0, sale_price=5.0)
    cart_service.add_item(db, customer.id, a.id, 2)
    cart_service.add_item(db, customer.id, b.id, 1)

    assert cart_service.cart_total(cart_service.list_items(db, customer.id)) == 25.0

    cart_service.clear(db, customer.id)
    assert cart_service.list_items(db, customer.id) == []
