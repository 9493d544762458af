import pytest

from schemas.order import CheckoutRequest
from services import cart_service, order_service, review_service
from services.errors import NotFoundError
from tests.helpers import auth_headers


def _buy(db, user, product):
    cart_service.add_item(db, user.id, product.id)
    return order_service.checkout(db, user.id, CheckoutRequest())


def test_verified_purchase_flag(db, make_user, make_product):
    buyer, browser = make_user(), make_user()
    product = make_product()
    order = _buy(db, buyer, product)

    bought = review_service.create_review(db, buyer.id, product.id, 5, "Great", "Works as advertised")
    guessed = review_service.create_review(db, browser.id, product.id, 2)

    assert bought.is_verified_purchase is True
    assert bought.order_id == order.id
    assert guessed.is_verified_purchase is False
    assert guessed.order_id is None


def test_cancelled_order_is_not_a_purchase(db, customer, make_product):
    product = make_product()
    order = _buy(db, customer, product)
    order_service.update_status(db, order.id, "cancelled")

    review = review_service.create_review(db, customer.id, product.id, 4)
    assert review.is_verified_purchase is False


def test_review_unknown_product(db, customer):
    with pytest.raises(NotFoundError):
        review_service.create_review(db, customer.id, 404, 3)


def test_votes_are_unique_per_user_and_recounted(db, make_user, make_product):
    author, v1, v2 = make_user(), make_user(), make_user()
    review = review_service.create_review(db, author.id, make_product().id, 4)

    assert review_service.vote(db, review.id, v1.id, True).helpful_count == 1
    assert review_service.vote(db, review.id, v2.id, True).helpful_count == 2
    # Changing one's mind replaces the vote
    assert review_service.vote(db, review.id, v1.id, False).helpful_count == 1
    assert review_service.vote(db, review.id, v1.id, False).helpful_count == 1


def test_list_reviews_newest_first(db, customer, make_product):
    product = make_product()
    first = review_service.create_review(db, customer.id, product.id, 3)
    second = review_service.create_review(db, customer.id, product.id, 5)

    assert [r.id for r in review_service.list_reviews(db, product.id)] == [second.id, first.id]


def test_review_endpoints(client, customer, make_user, make_product):
    product = make_product()
    r = client.post(f"/shop/products/{product.id}/reviews", json={"rating": 5, "title": "Nice"},
                    headers=auth_headers(customer))
    assert r.status_code == 200
    review_id = r.json()["id"]

    assert client.post(f"/shop/products/{product.id}/reviews", json={"rating": 6},
                       headers=auth_headers(customer)).status_code == 422

    voted = client.post(f"/reviews/{review_id}/vote", json={"is_helpful": True}, headers=auth_headers(make_user()))
    assert voted.json()["helpful_count"] == 1
    assert [rv["id"] for rv in client.get(f"/shop/products/{product.id}/reviews").json()] == [review_id]
    assert client.post("/reviews/999/vote", json={"is_helpful": True},
                       headers=auth_headers(customer)).status_code == 404
