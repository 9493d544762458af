import pytest

from models.qr_code import QrCode
from schemas.order import CheckoutRequest
from schemas.qr_code import CodeFilters
from services import cart_service, order_service, qr_service
from services.errors import NotFoundError


@pytest.fixture
def order(db, customer, make_product, add_units):
    product = make_product(name="Elite Headset")
    add_units(product, "EH-1")
    cart_service.add_item(db, customer.id, product.id)
    return order_service.checkout(db, customer.id, CheckoutRequest())


def test_issue_mints_unique_unverified_codes(db, order, customer):
    item = order.items[0]
    one = qr_service.issue(db, order.id, item.product_id, customer.id, "X-1")
    two = qr_service.issue(db, order.id, item.product_id, customer.id, "")
    db.commit()

    assert one.code != two.code
    assert len(one.code) == 36
    assert not one.is_verified and not one.email_sent and one.is_active
    assert two.serial_number == ""


def test_verify_first_time(db, order, notifier):
    code = order.qr_codes[0].code
    result = qr_service.verify(db, code, {"ip_address": "10.0.0.1"}, notifier)

    assert result.verified is True
    assert result.first_verification is True
    assert result.serial_number == "EH-1"
    assert result.product.name == "Elite Headset"
    assert result.order.id == order.id
    assert result.verified_at is not None
    assert result.active is True

    stored = db.query(QrCode).filter(QrCode.code == code).one()
    assert stored.verification_data == {"ip_address": "10.0.0.1"}


def test_verify_again_keeps_first_timestamp(db, order, notifier):
    code = order.qr_codes[0].code
    first = qr_service.verify(db, code, {"ip_address": "10.0.0.1"}, notifier)
    again = qr_service.verify(db, code, {"ip_address": "10.0.0.2"}, notifier)

    assert again.verified is True
    assert again.first_verification is False
    assert again.verified_at == first.verified_at
    stored = db.query(QrCode).filter(QrCode.code == code).one()
    assert stored.verification_data == {"ip_address": "10.0.0.1"}


def test_verification_email_goes_out_once(db, order, customer, notifier):
    code = order.qr_codes[0].code
    qr_service.verify(db, code, notifier=notifier)
    qr_service.verify(db, code, notifier=notifier)

    assert notifier.verifications == [(customer.email, order.items[0].product_id, code)]
    assert db.query(QrCode).filter(QrCode.code == code).one().email_sent is True


def test_verification_email_failure_is_swallowed(db, order, notifier):
    notifier.fail = True
    result = qr_service.verify(db, order.qr_codes[0].code, notifier=notifier)
    assert result.verified is True


def test_verify_unknown_code(db):
    with pytest.raises(NotFoundError):
        qr_service.verify(db, "unknown-code")


def test_deactivate_is_idempotent(db, order):
    code = order.qr_codes[0].code
    assert qr_service.deactivate(db, code).is_active is False
    assert qr_service.deactivate(db, code).is_active is False

    # Retired codes still verify, reporting inactive
    result = qr_service.verify(db, code)
    assert result.verified is True
    assert result.active is False


def test_deactivate_unknown_code(db):
    with pytest.raises(NotFoundError):
        qr_service.deactivate(db, "nope")


def test_list_codes_filters(db, order, make_user):
    other = make_user()
    assert [c.order_id for c in qr_service.list_codes(db, CodeFilters(order_id=order.id))] == [order.id]
    assert qr_service.list_codes(db, CodeFilters(user_id=other.id)) == []


def test_urls(order):
    code = order.qr_codes[0].code
    assert qr_service.verification_url(code) == f"http://localhost:5000/verify/{code}"
    image = qr_service.qr_image_url(code)
    assert image.startswith("https://api.qrserver.com/v1/create-qr-code/?")
    assert "size=200x200" in image
