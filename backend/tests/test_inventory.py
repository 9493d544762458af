import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker

from models.inventory import InventoryUnit, UnitStatus
from models.order import Order
from models.product import Product
from models.users import User
from database import Base
from schemas.inventory import UnitFilters
from services import inventory_service
from services.errors import NotFoundError, OutOfStockError, ValidationError
from tests.helpers import available_count


def _order(db, user):
    order = Order(user_id=user.id, order_number=f"T{user.id}-{db.query(Order).count() + 1}",
                  status="processing", total_amount=0.0)
    db.add(order)
    db.commit()
    return order


def test_create_unit_keeps_stock_in_sync(db, make_product, add_units):
    product = make_product(name="HyperX Cloud")
    add_units(product, "SN-1", "SN-2", "SN-3")

    db.refresh(product)
    assert product.stock_quantity == 3
    assert product.stock_quantity == available_count(db, product.id)


def test_unit_id_uses_name_initials_without_sku(db, make_product, add_units):
    product = make_product(name="HyperX Cloud Alpha")
    first, second = add_units(product, "SN-1", "SN-2")

    assert first.unit_id == "HC_1"
    assert second.unit_id == "HC_2"


def test_unit_id_prefers_sku(db, make_product, add_units):
    product = make_product(name="Razer Viper", sku="RZ-VIPER")
    (unit,) = add_units(product, "SN-1")

    assert unit.unit_id == "RZ-VIPER_1"


def test_unit_id_skips_prefix_collision_across_products(db, make_product, add_units):
    blade = make_product(name="Razer Blade")
    basilisk = make_product(name="Razer Basilisk")
    (a,) = add_units(blade, "SN-A")
    (b,) = add_units(basilisk, "SN-B")

    assert a.unit_id == "RB_1"
    assert b.unit_id == "RB_2"


@pytest.mark.parametrize("other_product", [False, True])
def test_duplicate_serial_is_rejected(db, make_product, add_units, admin, other_product):
    product = make_product()
    add_units(product, "DUP-001")
    target = make_product() if other_product else product

    with pytest.raises(ValidationError):
        inventory_service.create_unit(db, target.id, "DUP-001", admin.id)

    db.refresh(product)
    db.refresh(target)
    assert product.stock_quantity == 1
    assert target.stock_quantity == (0 if other_product else 1)
    assert db.query(InventoryUnit).count() == 1


def test_blank_serial_is_rejected(db, make_product, admin):
    product = make_product()
    with pytest.raises(ValidationError):
        inventory_service.create_unit(db, product.id, "   ", admin.id)


def test_unit_for_unknown_product(db, admin):
    with pytest.raises(NotFoundError):
        inventory_service.create_unit(db, 9999, "SN-1", admin.id)


def test_assign_unit_takes_oldest_available(db, make_product, add_units, customer):
    product = make_product()
    first, second = add_units(product, "SN-OLD", "SN-NEW")
    order = _order(db, customer)

    unit = inventory_service.assign_unit(db, product.id, order.id)
    db.commit()

    assert unit.id == first.id
    assert unit.status == UnitStatus.SOLD.value
    assert unit.order_id == order.id
    assert unit.sold_at is not None
    db.refresh(product)
    assert product.stock_quantity == 1


def test_assign_unit_out_of_stock(db, make_product, customer):
    product = make_product()
    order = _order(db, customer)

    with pytest.raises(OutOfStockError):
        inventory_service.assign_unit(db, product.id, order.id)


def test_assign_unit_retries_after_losing_claim(db, make_product, add_units, customer, monkeypatch):
    product = make_product()
    first, second = add_units(product, "SN-1", "SN-2")
    order = _order(db, customer)
    stolen = []

    class StealOnFirstRead:
        # Another checkout sells the candidate between our read and our claim
        def __init__(self, query):
            self.query = query

        def scalar(self):
            candidate = self.query.scalar()
            if candidate is not None and not stolen:
                db.execute(
                    update(InventoryUnit)
                    .where(InventoryUnit.id == candidate)
                    .values(status=UnitStatus.SOLD.value)
                    .execution_options(synchronize_session=False)
                )
                stolen.append(candidate)
            return candidate

    monkeypatch.setattr(inventory_service, "lock_for_update", StealOnFirstRead)

    unit = inventory_service.assign_unit(db, product.id, order.id)

    assert stolen == [first.id]
    assert unit.id == second.id
    assert unit.order_id == order.id


def test_last_unit_claimed_concurrently_is_out_of_stock(db, make_product, add_units, customer, monkeypatch):
    product = make_product()
    (only,) = add_units(product, "SN-LAST")
    order = _order(db, customer)

    class StealAlways:
        def __init__(self, query):
            self.query = query

        def scalar(self):
            candidate = self.query.scalar()
            if candidate is not None:
                db.execute(
                    update(InventoryUnit)
                    .where(InventoryUnit.id == candidate)
                    .values(status=UnitStatus.SOLD.value)
                    .execution_options(synchronize_session=False)
                )
            return candidate

    monkeypatch.setattr(inventory_service, "lock_for_update", StealAlways)

    with pytest.raises(OutOfStockError):
        inventory_service.assign_unit(db, product.id, order.id)

    # The unit went to the other claimant, never to this order
    db.expire_all()
    assert db.get(InventoryUnit, only.id).order_id is None


def test_sold_unit_cannot_go_back(db, make_product, add_units, customer):
    product = make_product()
    (unit,) = add_units(product, "SN-1")
    order = _order(db, customer)
    inventory_service.update_unit_status(db, unit.id, "sold", order_id=order.id)

    with pytest.raises(ValidationError):
        inventory_service.update_unit_status(db, unit.id, "available")

    db.refresh(product)
    assert product.stock_quantity == 0


def test_reserve_and_release_recomputes_stock(db, make_product, add_units):
    product = make_product()
    (unit,) = add_units(product, "SN-1")

    inventory_service.update_unit_status(db, unit.id, UnitStatus.RESERVED)
    db.refresh(product)
    assert product.stock_quantity == 0

    inventory_service.update_unit_status(db, unit.id, "available")
    db.refresh(product)
    assert product.stock_quantity == 1


def test_unknown_status_is_rejected(db, make_product, add_units):
    product = make_product()
    (unit,) = add_units(product, "SN-1")

    with pytest.raises(ValidationError):
        inventory_service.update_unit_status(db, unit.id, "lost")


def test_list_units_filters(db, make_product, add_units, customer):
    a = make_product()
    b = make_product()
    add_units(a, "A-1", "A-2")
    add_units(b, "B-1")
    inventory_service.assign_unit(db, a.id, _order(db, customer).id)
    db.commit()

    assert [u.serial_number for u in inventory_service.list_units(db, UnitFilters(product_id=a.id))] == ["A-1", "A-2"]
    sold = inventory_service.list_units(db, UnitFilters(status=UnitStatus.SOLD))
    assert [u.serial_number for u in sold] == ["A-1"]


def test_marking_sold_requires_an_order(db, make_product, add_units):
    product = make_product()
    (unit,) = add_units(product, "SN-1")

    with pytest.raises(ValidationError):
        inventory_service.update_unit_status(db, unit.id, "sold")

    db.refresh(unit)
    assert unit.status == UnitStatus.AVAILABLE.value
    assert unit.order_id is None


def test_marking_sold_into_missing_order(db, make_product, add_units):
    product = make_product()
    (unit,) = add_units(product, "SN-1")

    with pytest.raises(NotFoundError):
        inventory_service.update_unit_status(db, unit.id, "sold", order_id=424242)

    db.refresh(unit)
    db.refresh(product)
    assert unit.status == UnitStatus.AVAILABLE.value
    assert product.stock_quantity == 1


def test_unit_id_collision_is_reported_as_such(db, make_product, add_units, admin, monkeypatch):
    product = make_product(name="Elgato Facecam")
    (existing,) = add_units(product, "SN-1")
    # Another insert took the generated unit id first
    monkeypatch.setattr(inventory_service, "_next_unit_id", lambda db, product: existing.unit_id)

    with pytest.raises(ValidationError) as err:
        inventory_service.create_unit(db, product.id, "SN-2", admin.id)

    assert "Unit id EF_1" in str(err.value)
    assert "Serial number" not in str(err.value)


def test_two_sessions_race_for_the_last_unit(tmp_path, monkeypatch):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    user = User(email="race@example.com", password_hash="x", role="admin")
    product = Product(name="Limited Edition Console", slug="limited-console", price=499.0, stock_quantity=0)
    setup.add_all([user, product])
    setup.commit()
    unit_pk = inventory_service.create_unit(setup, product.id, "LE-0001", user.id).id
    order_a = Order(user_id=user.id, order_number="RACE-A", status="processing", total_amount=499.0)
    order_b = Order(user_id=user.id, order_number="RACE-B", status="processing", total_amount=499.0)
    setup.add_all([order_a, order_b])
    setup.commit()
    product_id, order_a_id, order_b_id = product.id, order_a.id, order_b.id
    setup.close()

    buyer_a, buyer_b = Session(), Session()
    original_lock = inventory_service.lock_for_update
    raced = []

    class ClaimedBetweenReadAndWrite:
        # buyer_b commits its claim after buyer_a has picked its candidate
        def __init__(self, query):
            self.query = query

        def scalar(self):
            candidate = self.query.scalar()
            if not raced:
                raced.append(candidate)
                inventory_service.assign_unit(buyer_b, product_id, order_b_id)
                buyer_b.commit()
            return candidate

    def lock_for_update(query):
        locked = original_lock(query)
        return ClaimedBetweenReadAndWrite(locked) if query.session is buyer_a else locked

    monkeypatch.setattr(inventory_service, "lock_for_update", lock_for_update)

    with pytest.raises(OutOfStockError):
        inventory_service.assign_unit(buyer_a, product_id, order_a_id)
    buyer_a.rollback()

    check = Session()
    sold = check.query(InventoryUnit).filter(InventoryUnit.status == UnitStatus.SOLD.value).all()
    assert raced == [unit_pk]
    assert [(u.id, u.order_id) for u in sold] == [(unit_pk, order_b_id)]
    assert check.get(Product, product_id).stock_quantity == 0

    for session in (buyer_a, buyer_b, check):
        session.close()
    engine.dispose()
