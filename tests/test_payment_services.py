from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.core.errors import Forbidden, InvalidInput, NotFound
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate
from app.services.payment_services import list_payments, record_payment

from conftest import make_group


async def payment_count(db):
    return await db.scalar(select(func.count()).select_from(Payment))


async def test_record_payment(db, alice, bob):
    payment = await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount="25.50"))

    assert payment.payer_id == alice.id
    assert payment.payee_id == bob.id
    assert payment.group_id is None
    assert Decimal(str(payment.amount)) == Decimal("25.50")
    assert payment.payer.username == "alice"
    assert payment.payee.username == "bob"


async def test_record_payment_in_group(db, flat, alice, bob):
    payment = await record_payment(db, bob.id, PaymentCreate(payee_id=alice.id, amount="3.33", group_id=flat))

    assert payment.group_id == flat


async def test_cannot_pay_yourself(db, alice):
    with pytest.raises(InvalidInput):
        await record_payment(db, alice.id, PaymentCreate(payee_id=alice.id, amount="10.00"))

    assert await payment_count(db) == 0


@pytest.mark.parametrize("amount", ["0", "-4.00", "1.234"])
async def test_payment_amount_must_be_positive_cents(db, alice, bob, amount):
    with pytest.raises(InvalidInput):
        await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount=amount))

    assert await payment_count(db) == 0


async def test_unknown_payee(db, alice):
    with pytest.raises(NotFound):
        await record_payment(db, alice.id, PaymentCreate(payee_id="nobody", amount="10.00"))


async def test_unknown_group(db, alice, bob):
    with pytest.raises(NotFound):
        await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount="10.00", group_id="missing"))


async def test_both_users_must_be_in_group(db, flat, alice, outsider):
    with pytest.raises(InvalidInput):
        await record_payment(db, alice.id, PaymentCreate(payee_id=outsider.id, amount="10.00", group_id=flat))

    with pytest.raises(InvalidInput):
        await record_payment(db, outsider.id, PaymentCreate(payee_id=alice.id, amount="10.00", group_id=flat))

    assert await payment_count(db) == 0


async def test_list_payments_includes_both_directions(db, alice, bob, carol):
    await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount="1.00"))
    await record_payment(db, bob.id, PaymentCreate(payee_id=alice.id, amount="2.00"))
    await record_payment(db, bob.id, PaymentCreate(payee_id=carol.id, amount="3.00"))

    payments = await list_payments(db, alice.id)

    assert sorted(Decimal(str(p.amount)) for p in payments) == [Decimal("1.00"), Decimal("2.00")]


async def test_list_payments_by_group(db, alice, bob):
    trip = await make_group(db, "Trip", alice, bob)
    await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount="1.00"))
    await record_payment(db, alice.id, PaymentCreate(payee_id=bob.id, amount="2.00", group_id=trip))

    payments = await list_payments(db, bob.id, group_id=trip)

    assert [Decimal(str(p.amount)) for p in payments] == [Decimal("2.00")]


async def test_list_payments_group_requires_membership(db, flat, outsider):
    with pytest.raises(Forbidden):
        await list_payments(db, outsider.id, group_id=flat)
