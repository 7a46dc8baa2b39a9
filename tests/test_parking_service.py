import pytest

from app.core.exceptions import (
    AreaNotFoundException,
    AttendantInactiveException,
    AttendantMismatchException,
    CrossAreaMismatchException,
    InvalidTokenException,
    JukirNotFoundException,
    LocationRequiredException,
    NotManualRecordException,
    OutOfRangeException,
    SessionAlreadyActiveException,
    SessionAlreadyCompletedException,
    SessionNotActiveException,
    SessionNotFoundException,
)
from app.core.timezone import to_local
from app.models import ParkingSession, Payment
from app.models.enums import VehicleType
from app.repositories import PaymentRepository
from app.schemas.parking import (
    CheckinRequest,
    CheckoutRequest,
    ManualCheckinRequest,
    ManualCheckoutRequest,
)
from app.services.parking_service import ParkingService

from tests.conftest import AREA_LAT, AREA_LNG, local_dt, make_area, make_jukir, make_session, north_of


@pytest.fixture
def service(clock, events):
    return ParkingService(event_manager=events, clock=clock)


def checkin(service, db, jukir, vehicle_type=VehicleType.MOTOR, **kwargs):
    return service.checkin(db, CheckinRequest(qr_token=jukir.jk_qr_token, vehicle_type=vehicle_type, **kwargs))


def test_motorcycle_scenario_is_flat_rate(service, db, jukir, clock):
    checkin_response = checkin(service, db, jukir)

    assert checkin_response.hourly_rate == 3000
    assert checkin_response.area_name == "Monas Barat"
    assert checkin_response.checkin_time == clock.now

    stored = db.get(ParkingSession, checkin_response.session_id)
    assert stored.ps_session_status == "active"
    assert stored.ps_payment_status == "paid"
    assert stored.ps_total_cost == 3000
    payment = db.query(Payment).filter(Payment.py_session_id == stored.ps_id).one()
    assert payment.py_amount == 3000
    assert payment.py_status == "paid"
    assert payment.py_confirmed_by == jukir.jk_id

    clock.advance(minutes=47)
    checkout_response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert checkout_response.session_id == checkin_response.session_id
    assert checkout_response.duration == 47
    assert checkout_response.total_cost == 3000
    assert checkout_response.payment_status == "paid"

    db.refresh(stored)
    assert stored.ps_session_status == "completed"
    assert stored.ps_payment_status == "paid"
    assert stored.ps_duration == 47
    assert to_local(stored.ps_checkout_time) == clock.now

    # Updated in place, never a second row
    payments = db.query(Payment).filter(Payment.py_session_id == stored.ps_id).all()
    assert len(payments) == 1
    assert to_local(payments[0].py_confirmed_at) == clock.now


def test_long_stay_still_costs_the_flat_rate(service, db, jukir, clock):
    checkin(service, db, jukir, vehicle_type=VehicleType.MOBIL)
    clock.advance(hours=9, minutes=13)

    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert response.duration == 553
    assert response.total_cost == 5000


def test_checkout_rereads_rate_changed_mid_session(service, db, area, jukir, clock):
    checkin_response = checkin(service, db, jukir)
    area.pa_hourly_rate_motor = 4000
    db.commit()
    clock.advance(minutes=10)

    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert checkin_response.hourly_rate == 3000
    assert response.total_cost == 4000
    payment = db.query(Payment).filter(Payment.py_session_id == response.session_id).one()
    assert payment.py_amount == 4000


def test_checkout_before_checkin_time_clamps_duration(service, db, jukir, clock):
    checkin(service, db, jukir)
    clock.advance(minutes=-5)

    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert response.duration == 0


def test_checkin_with_gps_at_area_center(service, db, jukir):
    response = checkin(service, db, jukir, latitude=AREA_LAT, longitude=AREA_LNG)
    assert response.session_id


def test_checkin_350_meters_away_is_rejected_without_side_effects(service, db, jukir):
    lat, lng = north_of(AREA_LAT, AREA_LNG, 350)

    with pytest.raises(OutOfRangeException):
        checkin(service, db, jukir, latitude=lat, longitude=lng)

    assert db.query(ParkingSession).count() == 0
    assert db.query(Payment).count() == 0


def test_checkin_with_unknown_token(service, db, jukir):
    with pytest.raises(InvalidTokenException) as exc_info:
        service.checkin(db, CheckinRequest(qr_token="QR-UNKNOWN", vehicle_type=VehicleType.MOTOR))

    assert exc_info.value.status_code == 404
    assert exc_info.value.details["code"] == "INVALID_TOKEN"


@pytest.mark.parametrize("status", ["pending", "inactive"])
def test_checkin_with_inactive_attendant(service, db, area, status):
    jukir = make_jukir(db, area, jk_status=status)

    with pytest.raises(AttendantInactiveException):
        checkin(service, db, jukir)


def test_checkin_for_area_that_no_longer_exists(service, db, area):
    jukir = make_jukir(db, area, jk_area_id=area.pa_id + 100)

    with pytest.raises(AreaNotFoundException):
        checkin(service, db, jukir)


def test_plate_cannot_have_two_active_sessions(service, db, area, jukir):
    other = make_jukir(db, area)
    checkin(service, db, jukir, plat_nomor="B 1234 CD")

    with pytest.raises(SessionAlreadyActiveException):
        checkin(service, db, other, plat_nomor="b 1234 cd ")

    assert db.query(ParkingSession).count() == 1


def test_token_cannot_have_two_active_plateless_sessions(service, db, jukir):
    checkin(service, db, jukir)

    with pytest.raises(SessionAlreadyActiveException):
        checkin(service, db, jukir)


def test_plated_sessions_do_not_block_a_plateless_checkin(service, db, jukir):
    checkin(service, db, jukir, plat_nomor="B 1234 CD")
    response = checkin(service, db, jukir)
    assert response.session_id


def test_plate_can_park_again_after_checkout(service, db, jukir, clock):
    checkin(service, db, jukir, plat_nomor="B 1234 CD")
    clock.advance(minutes=20)
    service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, plat_nomor="B 1234 CD"))

    response = checkin(service, db, jukir, plat_nomor="B 1234 CD")
    assert response.session_id


def test_checkout_selector_priority(service, db, jukir, clock):
    first = checkin(service, db, jukir, plat_nomor="B 1111 AA")
    clock.advance(minutes=1)
    second = checkin(service, db, jukir, plat_nomor="B 2222 BB")
    clock.advance(minutes=1)
    third = checkin(service, db, jukir, plat_nomor="B 3333 CC")
    clock.advance(minutes=30)

    # session id wins over plate
    by_id = service.checkout(db, CheckoutRequest(
        qr_token=jukir.jk_qr_token, session_id=third.session_id, plat_nomor="B 1111 AA"
    ))
    assert by_id.session_id == third.session_id

    # plate wins over token
    by_plate = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, plat_nomor="B 2222 BB"))
    assert by_plate.session_id == second.session_id

    by_token = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))
    assert by_token.session_id == first.session_id


def test_checkout_by_token_takes_oldest_active_session(service, db, jukir, clock):
    older = checkin(service, db, jukir, plat_nomor="B 1111 AA")
    clock.advance(minutes=5)
    checkin(service, db, jukir, plat_nomor="B 2222 BB")

    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert response.session_id == older.session_id


def test_checkout_with_unknown_token(service, db, jukir):
    checkin(service, db, jukir)

    with pytest.raises(InvalidTokenException):
        service.checkout(db, CheckoutRequest(qr_token="QR-UNKNOWN"))


def test_checkout_without_matching_session(service, db, jukir):
    with pytest.raises(SessionNotFoundException):
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))
    with pytest.raises(SessionNotFoundException):
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, session_id=999))
    with pytest.raises(SessionNotFoundException):
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, plat_nomor="B 9999 ZZ"))


def test_second_checkout_of_same_session_is_rejected(service, db, jukir, clock):
    checkin_response = checkin(service, db, jukir)
    clock.advance(minutes=15)
    request = CheckoutRequest(qr_token=jukir.jk_qr_token, session_id=checkin_response.session_id)
    service.checkout(db, request)

    with pytest.raises(SessionAlreadyCompletedException) as exc_info:
        service.checkout(db, request)

    assert exc_info.value.status_code == 409
    assert db.query(Payment).count() == 1


def test_checkout_of_session_awaiting_payment(service, db, area, jukir, clock):
    session = make_session(
        db, area, jukir, ps_checkin_time=clock.now, ps_session_status="pending_payment"
    )

    with pytest.raises(SessionNotActiveException):
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, session_id=session.ps_id))


def test_checkout_with_token_of_another_area(service, db, jukir):
    other_area = make_area(db, pa_name="Sarinah")
    stranger = make_jukir(db, other_area)
    checkin_response = checkin(service, db, jukir)

    with pytest.raises(CrossAreaMismatchException):
        service.checkout(db, CheckoutRequest(
            qr_token=stranger.jk_qr_token, session_id=checkin_response.session_id
        ))


def test_checkout_with_token_of_another_attendant_in_same_area(service, db, area, jukir):
    colleague = make_jukir(db, area)
    checkin_response = checkin(service, db, jukir)

    with pytest.raises(AttendantMismatchException):
        service.checkout(db, CheckoutRequest(
            qr_token=colleague.jk_qr_token, session_id=checkin_response.session_id
        ))


def test_checkout_out_of_range_leaves_session_active(service, db, jukir):
    checkin_response = checkin(service, db, jukir)
    lat, lng = north_of(AREA_LAT, AREA_LNG, 400)

    with pytest.raises(OutOfRangeException):
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, latitude=lat, longitude=lng))

    assert db.get(ParkingSession, checkin_response.session_id).ps_session_status == "active"


def test_checkout_creates_payment_when_missing(service, db, area, jukir, clock):
    session = make_session(db, area, jukir, ps_checkin_time=clock.now, ps_vehicle_type="motor")
    clock.advance(minutes=12)

    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, session_id=session.ps_id))

    payment = PaymentRepository().get_by_session_id(db, session.ps_id)
    assert payment.py_amount == response.total_cost == 3000
    assert payment.py_status == "paid"
    assert payment.py_method == "cash"


def manual_checkin(service, db, jukir, **kwargs):
    data = {
        "plat_nomor": "B 7777 XY",
        "vehicle_type": VehicleType.MOBIL,
        "latitude": AREA_LAT,
        "longitude": AREA_LNG,
    }
    data.update(kwargs)
    return service.manual_checkin(db, jukir.jk_id, ManualCheckinRequest(**data))


def test_manual_flow(service, db, jukir, clock):
    backdated = local_dt(2025, 1, 15, 9, 0)
    checkin_response = manual_checkin(service, db, jukir, checkin_time=backdated)

    assert checkin_response.checkin_time == backdated
    assert checkin_response.hourly_rate == 5000
    stored = db.get(ParkingSession, checkin_response.session_id)
    assert stored.ps_is_manual_record is True
    assert stored.ps_plat_nomor == "B 7777 XY"

    response = service.manual_checkout(db, jukir.jk_id, ManualCheckoutRequest(
        session_id=checkin_response.session_id, latitude=AREA_LAT, longitude=AREA_LNG
    ))

    assert response.duration == 60
    assert response.total_cost == 5000
    assert response.payment_status == "paid"


def test_manual_checkin_requires_location(service, db, jukir):
    with pytest.raises(LocationRequiredException) as exc_info:
        manual_checkin(service, db, jukir, latitude=None)

    assert exc_info.value.status_code == 400
    assert db.query(ParkingSession).count() == 0


def test_manual_checkin_for_unknown_attendant(service, db):
    with pytest.raises(JukirNotFoundException):
        service.manual_checkin(db, 999, ManualCheckinRequest(
            plat_nomor="B 7777 XY", vehicle_type=VehicleType.MOBIL, latitude=AREA_LAT, longitude=AREA_LNG
        ))


def test_manual_checkin_out_of_range(service, db, jukir):
    lat, lng = north_of(AREA_LAT, AREA_LNG, 500)

    with pytest.raises(OutOfRangeException):
        manual_checkin(service, db, jukir, latitude=lat, longitude=lng)


def test_manual_checkout_requires_location(service, db, jukir):
    checkin_response = manual_checkin(service, db, jukir)

    with pytest.raises(LocationRequiredException):
        service.manual_checkout(db, jukir.jk_id, ManualCheckoutRequest(session_id=checkin_response.session_id))


def test_manual_checkout_of_scanned_session(service, db, jukir):
    checkin_response = checkin(service, db, jukir)

    with pytest.raises(NotManualRecordException):
        service.manual_checkout(db, jukir.jk_id, ManualCheckoutRequest(
            session_id=checkin_response.session_id, latitude=AREA_LAT, longitude=AREA_LNG
        ))


def test_manual_checkout_of_completed_session(service, db, jukir):
    checkin_response = manual_checkin(service, db, jukir)
    request = ManualCheckoutRequest(
        session_id=checkin_response.session_id, latitude=AREA_LAT, longitude=AREA_LNG
    )
    service.manual_checkout(db, jukir.jk_id, request)

    with pytest.raises(SessionNotActiveException):
        service.manual_checkout(db, jukir.jk_id, request)


def test_manual_checkout_by_another_attendant(service, db, area, jukir):
    colleague = make_jukir(db, area)
    checkin_response = manual_checkin(service, db, jukir)

    with pytest.raises(AttendantMismatchException):
        service.manual_checkout(db, colleague.jk_id, ManualCheckoutRequest(
            session_id=checkin_response.session_id, latitude=AREA_LAT, longitude=AREA_LNG
        ))


def test_manual_checkout_of_unknown_session(service, db, jukir):
    with pytest.raises(SessionNotFoundException):
        service.manual_checkout(db, jukir.jk_id, ManualCheckoutRequest(
            session_id=404, latitude=AREA_LAT, longitude=AREA_LNG
        ))


async def test_checkout_notifies_owning_attendant(service, db, jukir, clock, events):
    subscription = events.register(jukir.jk_id)
    checkin_response = checkin(service, db, jukir, plat_nomor="B 1234 CD")
    clock.advance(minutes=47)
    service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    created = subscription.queue.get_nowait()
    assert created.type == "session_created"
    assert created.data["session_id"] == checkin_response.session_id

    update = subscription.queue.get_nowait()
    assert update.type == "session_update"
    assert update.data == {
        "session_id": checkin_response.session_id,
        "plat_nomor": "B 1234 CD",
        "vehicle_type": "motor",
        "old_status": "active",
        "new_status": "completed",
        "total_cost": 3000,
        "checkout_time": "2025-01-15T10:47:00+07:00",
        "checkin_time": "2025-01-15T10:00:00+07:00",
    }

    confirmed = subscription.queue.get_nowait()
    assert confirmed.type == "payment_confirmed"
    assert confirmed.data == {
        "session_id": checkin_response.session_id,
        "amount": 3000,
        "payment_method": "cash",
        "confirmed_at": "2025-01-15T10:47:00+07:00",
    }
    assert subscription.queue.empty()


async def test_checkout_succeeds_when_attendant_queue_is_full(service, db, jukir, events):
    subscription = events.register(jukir.jk_id)
    for _ in range(10):
        events.notify(jukir.jk_id, "session_update", {})

    checkin(service, db, jukir)
    response = service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token))

    assert response.payment_status == "paid"
    assert subscription.queue.qsize() == 10


def test_get_active_session(service, db, jukir, clock):
    checkin_response = checkin(service, db, jukir, plat_nomor="B 1234 CD")
    clock.advance(minutes=25)

    by_token = service.get_active_session(db, jukir.jk_qr_token)
    by_id = service.get_active_session_by_id(db, checkin_response.session_id)

    assert by_token == by_id
    assert by_token.duration == 25
    assert by_token.current_cost == 3000
    assert by_token.plat_nomor == "B 1234 CD"


def test_get_active_session_errors(service, db, jukir):
    with pytest.raises(InvalidTokenException):
        service.get_active_session(db, "QR-UNKNOWN")
    with pytest.raises(SessionNotFoundException):
        service.get_active_session(db, jukir.jk_qr_token)
    with pytest.raises(SessionNotFoundException):
        service.get_active_session_by_id(db, 1234)


def test_get_history_by_plate(service, db, jukir, clock):
    for _ in range(3):
        checkin(service, db, jukir, plat_nomor="B 1234 CD")
        clock.advance(minutes=30)
        service.checkout(db, CheckoutRequest(qr_token=jukir.jk_qr_token, plat_nomor="B 1234 CD"))
        clock.advance(minutes=30)

    sessions, total = service.get_history_by_plate(db, "b 1234 cd", limit=2, offset=0)

    assert total == 3
    assert len(sessions) == 2
    assert sessions[0].ps_checkin_time > sessions[1].ps_checkin_time


def test_get_nearby_areas(service, db, area):
    near_lat, near_lng = north_of(AREA_LAT, AREA_LNG, 600)
    far_lat, far_lng = north_of(AREA_LAT, AREA_LNG, 3000)
    make_area(db, pa_name="Dekat", pa_latitude=near_lat, pa_longitude=near_lng)
    make_area(db, pa_name="Jauh", pa_latitude=far_lat, pa_longitude=far_lng)
    make_area(db, pa_name="Tutup", pa_latitude=AREA_LAT, pa_longitude=AREA_LNG, pa_status="maintenance")

    nearby = service.get_nearby_areas(db, AREA_LAT, AREA_LNG)

    assert [a.pa_name for a in nearby] == ["Monas Barat", "Dekat"]
    assert nearby[0].distance_m == 0
    assert nearby[1].distance_m == pytest.approx(600, abs=0.1)

    wider = service.get_nearby_areas(db, AREA_LAT, AREA_LNG, radius_km=5)
    assert [a.pa_name for a in wider] == ["Monas Barat", "Dekat", "Jauh"]

    everything = service.get_nearby_areas(db)
    assert {a.pa_name for a in everything} == {"Monas Barat", "Dekat", "Jauh"}
    assert all(a.distance_m is None for a in everything)
