"""
Front desk API tests
"""
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from hms.models.entities import Reservation, Room
from hms.models.enums import ReservationStatus, RoomStatus


@pytest.fixture
def confirmed(db_session, sample_guest, sample_room_type):
    reservation = Reservation(
        user_id=sample_guest.id,
        room_type_id=sample_room_type.id,
        check_in_date=date.today(),
        check_out_date=date.today() + timedelta(days=2),
        total_price=Decimal("30000.00"),
        discount_amount=Decimal("0.00"),
        final_price=Decimal("30000.00"),
        status=ReservationStatus.CONFIRMED,
        has_credit_card=True,
        created_at=datetime.now(),
    )
    db_session.add(reservation)
    db_session.commit()
    return reservation


class TestCheckInOut:

    def test_check_in(self, client, clerk_auth_headers, confirmed, sample_room, db_session):
        response = client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                               json={"room_id": sample_room.id}, headers=clerk_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["reservation"]["checkin_status"] == "checked_in"
        assert data["reservation"]["room_number"] == "101"
        assert data["room_assignment"]["room_id"] == sample_room.id
        db_session.refresh(sample_room)
        assert sample_room.status == RoomStatus.OCCUPIED

    def test_second_check_in_conflicts(self, client, clerk_auth_headers, confirmed, sample_room):
        url = f"/front-desk/reservations/{confirmed.id}/check-in"
        client.post(url, json={"room_id": sample_room.id}, headers=clerk_auth_headers)

        response = client.post(url, json={"room_id": sample_room.id}, headers=clerk_auth_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_CHECKED_IN"

    def test_unknown_room(self, client, clerk_auth_headers, confirmed):
        response = client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                               json={"room_id": "missing"}, headers=clerk_auth_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "ROOM_NOT_FOUND"

    def test_check_out_with_charges(self, client, clerk_auth_headers, confirmed, sample_room,
                                    db_session):
        client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                    json={"room_id": sample_room.id}, headers=clerk_auth_headers)

        response = client.post(f"/front-desk/reservations/{confirmed.id}/check-out", json={
            "payment_method": "cash",
            "amount": "30000.00",
            "service_charges": [
                {"service_type": "restaurant", "description": "Dinner", "amount": "4500.00"},
            ],
        }, headers=clerk_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["reservation"]["checkin_status"] == "checked_out"
        assert data["reservation"]["room_number"] is None
        assert Decimal(data["payment"]["amount"]) == Decimal("30000")
        assert data["payment"]["transaction_id"].startswith("CHECKOUT_")
        assert len(data["service_charges"]) == 1
        assert Decimal(data["reservation"]["outstanding_balance"]) == Decimal("4500")
        db_session.refresh(sample_room)
        assert sample_room.status == RoomStatus.AVAILABLE

    def test_settled_check_out_marks_charges_paid(self, client, clerk_auth_headers, confirmed,
                                                  sample_room):
        client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                    json={"room_id": sample_room.id}, headers=clerk_auth_headers)

        client.post(f"/front-desk/reservations/{confirmed.id}/check-out", json={
            "payment_method": "credit_card",
            "amount": "34500.00",
            "service_charges": [
                {"service_type": "restaurant", "description": "Dinner", "amount": "4500.00"},
            ],
        }, headers=clerk_auth_headers)
        summary = client.get(f"/payments/reservations/{confirmed.id}/summary",
                             headers=clerk_auth_headers).json()

        assert Decimal(summary["outstanding_balance"]) == Decimal("0")
        assert [c["is_paid"] for c in summary["service_charges"]] == [True]

    def test_customer_forbidden(self, client, guest_auth_headers, confirmed, sample_room):
        response = client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                               json={"room_id": sample_room.id}, headers=guest_auth_headers)
        assert response.status_code == 403


class TestWalkIn:

    def test_walk_in_with_card_is_roomed(self, client, clerk_auth_headers, sample_room_type,
                                         sample_room):
        response = client.post("/front-desk/walk-ins", json={
            "guest": {"name": "Walk In", "email": "walkin@example.com"},
            "reservation": {
                "room_type_id": sample_room_type.id,
                "check_in_date": date.today().isoformat(),
                "check_out_date": (date.today() + timedelta(days=1)).isoformat(),
                "num_guests": 1,
                "has_credit_card": True,
                "credit_card_last4": "9999",
            },
        }, headers=clerk_auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["room_id"] == sample_room.id
        assert data["reservation"]["is_walk_in"] is True
        assert data["reservation"]["checkin_status"] == "checked_in"
        assert data["reservation"]["user_id"] == data["guest_id"]

    def test_walk_in_without_card_waits(self, client, clerk_auth_headers, sample_room_type,
                                        sample_room):
        response = client.post("/front-desk/walk-ins", json={
            "guest": {"name": "Walk In", "email": "walkin@example.com"},
            "reservation": {
                "room_type_id": sample_room_type.id,
                "check_in_date": date.today().isoformat(),
                "check_out_date": (date.today() + timedelta(days=1)).isoformat(),
                "num_guests": 1,
            },
        }, headers=clerk_auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["room_id"] is None
        assert data["reservation"]["status"] == "pending"


class TestServiceCharges:

    def test_requires_checked_in(self, client, clerk_auth_headers, confirmed):
        response = client.post(f"/front-desk/reservations/{confirmed.id}/service-charges",
                               json={"service_type": "laundry", "description": "Shirts",
                                     "amount": "1200.00"},
                               headers=clerk_auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_STATUS_FOR_CHARGES"

    def test_charge_and_list_guests(self, client, clerk_auth_headers, confirmed, sample_room):
        client.post(f"/front-desk/reservations/{confirmed.id}/check-in",
                    json={"room_id": sample_room.id}, headers=clerk_auth_headers)

        response = client.post(f"/front-desk/reservations/{confirmed.id}/service-charges",
                               json={"service_type": "laundry", "description": "Shirts",
                                     "amount": "1200.00"},
                               headers=clerk_auth_headers)
        guests = client.get("/front-desk/current-guests", headers=clerk_auth_headers).json()

        assert response.status_code == 201
        assert response.json()["is_paid"] is False
        assert [g["id"] for g in guests] == [confirmed.id]
        assert Decimal(guests[0]["service_charges_total"]) == Decimal("1200")
