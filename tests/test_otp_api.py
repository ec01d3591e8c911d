# tests/test_otp_api.py
from fastapi import status

from app.models import OTPVerification, User, UserStatus

PHONE = "+15551234567"


def _send(client, phone=PHONE, purpose="login", **extra):
    return client.post("/otp/send", json={"phone_number": phone, "purpose": purpose, **extra})


class TestOTPEndpoints:
    """HTTP surface of the OTP flow: uniform body, status codes per failure."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ok"

    def test_send_and_verify(self, client, sms):
        response = _send(client)
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert set(body["data"]) == {"otp_id", "expires_at"}
        assert "reason" not in body

        response = client.post("/otp/verify", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
            "purpose": "login",
        })
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["data"]["phone_number"] == PHONE
        assert body["data"]["user_id"] is None

    def test_invalid_phone_is_400_with_message(self, client, sms):
        response = _send(client, phone="555-123-4567")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert "international format" in body["message"]
        assert sms.sent == []

    def test_unknown_purpose_is_rejected(self, client):
        response = _send(client, purpose="withdrawal")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_fourth_send_is_429(self, client, db_session):
        for _ in range(3):
            assert _send(client, phone="+15559999999").status_code == status.HTTP_200_OK

        response = _send(client, phone="+15559999999")

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["success"] is False
        assert db_session.query(OTPVerification).count() == 3

    def test_wrong_code_is_400(self, client):
        _send(client)

        response = client.post("/otp/verify", json={
            "phone_number": PHONE,
            "otp_code": "000000",
            "purpose": "login",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {
            "success": False,
            "message": "Invalid or expired OTP. Please request a new one.",
            "data": None,
        }

    def test_delivery_failure_is_500_without_detail(self, client, sms, db_session):
        sms.fail = True

        response = _send(client)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["message"] == "Failed to send OTP. Please try again."
        assert db_session.query(OTPVerification).count() == 0

    def test_phone_exists(self, client, make_user):
        user = make_user(phone=PHONE)

        response = client.get("/otp/phone-exists", params={"phone_number": PHONE})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["exists"] is True
        assert data["user"]["id"] == str(user.id)
        assert data["user"]["preferred_auth_method"] == "both"

    def test_phone_does_not_exist(self, client):
        response = client.get("/otp/phone-exists", params={"phone_number": PHONE})

        assert response.json()["data"] == {"exists": False, "user": None}


class TestOTPAuth:
    """Turning a verified OTP into tokens."""

    def test_otp_login_returns_tokens_for_registered_phone(self, client, sms, make_user):
        user = make_user(phone=PHONE)
        _send(client)

        response = client.post("/auth/otp-login", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
        })

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["id"] == str(user.id)
        assert body["user"]["phone_verified"] is True

        me = client.get("/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["phone"] == PHONE

    def test_otp_login_with_wrong_code(self, client, make_user):
        make_user(phone=PHONE)
        _send(client)

        response = client.post("/auth/otp-login", json={"phone_number": PHONE, "otp_code": "000000"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_otp_login_for_unregistered_phone(self, client, sms):
        _send(client)

        response = client.post("/auth/otp-login", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
        })

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_otp_login_banned_user(self, client, sms, make_user):
        make_user(phone=PHONE, status=UserStatus.BANNED)
        _send(client)

        response = client.post("/auth/otp-login", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_otp_register_creates_verified_user(self, client, sms, db_session):
        _send(client, purpose="registration")
        code = sms.last_code()

        response = client.post("/auth/otp-register", json={
            "phone_number": PHONE,
            "otp_code": code,
            "full_name": "Asha Rao",
            "email": "Asha@Example.com",
            "role": "facility_owner",
            "preferred_auth_method": "otp",
        })

        assert response.status_code == status.HTTP_201_CREATED
        user_out = response.json()["user"]
        assert user_out["phone_verified"] is True
        assert user_out["role"] == "facility_owner"
        assert user_out["email"] == "asha@example.com"

        user = db_session.query(User).filter(User.phone == PHONE).one()
        assert user.full_name == "Asha Rao"
        # welcome SMS follows the OTP
        assert "Welcome to QuickCourt, Asha Rao!" in sms.sent[-1][1]

    def test_otp_register_rejects_taken_phone_without_burning_code(self, client, sms, make_user, db_session):
        make_user(phone=PHONE)
        _send(client, purpose="registration")

        response = client.post("/auth/otp-register", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
            "full_name": "Someone Else",
        })

        assert response.status_code == status.HTTP_409_CONFLICT
        record = db_session.query(OTPVerification).one()
        assert record.is_verified is False

    def test_otp_register_cannot_create_admin(self, client):
        response = client.post("/auth/otp-register", json={
            "phone_number": PHONE,
            "otp_code": "123456",
            "full_name": "Sneaky",
            "role": "admin",
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_otp_register_rejects_malformed_email(self, client, db_session):
        response = client.post("/auth/otp-register", json={
            "phone_number": PHONE,
            "otp_code": "123456",
            "full_name": "Asha Rao",
            "email": "a@",
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert db_session.query(User).count() == 0

    def test_refresh_issues_new_pair(self, client, sms, make_user):
        make_user(phone=PHONE)
        _send(client)
        tokens = client.post("/auth/otp-login", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
        }).json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["access_token"]

    def test_access_token_is_not_a_refresh_token(self, client, sms, make_user):
        make_user(phone=PHONE)
        _send(client)
        tokens = client.post("/auth/otp-login", json={
            "phone_number": PHONE,
            "otp_code": sms.last_code(),
        }).json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_requires_token(self, client):
        assert client.get("/users/me").status_code == status.HTTP_401_UNAUTHORIZED
