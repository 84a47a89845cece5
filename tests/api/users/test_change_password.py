from models.users import User
from utils.hashing import verify_password
from tests.conftest import auth_headers, login


async def test_change_password_success(client, session, user):
    tokens = await login(client, user)

    response = await client.post(
        "/api/v1/users/change-password",
        headers=auth_headers(user),
        json={"old_password": "password123", "new_password": "NewPassword456!"}
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Password changed successfully"

    # Verify password changed in DB
    session.expire_all()
    stored = session.get(User, user.id)
    assert verify_password("NewPassword456!", stored.hashed_password)
    assert not verify_password("password123", stored.hashed_password)

    # Outstanding refresh tokens are revoked
    assert stored.refresh_token_hash is None
    response = await client.post(
        "/api/v1/users/refresh-token",
        json={"refresh_token": tokens["refresh_token"]}
    )
    assert response.status_code == 401

    # Login works with the new password only
    await login(client, stored, "NewPassword456!")


async def test_change_password_wrong_old(client, session, user):
    response = await client.post(
        "/api/v1/users/change-password",
        headers=auth_headers(user),
        json={"old_password": "WrongPassword!", "new_password": "NewPassword456!"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Old password is incorrect"

    session.expire_all()
    assert verify_password("password123", session.get(User, user.id).hashed_password)


async def test_change_password_blank_new(client, user):
    response = await client.post(
        "/api/v1/users/change-password",
        headers=auth_headers(user),
        json={"old_password": "password123", "new_password": "  "}
    )

    assert response.status_code == 400


async def test_change_password_unauthenticated(client):
    response = await client.post(
        "/api/v1/users/change-password",
        json={"old_password": "password123", "new_password": "NewPassword456!"}
    )

    assert response.status_code == 401
