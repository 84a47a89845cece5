from models.users import User
from tests.conftest import auth_headers

PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"


async def test_update_account(client, session, user):
    response = await client.patch(
        "/api/v1/users/update-account",
        headers=auth_headers(user),
        json={"full_name": "  Alice Updated ", "email": "Alice.New@Example.com"}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["full_name"] == "Alice Updated"
    assert data["email"] == "alice.new@example.com"

    session.expire_all()
    assert session.get(User, user.id).email == "alice.new@example.com"


async def test_update_account_email_taken(client, user, other_user):
    response = await client.patch(
        "/api/v1/users/update-account",
        headers=auth_headers(user),
        json={"full_name": "Alice", "email": "bob@example.com"}
    )

    assert response.status_code == 409


async def test_update_account_missing_fields(client, user):
    response = await client.patch(
        "/api/v1/users/update-account",
        headers=auth_headers(user),
        json={"full_name": "", "email": "alice@example.com"}
    )

    assert response.status_code == 400


async def test_update_avatar_replaces_old_image(client, session, user, media):
    old_avatar = user.avatar

    response = await client.patch(
        "/api/v1/users/avatar",
        headers=auth_headers(user),
        files={"avatar": ("new.png", PNG, "image/png")}
    )

    assert response.status_code == 200
    new_avatar = response.json()["data"]["avatar"]
    assert new_avatar == media.uploaded[-1]
    assert new_avatar != old_avatar

    # Previous image is removed from media storage
    assert media.deleted == [(old_avatar, "image")]


async def test_update_avatar_missing_file(client, user, media):
    response = await client.patch("/api/v1/users/avatar", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Avatar is missing"
    assert media.deleted == []


async def test_update_avatar_upload_failure(client, session, user, media):
    old_avatar = user.avatar
    media.fail_uploads = True

    response = await client.patch(
        "/api/v1/users/avatar",
        headers=auth_headers(user),
        files={"avatar": ("new.png", PNG, "image/png")}
    )

    assert response.status_code == 500
    session.expire_all()
    assert session.get(User, user.id).avatar == old_avatar
    assert media.deleted == []


async def test_update_cover_image_without_previous(client, user, media):
    response = await client.patch(
        "/api/v1/users/cover-image",
        headers=auth_headers(user),
        files={"cover_image": ("cover.jpg", PNG, "image/jpeg")}
    )

    assert response.status_code == 200
    assert response.json()["data"]["cover_image"].endswith(".jpg")
    # Nothing to delete: the user had no cover image yet
    assert media.deleted == []


async def test_update_avatar_with_underivable_old_url(client, session, user, media):
    user.avatar = "https://res.cloudinary.com/demo/image/upload/v1/legacy-avatar"
    session.commit()

    response = await client.patch(
        "/api/v1/users/avatar",
        headers=auth_headers(user),
        files={"avatar": ("new.png", PNG, "image/png")}
    )

    assert response.status_code == 200
    session.expire_all()
    assert session.get(User, user.id).avatar == media.uploaded[-1]
    assert media.deleted == []
