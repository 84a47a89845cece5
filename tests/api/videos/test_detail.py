import uuid
from models.videos import Video
from models.likes import Like
from models.watch_history import WatchHistory
from tests.conftest import auth_headers


async def test_get_video(client, session, user, other_user, create_video):
    video = create_video(user, views=10)
    session.add(Like(video_id=video.id, liked_by_id=other_user.id))
    session.commit()

    response = await client.get(f"/api/v1/videos/{video.id}", headers=auth_headers(other_user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == video.id
    assert data["views"] == 11
    assert data["likes_count"] == 1
    assert data["comments_count"] == 0
    assert data["is_liked"] is True
    assert data["owner"]["username"] == "alice"
    assert data["owner"]["subscribers_count"] == 0
    assert data["owner"]["is_subscribed"] is False


async def test_repeat_views_count_but_history_is_unique(client, session, user, other_user, create_video):
    video = create_video(user)
    headers = auth_headers(other_user)

    await client.get(f"/api/v1/videos/{video.id}", headers=headers)
    await client.get(f"/api/v1/videos/{video.id}", headers=headers)

    session.expire_all()
    assert session.get(Video, video.id).views == 2
    assert session.query(WatchHistory).filter(
        WatchHistory.user_id == other_user.id,
        WatchHistory.video_id == video.id
    ).count() == 1


async def test_get_malformed_id(client, user):
    response = await client.get("/api/v1/videos/not-an-id", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid video id"


async def test_get_unknown_video(client, user):
    response = await client.get(f"/api/v1/videos/{uuid.uuid4()}", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["message"] == "Video not found"


async def test_get_unpublished_video(client, session, user, other_user, create_video):
    draft = create_video(user, is_published=False)

    response = await client.get(f"/api/v1/videos/{draft.id}", headers=auth_headers(other_user))
    assert response.status_code == 404

    # The owner can still open it
    response = await client.get(f"/api/v1/videos/{draft.id}", headers=auth_headers(user))
    assert response.status_code == 200
