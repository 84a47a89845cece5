from sqlalchemy import select, update, or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models.users import User
from models.videos import Video
from models.subscriptions import Subscription
from models.likes import Like
from models.comments import Comment
from models.watch_history import WatchHistory
from services.query_builder import Pipeline, Reduce, SortDirection
from utils.ids import parse_object_id
from utils.logger import get_logger

logger = get_logger(__name__)


VIDEO_FIELDS = (
    "id", "video_file", "thumbnail", "title", "description", "duration",
    "views", "is_published", "owner_id", "created_at", "updated_at",
)
OWNER_FIELDS = ("id", "username", "full_name", "avatar")
SORTABLE_VIDEO_FIELDS = ("created_at", "updated_at", "views", "duration", "title")


class AggregationService:
    """Read-only derived views over users, videos and subscriptions."""

    @staticmethod
    def channel_profile(username: str, viewer_id: str, db: Session) -> dict:
        """
        Public profile of a channel with its subscription counts and whether
        the viewer is one of its subscribers.

        Raises:
            ValidationError: username is blank
            NotFoundError: no such channel
        """
        if not username or not username.strip():
            raise ValidationError("Username is missing")

        channels = (
            Pipeline(User)
            .match(User.username == username.strip().lower())
            .lookup("subscribers_count", Subscription, User.id, Subscription.channel_id, Reduce.COUNT)
            .lookup("channels_subscribed_to_count", Subscription, User.id, Subscription.subscriber_id, Reduce.COUNT)
            .lookup(
                "is_subscribed", Subscription, User.id, Subscription.channel_id, Reduce.EXISTS,
                where=(Subscription.subscriber_id == viewer_id,)
            )
            .project((
                "id", "full_name", "username", "email", "avatar", "cover_image",
                "subscribers_count", "channels_subscribed_to_count", "is_subscribed",
            ))
            .run(db)
        )

        if not channels:
            raise NotFoundError("Channel does not exist")
        return channels[0]

    @staticmethod
    def watch_history(user_id: str, db: Session) -> list[dict]:
        """Videos the user watched, in the order they were first watched."""
        watched = select(WatchHistory.video_id).where(WatchHistory.user_id == user_id)

        return (
            Pipeline(Video)
            .match(Video.id.in_(watched))
            .lookup(
                "watched_at", WatchHistory, Video.id, WatchHistory.video_id, Reduce.MAX,
                where=(WatchHistory.user_id == user_id,), value=WatchHistory.id
            )
            .lookup("owner", User, Video.owner_id, User.id, Reduce.FIRST)
            .sort("watched_at", SortDirection.ASC)
            .project(VIDEO_FIELDS, nested={"owner": OWNER_FIELDS})
            .run(db)
        )

    @staticmethod
    def list_videos(
        db: Session,
        page: int = 1,
        limit: int = 10,
        query: str | None = None,
        sort_by: str | None = None,
        sort_type: str | None = None,
        user_id: str | None = None,
    ):
        """
        Paginated feed of published videos.

        Args:
            query: every whitespace-separated term must appear in the title
                or the description (case-insensitive; % and _ match literally)
            sort_by: one of SORTABLE_VIDEO_FIELDS, default created_at
            sort_type: "asc" or "desc", default "desc"
            user_id: only videos owned by this user

        Raises:
            ValidationError: malformed user_id, sort_by or sort_type
            NotFoundError: user_id names no user
        """
        sort_by = sort_by or "created_at"
        if sort_by not in SORTABLE_VIDEO_FIELDS:
            raise ValidationError(
                f"Invalid sort_by '{sort_by}', expected one of: {', '.join(SORTABLE_VIDEO_FIELDS)}"
            )
        try:
            direction = SortDirection((sort_type or "desc").lower())
        except ValueError:
            raise ValidationError("sort_type must be 'asc' or 'desc'")

        pipeline = Pipeline(Video).match(Video.is_published.is_(True))

        if user_id is not None:
            owner_id = parse_object_id(user_id, "user_id")
            if db.get(User, owner_id) is None:
                raise NotFoundError("User not found")
            pipeline.match(Video.owner_id == owner_id)

        if query and query.strip():
            terms = query.split()
            pipeline.match(and_(*(
                or_(
                    Video.title.icontains(term, autoescape=True),
                    Video.description.icontains(term, autoescape=True)
                )
                for term in terms
            )))

        return (
            pipeline
            .lookup("owner", User, Video.owner_id, User.id, Reduce.FIRST)
            .sort(sort_by, direction)
            .project(VIDEO_FIELDS, nested={"owner": OWNER_FIELDS})
            .paginate(page=page, limit=limit)
            .run(db)
        )

    @staticmethod
    def video_detail(video_id: str, viewer_id: str, db: Session) -> dict:
        """
        A video with its like/comment counts, owner card and the viewer's
        relation to both. Unpublished videos are only visible to their owner.

        A successful read counts one view and records the video in the
        viewer's watch history. The two writes are independent: a failed
        history append is logged and the view still counts.

        Raises:
            ValidationError: malformed video id
            NotFoundError: no such video, or not visible to the viewer
        """
        video_id = parse_object_id(video_id, "video id")

        videos = (
            Pipeline(Video)
            .match(
                Video.id == video_id,
                or_(Video.is_published.is_(True), Video.owner_id == viewer_id)
            )
            .lookup("likes_count", Like, Video.id, Like.video_id, Reduce.COUNT)
            .lookup("comments_count", Comment, Video.id, Comment.video_id, Reduce.COUNT)
            .lookup(
                "is_liked", Like, Video.id, Like.video_id, Reduce.EXISTS,
                where=(Like.liked_by_id == viewer_id,)
            )
            .lookup("owner", User, Video.owner_id, User.id, Reduce.FIRST)
            .lookup("owner_subscribers_count", Subscription, Video.owner_id, Subscription.channel_id, Reduce.COUNT)
            .lookup(
                "owner_is_subscribed", Subscription, Video.owner_id, Subscription.channel_id, Reduce.EXISTS,
                where=(Subscription.subscriber_id == viewer_id,)
            )
            .project(
                VIDEO_FIELDS + (
                    "likes_count", "comments_count", "is_liked",
                    "owner_subscribers_count", "owner_is_subscribed",
                ),
                nested={"owner": OWNER_FIELDS}
            )
            .run(db)
        )

        if not videos:
            raise NotFoundError("Video not found")

        video = videos[0]
        owner = video["owner"] or {}
        owner["subscribers_count"] = video.pop("owner_subscribers_count")
        owner["is_subscribed"] = video.pop("owner_is_subscribed")
        video["owner"] = owner

        AggregationService._record_view(video_id, viewer_id, db)
        video["views"] += 1
        return video

    @staticmethod
    def _record_view(video_id: str, viewer_id: str, db: Session):
        db.execute(
            update(Video)
            .where(Video.id == video_id)
            .values(views=Video.views + 1, updated_at=Video.updated_at)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        already_watched = db.scalar(
            select(WatchHistory.id).where(
                WatchHistory.user_id == viewer_id,
                WatchHistory.video_id == video_id
            )
        )
        if already_watched is not None:
            return

        try:
            db.add(WatchHistory(user_id=viewer_id, video_id=video_id))
            db.commit()
        except IntegrityError:
            # A concurrent view of the same video already recorded it
            db.rollback()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Watch history append failed: {str(e)}",
                extra={"user_id": viewer_id, "video_id": video_id},
                exc_info=True
            )
