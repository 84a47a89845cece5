from models.users import User
from models.videos import Video
from models.subscriptions import Subscription
from models.likes import Like
from models.comments import Comment
from models.watch_history import WatchHistory

__all__ = ["User", "Video", "Subscription", "Like", "Comment", "WatchHistory"]
