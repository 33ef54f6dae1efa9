"""Import all models so Base.metadata sees every table."""
from friend_chat.infrastructure.db.models.friend_request import FriendRequestModel
from friend_chat.infrastructure.db.models.friendship import FriendshipModel
from friend_chat.infrastructure.db.models.message import MessageModel
from friend_chat.infrastructure.db.models.user import UserModel

__all__ = [
    "FriendRequestModel",
    "FriendshipModel",
    "MessageModel",
    "UserModel",
]
