from __future__ import annotations

from enum import StrEnum


class RequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RequestDirection(StrEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class RequestAction(StrEnum):
    ACCEPT = "accept"
    REJECT = "reject"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"


class ClientEvent(StrEnum):
    SEND_MESSAGE = "send_message"
    TYPING_START = "typing_start"
    TYPING_STOP = "typing_stop"
    MARK_READ = "mark_read"
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_RESPONSE = "friend_request_response"
    PING = "ping"


class ServerEvent(StrEnum):
    NEW_MESSAGE = "new_message"
    MESSAGE_SENT = "message_sent"
    MESSAGE_READ = "message_read"
    USER_TYPING = "user_typing"
    USER_STOP_TYPING = "user_stop_typing"
    FRIEND_ONLINE = "friend_online"
    FRIEND_OFFLINE = "friend_offline"
    FRIEND_REQUEST_RECEIVED = "friend_request_received"
    FRIEND_REQUEST_SENT = "friend_request_sent"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    FRIEND_REQUEST_REJECTED = "friend_request_rejected"
    FRIEND_REQUEST_PROCESSED = "friend_request_processed"
    ERROR = "error"
    PONG = "pong"
