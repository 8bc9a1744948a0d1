from livechat.models.comment import MessageComment
from livechat.models.conversation import Conversation, ConversationParticipant
from livechat.models.crm_subject import CrmSubject
from livechat.models.guest_session import GuestSession
from livechat.models.message import Message, MessageEdit, MessageReaction
from livechat.models.notification import Notification
from livechat.models.user import User

__all__ = [
    "Conversation",
    "ConversationParticipant",
    "CrmSubject",
    "GuestSession",
    "Message",
    "MessageComment",
    "MessageEdit",
    "MessageReaction",
    "Notification",
    "User",
]
