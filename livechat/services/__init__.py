from livechat.services.comment_manager import CommentManager
from livechat.services.conversation_manager import (
    ConversationManager,
    DatabaseSubjectResolver,
    FindOrCreateResult,
)
from livechat.services.conversation_service import ConversationService
from livechat.services.edit_history_manager import EditHistoryManager
from livechat.services.effects import EffectDispatcher, NullBroadcaster, NullNotifier
from livechat.services.guest_chat_service import GuestChatService
from livechat.services.message_store import MessageStore
from livechat.services.participant_registry import ParticipantRegistry
from livechat.services.pin_manager import PinManager
from livechat.services.reaction_manager import ReactionManager

__all__ = [
    "CommentManager",
    "ConversationManager",
    "ConversationService",
    "DatabaseSubjectResolver",
    "EditHistoryManager",
    "EffectDispatcher",
    "FindOrCreateResult",
    "GuestChatService",
    "MessageStore",
    "NullBroadcaster",
    "NullNotifier",
    "ParticipantRegistry",
    "PinManager",
    "ReactionManager",
]
