"""Edit lineage of messages and the time-bounded edit permission."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.constants.chat import MessageType
from livechat.core.clock import Clock, ensure_aware, utcnow
from livechat.exceptions import EditWindowExpiredError, ForbiddenError, NoChangeError
from livechat.models.message import Message, MessageEdit
from livechat.models.user import User
from livechat.schemas.actor import Actor
from livechat.schemas.message import EditHistoryEntry, EditHistoryRead, EditorInfo


class EditHistoryManager:
    def __init__(
        self,
        db: DBSession,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.clock = clock or utcnow
        self.settings = settings or get_settings()

    @property
    def edit_window(self) -> timedelta:
        return timedelta(minutes=self.settings.edit_window_minutes)

    def check_editable(self, actor: Actor, message: Message, new_body: str) -> None:
        """
        Raise unless ``actor`` may replace ``message.body`` with ``new_body`` now.

        Only the sender may edit, system messages never, and only while the
        message is younger than the edit window.
        """
        if message.sender_id is None or message.sender_id != actor.id:
            raise ForbiddenError("Only the sender can edit this message")
        if message.message_type == MessageType.SYSTEM.value:
            raise ForbiddenError("System messages cannot be edited")
        elapsed = self.clock() - ensure_aware(message.created_at)
        if elapsed >= self.edit_window:
            raise EditWindowExpiredError(
                f"Messages can only be edited within "
                f"{self.settings.edit_window_minutes} minutes of sending"
            )
        if new_body == message.body:
            raise NoChangeError("The new text is identical to the current text")

    def record(self, actor: Actor, message: Message, new_body: str) -> Message:
        """Apply an edit that already passed ``check_editable``."""
        now = self.clock()
        if not message.is_edited:
            message.original_message = message.body
        message.edits.append(
            MessageEdit(previous_text=message.body, edited_by=actor.id, edited_at=now)
        )
        message.body = new_body
        message.is_edited = True
        message.edited_at = now
        self.db.flush()
        return message

    def get_edit_history(self, message: Message) -> EditHistoryRead:
        edits = list(message.edits)
        editor_ids = {edit.edited_by for edit in edits}
        editors = {}
        if editor_ids:
            editors = {
                user.id: EditorInfo(id=user.id, name=user.name, email=user.email)
                for user in self.db.query(User).filter(User.id.in_(editor_ids)).all()
            }
        history = [
            EditHistoryEntry(
                previous_text=edit.previous_text,
                edited_by=edit.edited_by,
                edited_at=ensure_aware(edit.edited_at),
                edited_by_user=editors.get(edit.edited_by),
            )
            for edit in edits
        ]
        return EditHistoryRead(
            message_id=message.id,
            original=message.original_message,
            current=message.body,
            edit_count=len(history),
            history=history,
            is_edited=bool(message.is_edited),
            edited_at=ensure_aware(message.edited_at),
        )
