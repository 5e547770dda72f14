import logging
from typing import Callable, Dict, List, Optional

from google.cloud.firestore import FieldFilter, Query

from app.database.connection import MESSAGES, PARTICIPANTS
from app.models.chat import Message, Participant
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

MESSAGES_FEED = "messages"
PARTICIPANTS_FEED = "participants"

# on_change(feed, snapshot, error)
ChangeListener = Callable[[str, list, Optional[str]], None]


class FeedState:
    def __init__(self):
        self.data: list = []
        self.loading = True
        self.error: Optional[str] = None


class ChatSubscription:
    """
    Live view of one conversation's messages and participants.

    Two independent Firestore listeners feed two independent states. Each
    snapshot replaces the previous one wholesale. A failed feed keeps its
    error until the subscription is closed; open a new one to retry.
    """

    def __init__(self, db, conversation_id, on_change: Optional[ChangeListener] = None):
        if conversation_id is None or str(conversation_id).strip() == "":
            raise ValueError("conversation_id is required")

        self.db = db
        self.conversation_id = str(conversation_id).strip()
        self.on_change = on_change
        self.feeds: Dict[str, FeedState] = {
            MESSAGES_FEED: FeedState(),
            PARTICIPANTS_FEED: FeedState(),
        }
        self._watches = {}
        self.closed = False

    # ---- public state ----

    @property
    def messages(self) -> List[Message]:
        return self.feeds[MESSAGES_FEED].data

    @property
    def participants(self) -> List[Participant]:
        return self.feeds[PARTICIPANTS_FEED].data

    @property
    def loading(self) -> bool:
        return any(feed.loading for feed in self.feeds.values())

    def error(self, feed: str) -> Optional[str]:
        return self.feeds[feed].error

    # ---- lifecycle ----

    def open(self) -> "ChatSubscription":
        messages_query = self.db.collection(MESSAGES).where(
            filter=FieldFilter("conversationId", "==", self.conversation_id)
        ).order_by("timestamp", direction=Query.ASCENDING)

        participants_query = self.db.collection(PARTICIPANTS).where(
            filter=FieldFilter("conversationId", "==", self.conversation_id)
        )

        self._listen(MESSAGES_FEED, messages_query, self._handle_messages)
        self._listen(PARTICIPANTS_FEED, participants_query, self._handle_participants)
        return self

    def close(self):
        if self.closed:
            return
        self.closed = True
        for feed, watch in self._watches.items():
            try:
                watch.unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to unsubscribe {feed} feed for {self.conversation_id}: {e}")
        self._watches.clear()
        logger.info(f"Closed chat subscription for conversation {self.conversation_id}")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ---- internals ----

    def _listen(self, feed: str, query, handler):
        def callback(docs, changes, read_time):
            if self.closed:
                return
            try:
                handler(docs)
            except Exception as e:
                self._fail(feed, e)

        try:
            self._watches[feed] = query.on_snapshot(callback)
        except Exception as e:
            self._fail(feed, e)

    def _convert(self, feed: str, docs, convert) -> list:
        """Convert each document, dropping ones that do not parse."""
        items = []
        for doc in docs:
            try:
                items.append(convert(doc))
            except Exception as e:
                logger.warning(f"Skipping malformed {feed} document {doc.id} in {self.conversation_id}: {e}")
        return items

    def _handle_messages(self, docs):
        messages = self._convert(MESSAGES_FEED, docs, ChatService.to_message)
        messages.sort(key=lambda m: m.timestamp)
        self._update(MESSAGES_FEED, messages)

    def _handle_participants(self, docs):
        self._update(PARTICIPANTS_FEED, self._convert(PARTICIPANTS_FEED, docs, ChatService.to_participant))

    def _update(self, feed: str, data: list):
        state = self.feeds[feed]
        if state.error:
            return
        state.data = data
        state.loading = False
        self._notify(feed, data, None)

    def _fail(self, feed: str, error: Exception):
        logger.error(f"Chat {feed} listener error for conversation {self.conversation_id}: {error}")
        state = self.feeds[feed]
        state.error = str(error)
        state.loading = False
        self._notify(feed, state.data, state.error)

    def _notify(self, feed: str, data: list, error: Optional[str]):
        if self.on_change:
            self.on_change(feed, data, error)
