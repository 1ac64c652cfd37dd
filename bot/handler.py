"""Group message handling: decide whether to answer and ask the engine."""

import re
import logging
from typing import Iterable, List, Optional, Pattern, Union

from engine.context_engine import ConversationContextEngine
from schemas.events import IncomingMessage, OutgoingReply
from schemas.options import ResponseOptions

logger = logging.getLogger(__name__)

RoomMatcher = Union[str, Pattern]

REGEX_PREFIX = "re:"


def compile_room_matchers(rooms: Iterable[str]) -> List[RoomMatcher]:
    """Turn configured room names into matchers; "re:<pattern>" entries become regexes."""
    matchers: List[RoomMatcher] = []
    for room in rooms:
        if room.startswith(REGEX_PREFIX):
            matchers.append(re.compile(room[len(REGEX_PREFIX):]))
        else:
            matchers.append(room)
    return matchers


def format_utterance(sender_name: str, text: str) -> str:
    """Embed the speaker in the utterance so the model can tell members apart."""
    return f"{sender_name}: {text}"


class GroupMessageHandler:
    """Answers group chat messages through the conversation engine."""

    def __init__(
        self,
        engine: ConversationContextEngine,
        options: ResponseOptions,
        target_rooms: Iterable[RoomMatcher] = (),
        reply_only_when_mentioned: bool = False,
        reply_to_self: bool = False,
        apology_reply: Optional[str] = None
    ):
        """
        Initialize handler.

        Args:
            engine: Conversation engine that produces replies
            options: Options passed to every engine call
            target_rooms: Room topics (exact strings or compiled regexes) to answer in
            reply_only_when_mentioned: Only answer messages that mention the bot
            reply_to_self: Also answer the bot account's own messages
            apology_reply: Reply used when the engine fails (None stays silent)
        """
        self.engine = engine
        self.options = options
        self.target_rooms = list(target_rooms)
        self.reply_only_when_mentioned = reply_only_when_mentioned
        self.reply_to_self = reply_to_self
        self.apology_reply = apology_reply

    def is_target_room(self, topic: Optional[str]) -> bool:
        if topic is None:
            return False
        for matcher in self.target_rooms:
            if isinstance(matcher, str):
                if topic == matcher:
                    return True
            elif matcher.search(topic):
                return True
        return False

    def should_reply(self, message: IncomingMessage) -> bool:
        """Apply room, self and mention filters."""
        if message.room_id is None:
            return False

        if not self.is_target_room(message.room_topic):
            logger.debug(f"Room [{message.room_topic}] is not a target room, skipping")
            return False

        if message.is_self and not self.reply_to_self:
            return False

        if self.reply_only_when_mentioned and not message.mentions_self:
            return False

        return True

    async def handle(self, message: IncomingMessage) -> Optional[OutgoingReply]:
        """
        Produce the reply for an incoming message.

        A message that @-mentions the bot is answered with an @-mention of
        its sender.

        Returns:
            Reply to post, or None when the bot should stay silent
        """
        if not self.should_reply(message):
            return None

        logger.info(f"[{message.room_topic}] {message.sender_name}: {message.text}")
        mention_sender = message.sender_name if message.mentions_self else None

        try:
            reply = await self.engine.respond(
                format_utterance(message.sender_name, message.text),
                message.room_id,
                self.options
            )
        except Exception as e:
            logger.error(f"Failed to answer message in {message.room_id}: {e}")
            if self.apology_reply is None:
                return None
            return OutgoingReply(text=self.apology_reply, mention_sender=mention_sender)

        if not reply:
            return None

        logger.info(f"Reply to [{message.room_topic}]: {reply}")
        return OutgoingReply(text=reply, mention_sender=mention_sender)
