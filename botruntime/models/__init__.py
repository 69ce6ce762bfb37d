"""SQLAlchemy models."""
from botruntime.models.project import BotProject
from botruntime.models.command import BotCommand
from botruntime.models.intent import BotIntent
from botruntime.models.flow import ConversationFlow
from botruntime.models.conversation_state import ConversationState
from botruntime.models.event import BotEvent, BotMessage
from botruntime.models.analytics import BotMetric
from botruntime.models.api_integration import ApiIntegration

__all__ = [
    "BotProject",
    "BotCommand",
    "BotIntent",
    "ConversationFlow",
    "ConversationState",
    "BotEvent",
    "BotMessage",
    "BotMetric",
    "ApiIntegration",
]
