"""Services that drive the store: message lifecycle, replies and pagination."""

from chatstore.services.delivery import DeliveryChannel, SimulatedDeliveryChannel
from chatstore.services.history_source import HistorySource, SyntheticHistorySource
from chatstore.services.lifecycle import MessageLifecycleController
from chatstore.services.pagination import HistoryPaginationLoader
from chatstore.services.reply_generator import (
    CannedReplyGenerator,
    OpenAIReplyGenerator,
    ReplyGenerator,
)

__all__ = [
    "CannedReplyGenerator",
    "DeliveryChannel",
    "HistoryPaginationLoader",
    "HistorySource",
    "MessageLifecycleController",
    "OpenAIReplyGenerator",
    "ReplyGenerator",
    "SimulatedDeliveryChannel",
    "SyntheticHistorySource",
]
