# engine/replies.py
# Outbound message produced by engine operations and rendered by delivery.deliver

from dataclasses import dataclass, field
from typing import List, Optional

from aiogram.types import InlineKeyboardMarkup


@dataclass
class Reply:
    text: str
    photos: List[str] = field(default_factory=list)
    markup: Optional[InlineKeyboardMarkup] = None
    markdown: bool = False
    delay: float = 0.0  # seconds to wait before sending
