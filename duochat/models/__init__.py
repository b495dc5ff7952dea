"""Expose commonly used model classes at the package level.

Importing these classes here allows consumers to write concise imports like::

    from duochat.models import ChatCreate, ChatRecord, MessageRecord
"""

from .enums import MessageRole, ProviderModel, ResponseType  # noqa: F401
from .records import ChatRecord, MessageRecord  # noqa: F401
from .requests import ChatCreate, ChatIdParam, MessageCreate, UserMessageCreate, validate  # noqa: F401
from .responses import ChatDetail, MessageExchange, StatusMessage  # noqa: F401
