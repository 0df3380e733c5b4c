from .message import (
    ASSISTANT_ROLE,
    DEVELOPER_ROLE,
    SYSTEM_ROLE,
    USER_ROLE,
    ImagePart,
    ImageURL,
    Message,
    Role,
    TextPart,
)
from .request import (
    GenerationOptions,
    ModelInfo,
    ProviderResponse,
    ReasoningEffort,
    RoutingMode,
    UpstreamRequest,
)
from .state import AskResult, SessionState
from .stream import StreamEvent

__all__ = [
    "ASSISTANT_ROLE",
    "AskResult",
    "DEVELOPER_ROLE",
    "GenerationOptions",
    "ImagePart",
    "ImageURL",
    "Message",
    "ModelInfo",
    "ProviderResponse",
    "ReasoningEffort",
    "Role",
    "RoutingMode",
    "SYSTEM_ROLE",
    "SessionState",
    "StreamEvent",
    "TextPart",
    "USER_ROLE",
    "UpstreamRequest",
]
