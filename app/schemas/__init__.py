"""
app.schemas
~~~~~~~~~~~
REST 应答体与 WebSocket 事件协议模型。
"""
from app.schemas.api_response import ApiResponse
from app.schemas.events import (
    ChatMessage,
    ClientEvent,
    RoomInfoData,
    ServerEvent,
)

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
