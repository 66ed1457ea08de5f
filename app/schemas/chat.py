from typing import Any

from pydantic import BaseModel, Field


class RoomRequest(BaseModel):
    user_id: Any = Field(None, alias="userId")
    other_user_id: Any = Field(None, alias="otherUserId")
    other_identifier: Any = Field(None, alias="otherIdentifier")

    class Config:
        populate_by_name = True


class SendMessageRequest(BaseModel):
    room_id: Any = Field(None, alias="roomId")
    user_id: Any = Field(None, alias="userId")
    message_text: Any = Field(None, alias="messageText")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"roomId": 3, "userId": 5, "messageText": "Is the room still available?"}
        }
